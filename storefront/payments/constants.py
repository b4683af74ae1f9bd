"""Payment constants, enums, and aliases."""
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class PaymentMethod(str, Enum):
    """
    Payment methods offered at checkout.

    CARD is listed but always refused at completion: card processing is
    not available for this store.
    """
    CARD = "card"
    BANK_SLIP = "bank_slip"
    CASH_ON_DELIVERY = "cash_on_delivery"


class TransportZone(str, Enum):
    """Delivery-fee tiers for cash on delivery."""
    IN_ZONE = "in_southern"
    OUT_OF_ZONE = "out_southern"


class OrderStatus(str, Enum):
    """
    Order status lifecycle.

    Flow:
        pending -> awaiting_approval -> approved   (bank slip)
        pending -> completed                       (cash on delivery)
        pending / awaiting_approval -> cancelled / failed   (admin action)

    - approved, completed, cancelled, failed are final
    - nothing ever returns to pending
    """
    PENDING = "pending"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TRANSPORT_FEES: dict[TransportZone, Decimal] = {
    TransportZone.IN_ZONE: Decimal("500"),
    TransportZone.OUT_OF_ZONE: Decimal("800"),
}

PAYMENT_METHOD_LABELS: dict[PaymentMethod, str] = {
    PaymentMethod.CARD: "Credit Card",
    PaymentMethod.BANK_SLIP: "Bank Transfer",
    PaymentMethod.CASH_ON_DELIVERY: "Cash on Delivery",
}

TRANSPORT_ZONE_LABELS: dict[TransportZone, str] = {
    TransportZone.IN_ZONE: "In Southern Province",
    TransportZone.OUT_OF_ZONE: "Out of Southern Province",
}

# Statuses an invoice can be printed for
INVOICEABLE_STATES = {OrderStatus.COMPLETED, OrderStatus.APPROVED}

# Input aliases (input -> canonical)
PAYMENT_METHOD_ALIASES: dict[str, PaymentMethod] = {
    "card": PaymentMethod.CARD,
    "credit_card": PaymentMethod.CARD,
    "bank_slip": PaymentMethod.BANK_SLIP,
    "bankslip": PaymentMethod.BANK_SLIP,
    "bank_transfer": PaymentMethod.BANK_SLIP,
    "cash_on_delivery": PaymentMethod.CASH_ON_DELIVERY,
    "cod": PaymentMethod.CASH_ON_DELIVERY,
}

TRANSPORT_ZONE_ALIASES: dict[str, TransportZone] = {
    "in_southern": TransportZone.IN_ZONE,
    "in_zone": TransportZone.IN_ZONE,
    "out_southern": TransportZone.OUT_OF_ZONE,
    "out_of_zone": TransportZone.OUT_OF_ZONE,
}


def _alias_key(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def normalize_payment_method(value: Union[str, PaymentMethod, None]) -> Optional[PaymentMethod]:
    """Map user input to a PaymentMethod; None when unknown."""
    if isinstance(value, PaymentMethod):
        return value
    if not value:
        return None
    return PAYMENT_METHOD_ALIASES.get(_alias_key(str(value)))


def normalize_transport_zone(value: Union[str, TransportZone, None]) -> Optional[TransportZone]:
    """Map user input to a TransportZone; None when unknown."""
    if isinstance(value, TransportZone):
        return value
    if not value:
        return None
    return TRANSPORT_ZONE_ALIASES.get(_alias_key(str(value)))


def transport_fee(zone: Union[str, TransportZone, None]) -> Decimal:
    """Delivery fee for a cash-on-delivery zone; 0 for anything else."""
    normalized = normalize_transport_zone(zone)
    if normalized is None:
        return Decimal("0")
    return TRANSPORT_FEES[normalized]
