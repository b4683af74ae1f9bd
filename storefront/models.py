"""Pydantic models for shipping, payment and orders.

These are the schema-validated boundary for order data: persisted orders
and checkout drafts are parsed here once, so the rest of the engine works
with normalized values only. Persisted JSON uses camelCase keys.
"""
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from storefront.cart.models import UNKNOWN_PRODUCT, CartLineItem, parse_quantity, read_field
from storefront.errors import (
    ERROR_ADDRESS_REQUIRED,
    ERROR_FULL_NAME_REQUIRED,
    ERROR_PHONE_INVALID,
    ERROR_PHONE_REQUIRED,
)
from storefront.payments.constants import (
    OrderStatus,
    PaymentMethod,
    TransportZone,
    normalize_payment_method,
)
from storefront.services.money import to_decimal

MIN_PHONE_DIGITS = 10


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _first(data: Any, *names: str) -> Any:
    for name in names:
        value = read_field(data, name)
        if value is not None:
            return value
    return None


class ShippingInfo(_Model):
    """Delivery contact details."""
    full_name: str
    address: str
    phone_number: str

    @classmethod
    def from_input(cls, data: Any) -> tuple[Optional["ShippingInfo"], dict[str, str]]:
        """
        Validate raw form input (snake_case or camelCase keys).

        Returns:
            (ShippingInfo, {}) when valid, otherwise (None, field errors)
        """
        full_name = str(_first(data, "full_name", "fullName") or "").strip()
        address = str(_first(data, "address") or "").strip()
        phone_number = str(_first(data, "phone_number", "phoneNumber") or "").strip()

        errors: dict[str, str] = {}
        if not full_name:
            errors["full_name"] = ERROR_FULL_NAME_REQUIRED
        if not address:
            errors["address"] = ERROR_ADDRESS_REQUIRED
        if not phone_number:
            errors["phone_number"] = ERROR_PHONE_REQUIRED
        elif len(re.sub(r"\D", "", phone_number)) < MIN_PHONE_DIGITS:
            errors["phone_number"] = ERROR_PHONE_INVALID

        if errors:
            return None, errors
        return cls(full_name=full_name, address=address, phone_number=phone_number), {}


class CardPayment(_Model):
    kind: Literal["card"] = "card"


class BankSlipPayment(_Model):
    kind: Literal["bank_slip"] = "bank_slip"
    filename: str = ""
    content_type: str = ""
    # data: URL of the uploaded proof of payment
    slip_image: str = ""


class CashOnDeliveryPayment(_Model):
    kind: Literal["cash_on_delivery"] = "cash_on_delivery"
    transport_zone: TransportZone


Payment = Annotated[
    Union[CardPayment, BankSlipPayment, CashOnDeliveryPayment],
    Field(discriminator="kind"),
]


def payment_method_of(payment: Any) -> PaymentMethod:
    return PaymentMethod(payment.kind)


class OrderItem(_Model):
    """Line item frozen into an order."""
    id: str = Field(min_length=1)
    name: str = UNKNOWN_PRODUCT
    price: Decimal = Decimal("0")
    quantity: int = 1
    image: str = ""
    category: str = ""

    @field_validator("price", mode="before")
    @classmethod
    def convert_price(cls, v):
        price = to_decimal(v)
        return price if price >= 0 else Decimal("0")

    @field_validator("quantity", mode="before")
    @classmethod
    def convert_quantity(cls, v):
        return max(1, parse_quantity(v) or 1)

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v):
        return str(v) if v else UNKNOWN_PRODUCT

    @field_validator("image", "category", mode="before")
    @classmethod
    def default_text(cls, v):
        return str(v) if v else ""

    @field_validator("id", mode="before")
    @classmethod
    def id_to_text(cls, v):
        return str(v).strip() if v is not None else ""

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_line(cls, line: Union[CartLineItem, Mapping[str, Any]]) -> "OrderItem":
        if isinstance(line, CartLineItem):
            return cls.model_validate(line.to_dict())
        return cls.model_validate(line)


class OrderDraft(_Model):
    """
    What checkout hands to the ledger.

    ``subtotal`` and ``final_total`` are accepted only so a caller-supplied
    figure can be compared and logged; the ledger always recomputes them.
    """
    items: list[OrderItem]
    shipping: ShippingInfo
    payment_method: Payment
    subtotal: Optional[Decimal] = None
    final_total: Optional[Decimal] = None


class Order(_Model):
    """Placed order as kept by the ledger."""
    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    items: list[OrderItem]
    subtotal: Decimal = Decimal("0")
    transport_fee: Decimal = Decimal("0")
    final_total: Decimal = Decimal("0")
    shipping: ShippingInfo
    payment_method: Payment
    status: OrderStatus = OrderStatus.PENDING

    @model_validator(mode="before")
    @classmethod
    def upgrade_legacy_record(cls, data: Any) -> Any:
        """
        Read orders written by the earlier storefront.

        Those carry ``date``, ``totalPrice`` and ``shippingInfo``, and a plain
        string ``paymentMethod`` with the zone in ``transportOption`` and the
        slip in ``slipImage``. Totals are healed afterwards by the ledger.
        """
        if not isinstance(data, Mapping):
            return data
        data = dict(data)

        if "date" in data and data.get("createdAt") is None and data.get("created_at") is None:
            data["createdAt"] = data.pop("date")
        if "totalPrice" in data and data.get("subtotal") is None:
            data["subtotal"] = data.pop("totalPrice")
        if "shippingInfo" in data and data.get("shipping") is None:
            data["shipping"] = data.pop("shippingInfo")

        key = "paymentMethod" if "paymentMethod" in data else "payment_method"
        method = data.get(key)
        if isinstance(method, str):
            normalized = normalize_payment_method(method)
            payment: dict[str, Any] = {"kind": normalized.value if normalized else method}
            if normalized == PaymentMethod.CASH_ON_DELIVERY:
                payment["transportZone"] = data.pop("transportOption", None)
            elif normalized == PaymentMethod.BANK_SLIP:
                payment["slipImage"] = data.pop("slipImage", None) or ""
            data[key] = payment
        return data

    @field_validator("subtotal", "transport_fee", "final_total", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def default_created_at(cls, v):
        return v or datetime.now(timezone.utc)

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Timestamps stored without an offset were written in UTC
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    @property
    def method(self) -> PaymentMethod:
        return payment_method_of(self.payment_method)

    @property
    def transport_zone(self) -> Optional[TransportZone]:
        return getattr(self.payment_method, "transport_zone", None)

    def to_dict(self) -> dict:
        """Persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)
