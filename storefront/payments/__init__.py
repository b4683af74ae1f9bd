"""Payment methods, transport zones and order statuses."""
from .constants import (
    INVOICEABLE_STATES,
    PAYMENT_METHOD_LABELS,
    TRANSPORT_FEES,
    TRANSPORT_ZONE_LABELS,
    OrderStatus,
    PaymentMethod,
    TransportZone,
    normalize_payment_method,
    normalize_transport_zone,
    transport_fee,
)

__all__ = [
    "INVOICEABLE_STATES",
    "PAYMENT_METHOD_LABELS",
    "TRANSPORT_FEES",
    "TRANSPORT_ZONE_LABELS",
    "OrderStatus",
    "PaymentMethod",
    "TransportZone",
    "normalize_payment_method",
    "normalize_transport_zone",
    "transport_fee",
]
