"""Order totals as pure functions of the line items and payment."""
from decimal import Decimal
from typing import Any, Iterable

from storefront.payments.constants import PaymentMethod, transport_fee
from storefront.services.money import round_money


def compute_subtotal(items: Iterable[Any]) -> Decimal:
    """Sum of price x quantity over the items."""
    return round_money(sum((item.price * item.quantity for item in items), Decimal("0")))


def compute_transport_fee(payment: Any) -> Decimal:
    """Cash on delivery pays the zone fee; every other method pays nothing."""
    if payment is None or getattr(payment, "kind", None) != PaymentMethod.CASH_ON_DELIVERY.value:
        return Decimal("0")
    return transport_fee(payment.transport_zone)


def compute_totals(items: Iterable[Any], payment: Any) -> tuple[Decimal, Decimal, Decimal]:
    """
    Returns:
        (subtotal, transport_fee, final_total)
    """
    subtotal = compute_subtotal(items)
    fee = compute_transport_fee(payment)
    return subtotal, fee, round_money(subtotal + fee)
