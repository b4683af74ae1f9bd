"""
Order status transition rules.

Ensures status only moves forward: pending orders settle as completed
(cash on delivery) or wait for slip approval, and nothing ever returns to
pending.
"""
from typing import Any, Optional, Union

from storefront.payments.constants import OrderStatus, PaymentMethod

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.AWAITING_APPROVAL,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    }),
    OrderStatus.AWAITING_APPROVAL: frozenset({
        OrderStatus.APPROVED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    }),
    OrderStatus.APPROVED: frozenset(),  # Final state
    OrderStatus.COMPLETED: frozenset(),  # Final state
    OrderStatus.CANCELLED: frozenset(),  # Final state
    OrderStatus.FAILED: frozenset(),  # Final state
}

TERMINAL_STATES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def can_transition(
    current: Union[str, OrderStatus],
    target: Union[str, OrderStatus],
) -> tuple[bool, Optional[str]]:
    """
    Check whether ``current`` may move to ``target``.

    Returns:
        (can_transition, reason_if_not)
    """
    try:
        current_status = OrderStatus(current)
        target_status = OrderStatus(target)
    except ValueError:
        return False, f"Unknown status transition '{current}' -> '{target}'"

    allowed = TRANSITIONS[current_status]
    if target_status not in allowed:
        names = sorted(status.value for status in allowed)
        return False, (
            f"Cannot transition from '{current_status.value}' to '{target_status.value}'. "
            f"Allowed: {names}"
        )
    return True, None


def initial_status(payment: Any) -> OrderStatus:
    """Status a freshly recorded order settles in."""
    if getattr(payment, "kind", None) == PaymentMethod.BANK_SLIP.value:
        return OrderStatus.AWAITING_APPROVAL
    return OrderStatus.COMPLETED
