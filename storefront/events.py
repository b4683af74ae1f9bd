"""
In-process event hub.

Stores publish ``<area>.<what>`` events after every committed change so
display surfaces can re-read state without polling. Listener failures are
logged and never reach the store that emitted the event.
"""
from typing import Any, Callable, Optional

from storefront.logging import get_logger

logger = get_logger(__name__)

CART_UPDATED = "cart.updated"
WISHLIST_UPDATED = "wishlist.updated"
ORDERS_UPDATED = "orders.updated"
ORDER_CREATED = "order.created"
ORDER_STATUS_CHANGED = "order.status.changed"
ORDER_DELETED = "order.deleted"
ORDERS_REPAIRED = "orders.repaired"
CHECKOUT_STAGE_CHANGED = "checkout.stage.changed"

Listener = Callable[[str, dict[str, Any]], None]


class EventHub:
    """Subscribe/notify registry shared by all stores of one storefront."""

    def __init__(self) -> None:
        self._listeners: list[tuple[Optional[str], Listener]] = []

    def subscribe(self, listener: Listener, event: Optional[str] = None) -> Callable[[], None]:
        """
        Register a listener for one event name, or for every event when
        ``event`` is None.

        Returns:
            A callable that removes the subscription
        """
        entry = (event, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def emit(self, event: str, data: Optional[dict[str, Any]] = None) -> None:
        payload = data or {}
        for wanted, listener in list(self._listeners):
            if wanted is not None and wanted != event:
                continue
            try:
                listener(event, payload)
            except Exception as e:
                logger.warning(f"Listener failed on {event}: {e}", exc_info=True)
