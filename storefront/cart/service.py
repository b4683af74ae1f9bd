"""Cart store persisted under the ``cart`` key."""
from decimal import Decimal
from typing import Any, Iterable, Optional

from storefront.db import StorageKeys
from storefront.errors import (
    ERROR_ITEM_ID_REQUIRED,
    ERROR_QUANTITY_NOT_NUMERIC,
    ValidationError,
)
from storefront.events import CART_UPDATED, EventHub
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import to_float
from storefront.storage import StoragePort
from storefront.store import PersistentStore
from .models import Cart, CartLineItem, parse_quantity, read_field

logger = get_logger(__name__)


class CartStore(PersistentStore):
    """
    Owns the cart line items and their derived totals.

    Features:
    - One line per product id; adding an existing id raises its quantity
    - ``total_items`` and ``total_price`` recomputed on every change
    - Malformed persisted lines are dropped one by one on load
    """

    storage_key = StorageKeys.CART
    event_name = CART_UPDATED

    def __init__(self, storage: StoragePort, events: Optional[EventHub] = None):
        super().__init__(storage, events)
        self._cart = Cart()

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._cart.items)

    @property
    def total_items(self) -> int:
        return self._cart.total_items

    @property
    def total_price(self) -> Decimal:
        return self._cart.total_price

    @property
    def is_empty(self) -> bool:
        return not self._cart.items

    def get_item(self, item_id: str) -> Optional[CartLineItem]:
        return self._cart.find(str(item_id))

    def snapshot(self) -> tuple[CartLineItem, ...]:
        """Detached copy of the lines, safe to hand to checkout."""
        return tuple(CartLineItem.from_dict(item.to_dict()) for item in self._cart.items)

    async def add_item(self, item: Any, quantity: Any = None) -> Cart:
        """
        Add a product, or raise the quantity of an existing line.

        Args:
            item: Mapping or object with at least an ``id``
            quantity: Units to add; defaults to the item's own ``quantity`` or 1

        Raises:
            ValidationError: item has no id
        """
        item_id = read_field(item, "id") if item is not None else None
        if not item_id or not str(item_id).strip():
            raise ValidationError(ERROR_ITEM_ID_REQUIRED, field="id")

        if quantity is None:
            quantity = read_field(item, "quantity", 1)
        amount = max(1, parse_quantity(quantity) or 1)

        async with self._mutation():
            existing = self._cart.find(str(item_id))
            if existing:
                existing.quantity += amount
            else:
                line = CartLineItem.from_dict(item)
                line.quantity = amount
                self._cart.items.append(line)
            self._cart.recalculate()

        logger.debug(f"Added {amount} x {sanitize_id_for_logging(str(item_id))} to cart")
        return self._cart

    async def remove_item(self, item_id: str) -> Cart:
        """Remove a line. An empty id is logged and ignored."""
        if not item_id:
            logger.warning("Cannot remove item without id from cart")
            return self._cart
        item_id = str(item_id)

        async with self._mutation():
            self._cart.items = [item for item in self._cart.items if item.id != item_id]
            self._cart.recalculate()
        return self._cart

    async def update_quantity(self, item_id: str, quantity: Any) -> Cart:
        """
        Replace a line's quantity; zero or less removes the line.

        Raises:
            ValidationError: quantity is not numeric
        """
        new_quantity = parse_quantity(quantity)
        if new_quantity is None:
            raise ValidationError(ERROR_QUANTITY_NOT_NUMERIC, field="quantity")
        if not item_id:
            logger.warning("Cannot update quantity for item without id")
            return self._cart
        item_id = str(item_id)

        if new_quantity <= 0:
            return await self.remove_item(item_id)

        async with self._mutation():
            existing = self._cart.find(item_id)
            if existing:
                existing.quantity = new_quantity
            self._cart.recalculate()
        return self._cart

    async def clear(self) -> Cart:
        """Empty the cart and drop its persisted snapshot."""
        async with self._mutation(persist=False):
            self._cart.items = []
            self._cart.recalculate()
            await self._discard()
        return self._cart

    async def remove_ordered(self, lines: Iterable[CartLineItem]) -> Cart:
        """
        Take checked-out units out of the cart.

        Units added after ``lines`` was snapshotted stay in the cart; when
        nothing is left the persisted snapshot is dropped as in ``clear``.
        """
        ordered: dict[str, int] = {}
        for line in lines:
            ordered[line.id] = ordered.get(line.id, 0) + line.quantity

        async with self._mutation(persist=False):
            remaining = []
            for item in self._cart.items:
                left = item.quantity - ordered.get(item.id, 0)
                if left > 0:
                    item.quantity = left
                    remaining.append(item)
            self._cart.items = remaining
            self._cart.recalculate()
            if remaining:
                await self._persist()
            else:
                await self._discard()
        return self._cart

    def summary(self) -> dict:
        """Cart summary for display surfaces."""
        return {
            "is_empty": self.is_empty,
            "total_items": self.total_items,
            "total_price": to_float(self.total_price),
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "unit_price": to_float(item.price),
                    "total": to_float(item.line_total),
                }
                for item in self._cart.items
            ],
        }

    def _restore(self, payload: Any) -> None:
        items: list[CartLineItem] = []
        if payload is not None and not isinstance(payload, list):
            logger.warning(f"Ignoring cart snapshot of type {type(payload).__name__}")
            payload = None

        for raw in payload or []:
            try:
                line = CartLineItem.from_dict(raw)
            except (ValueError, TypeError) as e:
                logger.warning(f"Dropped invalid cart line: {e}")
                continue
            existing = next((item for item in items if item.id == line.id), None)
            if existing:
                existing.quantity += line.quantity
            else:
                items.append(line)

        self._cart = Cart(items=items)
        self._cart.recalculate()

    def _serialize(self) -> list[dict]:
        return self._cart.to_list()

    def _event_data(self) -> dict[str, Any]:
        return {"total_items": self.total_items, "total_price": str(self.total_price)}
