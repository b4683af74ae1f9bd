"""Wishlist Domain Service.

Saved products with set semantics: a product id appears at most once.
Persisted under the ``wishlist`` key with the same load/validation
discipline as the cart.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from storefront.cart.models import UNKNOWN_PRODUCT, read_field
from storefront.db import StorageKeys
from storefront.errors import ERROR_ITEM_ID_REQUIRED, ValidationError
from storefront.events import WISHLIST_UPDATED, EventHub
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import to_decimal
from storefront.storage import StoragePort
from storefront.store import PersistentStore

logger = get_logger(__name__)


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        return date.today()


@dataclass
class WishlistEntry:
    """Wishlist entry."""

    id: str
    name: str = UNKNOWN_PRODUCT
    price: Decimal = Decimal("0")
    image: str = ""
    category: str = ""
    added_at: date = field(default_factory=date.today)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "image": self.image,
            "category": self.category,
            "addedAt": self.added_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "WishlistEntry":
        """Parse a record; raises ValueError when it has no id."""
        if data is None or isinstance(data, (str, bytes, int, float, list)):
            raise ValueError(f"Wishlist entry must be an object, got {type(data).__name__}")
        item_id = read_field(data, "id")
        if not item_id:
            raise ValueError("Wishlist entry has no id")
        price = to_decimal(read_field(data, "price"))
        return cls(
            id=str(item_id),
            name=str(read_field(data, "name") or UNKNOWN_PRODUCT),
            price=price if price >= 0 else Decimal("0"),
            image=str(read_field(data, "image") or ""),
            category=str(read_field(data, "category") or ""),
            added_at=_parse_date(read_field(data, "addedAt") or read_field(data, "added_at")),
        )


class WishlistStore(PersistentStore):
    """Wishlist domain service.

    Used by product cards (``toggle``) and the wishlist page
    (``items``, ``remove_item``, ``clear``).
    """

    storage_key = StorageKeys.WISHLIST
    event_name = WISHLIST_UPDATED

    def __init__(self, storage: StoragePort, events: Optional[EventHub] = None) -> None:
        super().__init__(storage, events)
        self._entries: list[WishlistEntry] = []

    @property
    def items(self) -> list[WishlistEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def contains(self, item_id: str) -> bool:
        return any(entry.id == str(item_id) for entry in self._entries)

    async def add_item(self, item: Any) -> bool:
        """Save a product.

        Returns:
            True if added, False if it was already saved

        Raises:
            ValidationError: item has no id
        """
        item_id = read_field(item, "id") if item is not None else None
        if not item_id:
            raise ValidationError(ERROR_ITEM_ID_REQUIRED, field="id")

        added = False
        async with self._mutation():
            if not self.contains(str(item_id)):
                entry = WishlistEntry.from_dict(item)
                entry.added_at = date.today()
                self._entries.append(entry)
                added = True

        if added:
            logger.debug(f"Saved {sanitize_id_for_logging(str(item_id))} to wishlist")
        return added

    async def remove_item(self, item_id: str) -> bool:
        """Remove a product; an empty id is logged and ignored."""
        if not item_id:
            logger.warning("Cannot remove item without id from wishlist")
            return False
        item_id = str(item_id)

        removed = False
        async with self._mutation():
            before = len(self._entries)
            self._entries = [entry for entry in self._entries if entry.id != item_id]
            removed = len(self._entries) != before
        return removed

    async def toggle(self, item: Any) -> bool:
        """Add when absent, remove when present.

        Returns:
            True if the product is saved after the call
        """
        item_id = read_field(item, "id") if item is not None else None
        if not item_id:
            raise ValidationError(ERROR_ITEM_ID_REQUIRED, field="id")

        if not self._initialized:
            await self.load()
        if self.contains(str(item_id)):
            await self.remove_item(str(item_id))
            return False
        await self.add_item(item)
        return True

    async def clear(self) -> None:
        async with self._mutation():
            self._entries = []

    def _restore(self, payload: Any) -> None:
        entries: list[WishlistEntry] = []
        if payload is not None and not isinstance(payload, list):
            logger.warning(f"Ignoring wishlist snapshot of type {type(payload).__name__}")
            payload = None

        for raw in payload or []:
            try:
                entry = WishlistEntry.from_dict(raw)
            except (ValueError, TypeError) as e:
                logger.warning(f"Dropped invalid wishlist entry: {e}")
                continue
            if not any(existing.id == entry.id for existing in entries):
                entries.append(entry)

        self._entries = entries

    def _serialize(self) -> list[dict]:
        return [entry.to_dict() for entry in self._entries]

    def _event_data(self) -> dict[str, Any]:
        return {"count": len(self._entries)}
