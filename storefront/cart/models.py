"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from storefront.services.money import to_decimal, multiply

UNKNOWN_PRODUCT = "Unknown Product"


def read_field(source: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an object with attributes."""
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def parse_quantity(value: Any) -> Optional[int]:
    """
    Read a quantity from user or persisted input.

    Returns:
        The integer part of a finite number, or None when the value is not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            return None
    if not number.is_finite():
        return None
    return int(number)


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value)
    return text if text else default


@dataclass
class CartLineItem:
    """Single product line in the cart."""
    id: str
    name: str = UNKNOWN_PRODUCT
    price: Decimal = Decimal("0")
    quantity: int = 1
    image: str = ""
    category: str = ""

    def __post_init__(self):
        self.id = _text(self.id)
        self.name = _text(self.name, UNKNOWN_PRODUCT)
        self.price = to_decimal(self.price)
        if self.price < 0:
            self.price = Decimal("0")
        self.quantity = max(1, parse_quantity(self.quantity) or 1)
        self.image = _text(self.image)
        self.category = _text(self.category)

    @property
    def line_total(self) -> Decimal:
        """Price for all units of this line."""
        return multiply(self.price, self.quantity)

    def to_dict(self) -> dict:
        """Convert to the persisted JSON shape."""
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
            "image": self.image,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CartLineItem":
        """
        Parse one persisted or user-supplied record.

        Missing name/price/image/category fall back to safe defaults.

        Raises:
            ValueError: record is not an object or has no id
        """
        if data is None or isinstance(data, (str, bytes, int, float, list)):
            raise ValueError(f"Cart line must be an object, got {type(data).__name__}")
        item_id = _text(read_field(data, "id"))
        if not item_id:
            raise ValueError("Cart line has no id")
        return cls(
            id=item_id,
            name=read_field(data, "name"),
            price=read_field(data, "price"),
            quantity=read_field(data, "quantity", 1),
            image=read_field(data, "image"),
            category=read_field(data, "category"),
        )


@dataclass
class Cart:
    """Line items plus totals derived from them."""
    items: List[CartLineItem] = field(default_factory=list)
    total_items: int = 0
    total_price: Decimal = Decimal("0")

    def find(self, item_id: str) -> Optional[CartLineItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def recalculate(self) -> None:
        """Recompute totals from the items. Never adjusted incrementally."""
        self.total_items = sum(item.quantity for item in self.items)
        self.total_price = sum((item.line_total for item in self.items), Decimal("0"))

    def to_list(self) -> list[dict]:
        return [item.to_dict() for item in self.items]
