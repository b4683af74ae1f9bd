"""Cart package: line item models and the persisted cart store."""
from .models import Cart, CartLineItem
from .service import CartStore

__all__ = [
    "Cart",
    "CartLineItem",
    "CartStore",
]
