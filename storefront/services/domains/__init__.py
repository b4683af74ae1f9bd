"""Domain services."""
from .wishlist import WishlistEntry, WishlistStore

__all__ = ["WishlistEntry", "WishlistStore"]
