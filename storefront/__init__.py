"""
Storefront commerce engine.

This package holds the client-side state of a storefront:
- cart: cart store with derived totals
- services.domains.wishlist: saved products
- orders: order ledger, status rules, approval scheduling, invoices
- checkout: checkout state machine
- storage: persistence port (memory or Upstash Redis)

Note: Imports are lazy so importing a single submodule does not pull in
the whole engine.
"""

__all__ = [
    "Storefront",
    "CartStore",
    "WishlistStore",
    "OrderLedger",
    "CheckoutOrchestrator",
    "EventHub",
    "MemoryStorage",
    "RedisStorage",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "Storefront":
        from storefront.app import Storefront
        return Storefront
    elif name == "CartStore":
        from storefront.cart import CartStore
        return CartStore
    elif name == "WishlistStore":
        from storefront.services.domains import WishlistStore
        return WishlistStore
    elif name == "OrderLedger":
        from storefront.orders import OrderLedger
        return OrderLedger
    elif name == "CheckoutOrchestrator":
        from storefront.checkout import CheckoutOrchestrator
        return CheckoutOrchestrator
    elif name == "EventHub":
        from storefront.events import EventHub
        return EventHub
    elif name == "MemoryStorage":
        from storefront.storage import MemoryStorage
        return MemoryStorage
    elif name == "RedisStorage":
        from storefront.storage import RedisStorage
        return RedisStorage
    raise AttributeError(f"module 'storefront' has no attribute '{name}'")
