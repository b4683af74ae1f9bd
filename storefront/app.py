"""
Storefront composition root.

Wires one storage backend, one event hub and the session into the cart,
wishlist and order ledger, and hands out checkout orchestrators bound to
them.

Usage:
    async with Storefront() as shop:
        await shop.cart.add_item({"id": "p1", "name": "Ball", "price": 1000})
        checkout = shop.checkout()
"""
import asyncio
from typing import Optional

from storefront.checkout import CheckoutOrchestrator
from storefront.config import BANK_SLIP_APPROVAL_DELAY, CHECKOUT_PROCESSING_DELAY
from storefront.events import EventHub
from storefront.logging import get_logger
from storefront.orders import OrderLedger
from storefront.cart import CartStore
from storefront.services.api import StorefrontAPI
from storefront.services.domains import WishlistStore
from storefront.services.session import Session
from storefront.storage import StoragePort, create_storage

logger = get_logger(__name__)


class Storefront:
    """Owns the long-lived stores of one storefront session."""

    def __init__(
        self,
        storage: Optional[StoragePort] = None,
        api: Optional[StorefrontAPI] = None,
        events: Optional[EventHub] = None,
        processing_delay: float = CHECKOUT_PROCESSING_DELAY,
        approval_delay: float = BANK_SLIP_APPROVAL_DELAY,
    ):
        self.storage = storage if storage is not None else create_storage()
        self.events = events or EventHub()
        self.session = Session(self.storage)
        self.api = api if api is not None else StorefrontAPI(token_provider=self.session.token)
        self.processing_delay = processing_delay

        self.cart = CartStore(self.storage, self.events)
        self.wishlist = WishlistStore(self.storage, self.events)
        self.orders = OrderLedger(
            self.storage,
            api=self.api,
            events=self.events,
            approval_delay=approval_delay,
        )

    async def start(self) -> None:
        """Load every store and re-arm approvals for orders still awaiting one."""
        await asyncio.gather(self.cart.load(), self.wishlist.load(), self.orders.load())
        resumed = self.orders.resume_approvals()
        logger.info(
            f"Storefront ready: {self.cart.total_items} cart item(s), "
            f"{len(self.wishlist)} saved, {len(self.orders)} order(s), {resumed} awaiting approval"
        )

    def checkout(self) -> CheckoutOrchestrator:
        """New checkout attempt over the current cart."""
        return CheckoutOrchestrator(
            self.cart,
            self.orders,
            session=self.session,
            events=self.events,
            processing_delay=self.processing_delay,
        )

    async def close(self) -> None:
        await self.orders.close()
        await self.api.close()

    async def __aenter__(self) -> "Storefront":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
