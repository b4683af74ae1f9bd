"""
Tests for the Storefront composition root
"""
import json

import httpx
import pytest

from storefront import Storefront
from storefront.checkout import CheckoutStage
from storefront.payments.constants import OrderStatus
from storefront.services.api import StorefrontAPI
from storefront.storage import MemoryStorage


class TestStorefront:
    """End-to-end flows over shared storage."""

    @pytest.mark.asyncio
    async def test_checkout_flow(self, sample_product, sample_shipping):
        storage = MemoryStorage({"authToken": "token"})

        async with Storefront(storage=storage, processing_delay=0) as shop:
            await shop.cart.add_item(sample_product)
            await shop.wishlist.toggle(sample_product)

            checkout = shop.checkout()
            assert (await checkout.start()).ok
            checkout.submit_shipping_info(sample_shipping)
            checkout.select_payment_method("cash_on_delivery")
            checkout.select_transport_zone("in_southern")
            result = await checkout.complete_order()

        assert result.stage == CheckoutStage.COMPLETE
        assert result.order.final_total == 55500
        assert set(storage.data) == {"authToken", "wishlist", "orders"}

    @pytest.mark.asyncio
    async def test_state_survives_restart(self, sample_product):
        storage = MemoryStorage()

        async with Storefront(storage=storage) as shop:
            await shop.cart.add_item(sample_product, quantity=2)

        async with Storefront(storage=storage) as shop:
            assert shop.cart.total_items == 2

    @pytest.mark.asyncio
    async def test_start_resumes_pending_approvals(self, sample_order_data):
        sample_order_data.update(
            paymentMethod={"kind": "bank_slip"},
            transportFee="0",
            finalTotal="1000",
            status="awaiting_approval",
        )
        storage = MemoryStorage({"orders": json.dumps([sample_order_data])})

        shop = Storefront(storage=storage, approval_delay=60)
        await shop.start()
        assert shop.orders.scheduler.is_pending("GZ-123456-001")

        await shop.close()
        assert shop.orders.get_order("GZ-123456-001").status == OrderStatus.AWAITING_APPROVAL
        assert shop.orders.scheduler.pending == []

    @pytest.mark.asyncio
    async def test_api_uses_session_token(self, mock_transport_factory):
        transport = mock_transport_factory(lambda request: httpx.Response(200, json=[]))
        storage = MemoryStorage({"authToken": "abc"})
        shop = Storefront(storage=storage)
        shop.api = StorefrontAPI("http://storefront.test", token_provider=shop.session.token, transport=transport)
        shop.orders.api = shop.api

        await shop.orders.fetch_remote_orders()
        await shop.close()

        assert transport.requests[0].headers["Authorization"] == "Bearer abc"
