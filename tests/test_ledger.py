"""
Tests for the Order Ledger
"""
import asyncio
import json
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from storefront.errors import NotFoundError, RemoteError, ValidationError
from storefront.events import ORDER_CREATED, ORDER_DELETED, ORDER_STATUS_CHANGED, ORDERS_REPAIRED
from storefront.orders import OrderLedger, generate_order_id
from storefront.payments.constants import OrderStatus
from storefront.storage import MemoryStorage


def make_draft(shipping, payment, items=None, **extra):
    draft = {
        "items": items or [{"id": "ball-001", "name": "Match Football", "price": 1000, "quantity": 1}],
        "shipping": shipping,
        "payment_method": payment,
    }
    draft.update(extra)
    return draft


COD_OUT = {"kind": "cash_on_delivery", "transport_zone": "out_southern"}
BANK_SLIP = {"kind": "bank_slip", "filename": "slip.png", "content_type": "image/png",
             "slip_image": "data:image/png;base64,AAAA"}


class TestOrderId:
    """Tests for order id generation."""

    def test_format(self):
        for _ in range(20):
            assert re.fullmatch(r"GZ-\d{6}-\d{3}", generate_order_id())


class TestRecordOrder:
    """Tests for OrderLedger.record_order."""

    @pytest.mark.asyncio
    async def test_cash_on_delivery_out_of_zone(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        assert order.subtotal == Decimal("1000")
        assert order.transport_fee == Decimal("800")
        assert order.final_total == Decimal("1800")
        assert order.status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_supplied_total_ignored(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(
            make_draft(sample_shipping, COD_OUT, subtotal=1, final_total=5)
        )

        assert order.final_total == Decimal("1800")

    @pytest.mark.asyncio
    async def test_bank_slip_awaits_approval(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))

        assert order.status == OrderStatus.AWAITING_APPROVAL
        assert order.transport_fee == Decimal("0")
        assert order.final_total == Decimal("1000")

    @pytest.mark.asyncio
    async def test_most_recent_first_and_persisted(self, storage, events, recorded_events, sample_shipping):
        ledger = OrderLedger(storage, events=events)
        first = await ledger.record_order(make_draft(sample_shipping, COD_OUT))
        second = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))

        assert [order.id for order in ledger.orders] == [second.id, first.id]
        saved = json.loads(storage.data["orders"])
        assert saved[0]["id"] == second.id
        assert saved[0]["finalTotal"] == "1000.00"
        assert saved[1]["paymentMethod"] == {"kind": "cash_on_delivery", "transportZone": "out_southern"}
        assert [name for name, _ in recorded_events].count(ORDER_CREATED) == 2

    @pytest.mark.asyncio
    async def test_invalid_draft(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        with pytest.raises(ValidationError):
            await ledger.record_order({"items": [], "shipping": sample_shipping})
        assert len(ledger) == 0


class TestRepairTotals:
    """Tests for OrderLedger.repair_totals."""

    @pytest.mark.asyncio
    async def test_load_heals_corrupted_totals(self, sample_order_data, events, recorded_events):
        sample_order_data["subtotal"] = "NaN"
        sample_order_data["finalTotal"] = "99999"
        storage = MemoryStorage({"orders": json.dumps([sample_order_data])})
        ledger = OrderLedger(storage, events=events)
        await ledger.load()

        order = ledger.get_order("GZ-123456-001")
        assert order.subtotal == Decimal("1000")
        assert order.final_total == Decimal("1800")
        assert json.loads(storage.data["orders"])[0]["finalTotal"] == "1800.00"
        assert ORDERS_REPAIRED in [name for name, _ in recorded_events]

    @pytest.mark.asyncio
    async def test_idempotent(self, sample_order_data):
        sample_order_data["finalTotal"] = "1"
        storage = MemoryStorage({"orders": json.dumps([sample_order_data])})
        ledger = OrderLedger(storage)
        await ledger.load()

        assert await ledger.repair_totals() == 0
        assert await ledger.repair_totals() == 0

    @pytest.mark.asyncio
    async def test_within_epsilon_untouched(self, sample_order_data):
        sample_order_data["finalTotal"] = "1800.005"
        raw = json.dumps([sample_order_data])
        storage = MemoryStorage({"orders": raw})
        ledger = OrderLedger(storage)
        await ledger.load()

        assert ledger.get_order("GZ-123456-001").final_total == Decimal("1800.005")
        assert storage.data["orders"] == raw

    @pytest.mark.asyncio
    async def test_invalid_orders_dropped(self, sample_order_data):
        broken = dict(sample_order_data, id="GZ-000000-000", paymentMethod={"kind": "bitcoin"})
        storage = MemoryStorage({"orders": json.dumps([sample_order_data, broken, "junk"])})
        ledger = OrderLedger(storage)
        await ledger.load()

        assert [order.id for order in ledger.orders] == ["GZ-123456-001"]


class TestTransitions:
    """Tests for status changes."""

    @pytest.mark.asyncio
    async def test_advance_approval_once(self, storage, events, recorded_events, sample_shipping):
        ledger = OrderLedger(storage, events=events)
        order = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))

        assert await ledger.advance_approval(order.id) is True
        assert await ledger.advance_approval(order.id) is False
        assert ledger.get_order(order.id).status == OrderStatus.APPROVED

        changes = [data for name, data in recorded_events if name == ORDER_STATUS_CHANGED]
        assert changes == [{"order_id": order.id, "from": "awaiting_approval", "status": "approved"}]

    @pytest.mark.asyncio
    async def test_advance_approval_ignores_other_states(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        assert await ledger.advance_approval(order.id) is False
        assert await ledger.advance_approval("GZ-missing") is False

    @pytest.mark.asyncio
    async def test_no_transition_back(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        assert await ledger.transition(order.id, OrderStatus.PENDING) is False
        assert await ledger.transition(order.id, "cancelled") is False
        assert await ledger.transition(order.id, "nonsense") is False
        assert ledger.get_order(order.id).status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_awaiting_order(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))
        ledger.schedule_approval(order.id, delay=60)

        assert await ledger.transition(order.id, OrderStatus.CANCELLED) is True
        assert not ledger.scheduler.is_pending(order.id)
        await ledger.close()


class TestApprovalScheduling:
    """Tests for the delayed approval."""

    @pytest.mark.asyncio
    async def test_approved_after_delay(self, storage, sample_shipping):
        ledger = OrderLedger(storage, approval_delay=0.01)
        order = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))

        assert ledger.schedule_approval(order.id) is True
        assert ledger.schedule_approval(order.id) is False
        await asyncio.sleep(0.05)

        assert ledger.get_order(order.id).status == OrderStatus.APPROVED
        assert ledger.scheduler.pending == []

    @pytest.mark.asyncio
    async def test_only_awaiting_orders_scheduled(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        assert ledger.schedule_approval(order.id, delay=0) is False

    @pytest.mark.asyncio
    async def test_delete_cancels_pending_approval(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))
        ledger.schedule_approval(order.id, delay=0.02)

        await ledger.delete_order(order.id)
        await asyncio.sleep(0.05)

        assert ledger.get_order(order.id) is None
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_close_cancels_everything(self, storage, sample_shipping):
        ledger = OrderLedger(storage)
        order = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))
        ledger.schedule_approval(order.id, delay=0.02)

        await ledger.close()
        await asyncio.sleep(0.05)

        assert ledger.get_order(order.id).status == OrderStatus.AWAITING_APPROVAL

    @pytest.mark.asyncio
    async def test_resume_after_reload(self, sample_order_data):
        sample_order_data["paymentMethod"] = {"kind": "bank_slip", "filename": "slip.png"}
        sample_order_data["status"] = "awaiting_approval"
        sample_order_data["transportFee"] = "0"
        sample_order_data["finalTotal"] = "1000"
        storage = MemoryStorage({"orders": json.dumps([sample_order_data])})
        ledger = OrderLedger(storage)
        await ledger.load()

        assert ledger.resume_approvals(delay=0.01) == 1
        await asyncio.sleep(0.05)
        assert ledger.get_order("GZ-123456-001").status == OrderStatus.APPROVED


class TestDeleteOrder:
    """Tests for deletion through the backend."""

    @pytest.mark.asyncio
    async def test_remote_first(self, storage, events, recorded_events, sample_shipping):
        api = AsyncMock()
        ledger = OrderLedger(storage, api=api, events=events)
        order = await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        await ledger.delete_order(order.id)

        api.delete_order.assert_awaited_once_with(order.id)
        assert len(ledger) == 0
        assert json.loads(storage.data["orders"]) == []
        assert (ORDER_DELETED, {"order_id": order.id}) in recorded_events

    @pytest.mark.asyncio
    async def test_remote_not_found_keeps_local(self, storage, sample_shipping):
        api = AsyncMock()
        api.delete_order.side_effect = NotFoundError("Order not found", status_code=404)
        ledger = OrderLedger(storage, api=api)
        order = await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        with pytest.raises(NotFoundError):
            await ledger.delete_order(order.id)
        assert ledger.get_order(order.id) is not None

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local(self, storage, sample_shipping):
        api = AsyncMock()
        api.delete_order.side_effect = RemoteError("Storefront service unavailable")
        ledger = OrderLedger(storage, api=api)
        order = await ledger.record_order(make_draft(sample_shipping, BANK_SLIP))
        ledger.schedule_approval(order.id, delay=60)

        with pytest.raises(RemoteError):
            await ledger.delete_order(order.id)
        assert ledger.scheduler.is_pending(order.id)
        await ledger.close()


class TestOrderHistory:
    """Tests for filter_orders and remote listing."""

    @pytest.fixture
    def history(self, sample_order_data):
        older = dict(sample_order_data, id="GZ-111111-111", createdAt="2024-01-01T00:00:00Z",
                     items=[{"id": "bat", "name": "Cricket Bat", "price": "5000", "quantity": 1}],
                     transportFee="0", paymentMethod={"kind": "bank_slip"}, status="approved")
        newer = dict(sample_order_data, id="GZ-222222-222", createdAt="2025-06-01T00:00:00Z")
        return MemoryStorage({"orders": json.dumps([newer, older])})

    @pytest.mark.asyncio
    async def test_sorting(self, history):
        ledger = OrderLedger(history)
        await ledger.load()

        assert [o.id for o in ledger.filter_orders(sort="oldest")] == ["GZ-111111-111", "GZ-222222-222"]
        assert [o.id for o in ledger.filter_orders(sort="newest")] == ["GZ-222222-222", "GZ-111111-111"]
        assert [o.id for o in ledger.filter_orders(sort="highest")] == ["GZ-111111-111", "GZ-222222-222"]
        assert [o.id for o in ledger.filter_orders(sort="lowest")] == ["GZ-222222-222", "GZ-111111-111"]

    @pytest.mark.asyncio
    async def test_status_and_query(self, history):
        ledger = OrderLedger(history)
        await ledger.load()

        assert [o.id for o in ledger.filter_orders(status="approved")] == ["GZ-111111-111"]
        assert len(ledger.filter_orders(status="all")) == 2
        assert [o.id for o in ledger.filter_orders(query="cricket")] == ["GZ-111111-111"]
        assert [o.id for o in ledger.filter_orders(query="222222")] == ["GZ-222222-222"]

    @pytest.mark.asyncio
    async def test_unknown_sort(self, history):
        ledger = OrderLedger(history)
        await ledger.load()

        with pytest.raises(ValidationError):
            ledger.filter_orders(sort="random")

    @pytest.mark.asyncio
    async def test_fetch_remote_orders(self, storage):
        assert await OrderLedger(storage).fetch_remote_orders() == []

        api = AsyncMock()
        api.list_orders.return_value = [{"_id": "remote-1"}]
        assert await OrderLedger(storage, api=api).fetch_remote_orders() == [{"_id": "remote-1"}]


class TestStoredTimestamps:
    """Orders stored without a UTC offset."""

    @pytest.mark.asyncio
    async def test_naive_stored_order_sorts_with_new_ones(self, sample_order_data, sample_shipping):
        sample_order_data["createdAt"] = "2025-01-01T10:00:00"
        storage = MemoryStorage({"orders": json.dumps([sample_order_data])})
        ledger = OrderLedger(storage)
        await ledger.load()
        recorded = await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        newest = ledger.filter_orders(sort="newest")
        oldest = ledger.filter_orders(sort="oldest")

        assert [o.id for o in newest] == [recorded.id, "GZ-123456-001"]
        assert [o.id for o in oldest] == ["GZ-123456-001", recorded.id]
        assert ledger.get_order("GZ-123456-001").created_at.tzinfo is not None


class TestEarlierStorefrontOrders:
    """Orders persisted by the earlier storefront shape."""

    @pytest.fixture
    def legacy_order(self):
        return {
            "id": "GZ-654321-042",
            "date": "2024-11-03T08:15:00.000Z",
            "status": "completed",
            "items": [{"id": "c1", "name": "Cricket Bat", "price": 1000, "quantity": 2,
                       "image": "/img/bat.png", "category": "cricket"}],
            "totalPrice": 2000,
            "transportFee": 500,
            "finalTotal": 2600,
            "shippingInfo": {"fullName": "Sunil Silva", "address": "Galle", "phoneNumber": "0771234567"},
            "paymentMethod": "cash_on_delivery",
            "transportOption": "in_southern",
        }

    @pytest.mark.asyncio
    async def test_loaded_and_repaired(self, legacy_order):
        storage = MemoryStorage({"orders": json.dumps([legacy_order])})
        ledger = OrderLedger(storage)
        await ledger.load()

        order = ledger.get_order("GZ-654321-042")
        assert order is not None
        assert order.shipping.full_name == "Sunil Silva"
        assert order.transport_fee == Decimal("500")
        assert order.final_total == Decimal("2500")
        assert order.created_at.year == 2024

    @pytest.mark.asyncio
    async def test_survives_next_write(self, legacy_order, sample_shipping):
        bank_slip = dict(legacy_order, id="GZ-654321-043", paymentMethod="bank_slip",
                         transportFee=0, finalTotal=2000, status="awaiting_approval",
                         slipImage="data:image/png;base64,AAAA")
        del bank_slip["transportOption"]
        storage = MemoryStorage({"orders": json.dumps([legacy_order, bank_slip])})
        ledger = OrderLedger(storage)
        await ledger.load()

        await ledger.record_order(make_draft(sample_shipping, COD_OUT))

        saved = {order["id"]: order for order in json.loads(storage.data["orders"])}
        assert set(saved) >= {"GZ-654321-042", "GZ-654321-043"}
        assert saved["GZ-654321-042"]["paymentMethod"] == {
            "kind": "cash_on_delivery", "transportZone": "in_southern",
        }
        assert saved["GZ-654321-043"]["paymentMethod"]["slipImage"] == "data:image/png;base64,AAAA"
        assert saved["GZ-654321-043"]["shipping"]["phoneNumber"] == "0771234567"


class TestPeriodFilter:
    """Order history date windows."""

    NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)

    @pytest.fixture
    def dated(self, sample_order_data):
        orders = []
        for order_id, age in (("GZ-000000-000", timedelta(hours=3)),
                              ("GZ-000000-005", timedelta(days=5)),
                              ("GZ-000000-020", timedelta(days=20)),
                              ("GZ-000000-090", timedelta(days=90))):
            orders.append(dict(sample_order_data, id=order_id, createdAt=(self.NOW - age).isoformat()))
        return MemoryStorage({"orders": json.dumps(orders)})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("period,expected", [
        ("today", ["GZ-000000-000"]),
        ("7days", ["GZ-000000-000", "GZ-000000-005"]),
        ("30days", ["GZ-000000-000", "GZ-000000-005", "GZ-000000-020"]),
        ("all", ["GZ-000000-000", "GZ-000000-005", "GZ-000000-020", "GZ-000000-090"]),
        (None, ["GZ-000000-000", "GZ-000000-005", "GZ-000000-020", "GZ-000000-090"]),
    ])
    async def test_windows(self, dated, period, expected):
        ledger = OrderLedger(dated)
        await ledger.load()

        assert [o.id for o in ledger.filter_orders(period=period, now=self.NOW)] == expected

    @pytest.mark.asyncio
    async def test_unknown_period(self, dated):
        ledger = OrderLedger(dated)
        await ledger.load()

        with pytest.raises(ValidationError) as exc_info:
            ledger.filter_orders(period="lastyear", now=self.NOW)
        assert exc_info.value.field == "period"
