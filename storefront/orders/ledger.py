"""
Order ledger - the authoritative, persisted list of placed orders.

Totals are recomputed from line items whenever an order is recorded or
repaired; a total supplied by the caller is never stored.
"""
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from pydantic import ValidationError as SchemaError

from storefront.config import BANK_SLIP_APPROVAL_DELAY
from storefront.db import StorageKeys
from storefront.errors import ValidationError
from storefront.events import (
    ORDER_CREATED,
    ORDER_DELETED,
    ORDER_STATUS_CHANGED,
    ORDERS_REPAIRED,
    ORDERS_UPDATED,
    EventHub,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import Order, OrderDraft
from storefront.payments.constants import OrderStatus
from storefront.services.money import differs, round_money
from storefront.storage import StoragePort
from storefront.store import PersistentStore
from .scheduler import ApprovalScheduler
from .status_service import TERMINAL_STATES, can_transition, initial_status
from .totals import compute_subtotal, compute_totals

logger = get_logger(__name__)

SORT_KEYS = ("newest", "oldest", "highest", "lowest")

# Order history date windows, in whole days of age
PERIOD_DAYS = {"today": 0, "7days": 7, "30days": 30}


def generate_order_id() -> str:
    """``GZ-<last 6 digits of the ms clock>-<3 random digits>``."""
    timestamp = str(time.time_ns() // 1_000_000)
    return f"GZ-{timestamp[-6:]}-{secrets.randbelow(1000):03d}"


class OrderLedger(PersistentStore):
    """Owns every placed order, most recent first."""

    storage_key = StorageKeys.ORDERS
    event_name = ORDERS_UPDATED

    def __init__(
        self,
        storage: StoragePort,
        api=None,
        events: Optional[EventHub] = None,
        scheduler: Optional[ApprovalScheduler] = None,
        approval_delay: float = BANK_SLIP_APPROVAL_DELAY,
    ):
        super().__init__(storage, events)
        self.api = api
        self.approval_delay = approval_delay
        self._scheduler = scheduler or ApprovalScheduler()
        self._orders: list[Order] = []

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    @property
    def scheduler(self) -> ApprovalScheduler:
        return self._scheduler

    def __len__(self) -> int:
        return len(self._orders)

    def get_order(self, order_id: str) -> Optional[Order]:
        return next((order for order in self._orders if order.id == order_id), None)

    async def load(self) -> None:
        """Restore orders, then heal any stored totals that drifted."""
        await super().load()
        await self.repair_totals()

    async def record_order(self, draft: Union[OrderDraft, dict[str, Any]]) -> Order:
        """
        Create an order from a checkout draft.

        Raises:
            ValidationError: draft does not describe an order
        """
        if not isinstance(draft, OrderDraft):
            try:
                draft = OrderDraft.model_validate(draft)
            except SchemaError as e:
                raise ValidationError(f"Invalid order draft: {e.error_count()} error(s)", field="draft") from e

        subtotal, fee, final_total = compute_totals(draft.items, draft.payment_method)
        if draft.final_total is not None and differs(draft.final_total, final_total):
            logger.warning(
                f"Ignoring caller-supplied total {draft.final_total}, recomputed {final_total}"
            )

        async with self._mutation():
            order = Order(
                id=self._new_order_id(),
                created_at=datetime.now(timezone.utc),
                items=list(draft.items),
                subtotal=subtotal,
                transport_fee=fee,
                final_total=final_total,
                shipping=draft.shipping,
                payment_method=draft.payment_method,
                status=initial_status(draft.payment_method),
            )
            self._orders.insert(0, order)

        logger.info(f"Order {order.id} recorded: {order.final_total} ({order.status.value})")
        self._notify(ORDER_CREATED, {"order_id": order.id, "status": order.status.value})
        return order

    async def repair_totals(self) -> int:
        """
        Recompute subtotal/final total of every stored order.

        Only orders whose stored figures are off by more than 0.01 are
        rewritten, so a second call changes nothing.

        Returns:
            Number of orders repaired
        """
        repaired: list[str] = []
        async with self._mutation(persist=False):
            for index, order in enumerate(self._orders):
                subtotal = compute_subtotal(order.items)
                final_total = round_money(subtotal + order.transport_fee)
                if differs(order.subtotal, subtotal) or differs(order.final_total, final_total):
                    self._orders[index] = order.model_copy(
                        update={"subtotal": subtotal, "final_total": final_total}
                    )
                    repaired.append(order.id)
            if repaired:
                await self._persist()

        if repaired:
            logger.info(f"Repaired totals of {len(repaired)} order(s)")
            self._notify(ORDERS_REPAIRED, {"order_ids": repaired})
        return len(repaired)

    async def transition(self, order_id: str, target: Union[str, OrderStatus]) -> bool:
        """
        Move an order to ``target`` if the status table allows it.

        Returns:
            True if the status changed
        """
        changed_from: Optional[OrderStatus] = None
        async with self._mutation(persist=False):
            index = self._index_of(order_id)
            if index is None:
                logger.warning(f"Cannot update status of unknown order {sanitize_id_for_logging(order_id)}")
            else:
                order = self._orders[index]
                allowed, reason = can_transition(order.status, target)
                if not allowed:
                    logger.info(f"Order {sanitize_id_for_logging(order_id)} status unchanged: {reason}")
                else:
                    changed_from = order.status
                    self._orders[index] = order.model_copy(update={"status": OrderStatus(target)})
                    await self._persist()

        if changed_from is None:
            return False

        new_status = OrderStatus(target)
        if new_status in TERMINAL_STATES:
            self._scheduler.cancel(order_id)
        logger.info(f"Order {sanitize_id_for_logging(order_id)} status {changed_from.value} -> {new_status.value}")
        self._notify(
            ORDER_STATUS_CHANGED,
            {"order_id": order_id, "from": changed_from.value, "status": new_status.value},
        )
        return True

    async def advance_approval(self, order_id: str) -> bool:
        """``awaiting_approval -> approved``; no-op for any other state or a missing order."""
        order = self.get_order(order_id)
        if order is None or order.status != OrderStatus.AWAITING_APPROVAL:
            return False
        return await self.transition(order_id, OrderStatus.APPROVED)

    def schedule_approval(self, order_id: str, delay: Optional[float] = None) -> bool:
        """
        Simulate the external slip approval after ``delay`` seconds.

        Returns:
            False when the order is not awaiting approval or already has a pending task
        """
        order = self.get_order(order_id)
        if order is None or order.status != OrderStatus.AWAITING_APPROVAL:
            return False
        wait = self.approval_delay if delay is None else delay
        return self._scheduler.schedule(order_id, wait, self.advance_approval)

    def resume_approvals(self, delay: Optional[float] = None) -> int:
        """Re-arm approval for orders restored while still awaiting it."""
        return sum(
            1
            for order in self.orders
            if order.status == OrderStatus.AWAITING_APPROVAL and self.schedule_approval(order.id, delay)
        )

    async def delete_order(self, order_id: str) -> None:
        """
        Delete an order on the backend, then locally.

        Raises:
            NotFoundError: backend does not know the order
            RemoteError: backend refused or was unreachable; local state untouched
        """
        if not self._initialized:
            await self.load()

        if self.api is not None:
            await self.api.delete_order(order_id)
        else:
            logger.debug(f"No backend configured, deleting order {sanitize_id_for_logging(order_id)} locally only")

        self._scheduler.cancel(order_id)
        async with self._mutation():
            self._orders = [order for order in self._orders if order.id != order_id]

        logger.info(f"Order {sanitize_id_for_logging(order_id)} deleted")
        self._notify(ORDER_DELETED, {"order_id": order_id})

    def filter_orders(
        self,
        status: Union[str, OrderStatus, None] = None,
        query: Optional[str] = None,
        sort: str = "newest",
        period: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[Order]:
        """
        Order history view.

        Args:
            status: Keep only this status ("all" or None keeps everything)
            query: Case-insensitive match on order id or item names
            sort: newest, oldest, highest or lowest (by final total)
            period: today, 7days or 30days keeps orders at most that many whole
                days old ("all" or None keeps everything)
            now: Reference time for ``period``, defaults to the current UTC time

        Raises:
            ValidationError: unknown sort or period
        """
        result = self.orders

        if period and period != "all":
            if period not in PERIOD_DAYS:
                raise ValidationError(f"Unknown period '{period}'", field="period")
            reference = now or datetime.now(timezone.utc)
            if reference.tzinfo is None:
                reference = reference.replace(tzinfo=timezone.utc)
            result = [
                order
                for order in result
                if (reference - order.created_at) // timedelta(days=1) <= PERIOD_DAYS[period]
            ]

        if status and str(status).lower() != "all":
            wanted = str(getattr(status, "value", status)).lower()
            result = [order for order in result if order.status.value == wanted]

        if query:
            needle = query.strip().lower()
            result = [
                order
                for order in result
                if needle in order.id.lower() or any(needle in item.name.lower() for item in order.items)
            ]

        if sort not in SORT_KEYS:
            raise ValidationError(f"Unknown sort '{sort}'", field="sort")
        if sort in ("newest", "oldest"):
            result.sort(key=lambda order: order.created_at, reverse=sort == "newest")
        else:
            result.sort(key=lambda order: order.final_total, reverse=sort == "highest")
        return result

    async def fetch_remote_orders(self) -> list[dict[str, Any]]:
        """Orders as the backend lists them. Read only; never merged into the ledger."""
        if self.api is None:
            return []
        return await self.api.list_orders()

    async def close(self) -> None:
        """Teardown: no scheduled approval may fire after this."""
        await self._scheduler.close()

    def _index_of(self, order_id: str) -> Optional[int]:
        return next((index for index, order in enumerate(self._orders) if order.id == order_id), None)

    def _new_order_id(self) -> str:
        existing = {order.id for order in self._orders}
        order_id = generate_order_id()
        while order_id in existing:
            order_id = generate_order_id()
        return order_id

    def _restore(self, payload: Any) -> None:
        orders: list[Order] = []
        if payload is not None and not isinstance(payload, list):
            logger.warning(f"Ignoring orders snapshot of type {type(payload).__name__}")
            payload = None

        seen: set[str] = set()
        for raw in payload or []:
            try:
                order = Order.model_validate(raw)
            except SchemaError as e:
                logger.warning(f"Dropped invalid stored order: {e.error_count()} error(s)")
                continue
            if order.id in seen:
                continue
            seen.add(order.id)
            orders.append(order)

        self._orders = orders

    def _serialize(self) -> list[dict]:
        return [order.to_dict() for order in self._orders]

    def _event_data(self) -> dict[str, Any]:
        return {"count": len(self._orders)}
