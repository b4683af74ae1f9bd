"""Cancelable delayed tasks keyed by order id."""
import asyncio
from typing import Awaitable, Callable

from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

Callback = Callable[[str], Awaitable[object]]


class ApprovalScheduler:
    """
    At most one pending task per order id.

    The ledger cancels an order's task when the order is deleted and all
    tasks on teardown, so a late timer can never touch a removed order.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def is_pending(self, order_id: str) -> bool:
        task = self._tasks.get(order_id)
        return task is not None and not task.done()

    @property
    def pending(self) -> list[str]:
        return [order_id for order_id in self._tasks if self.is_pending(order_id)]

    def schedule(self, order_id: str, delay: float, callback: Callback) -> bool:
        """
        Run ``callback(order_id)`` after ``delay`` seconds.

        Returns:
            False if a task for this order is already pending
        """
        if self.is_pending(order_id):
            logger.debug(f"Task for order {sanitize_id_for_logging(order_id)} already pending, not stacking another")
            return False

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(order_id, delay, callback), name=f"approval:{order_id}")
        self._tasks[order_id] = task
        return True

    def cancel(self, order_id: str) -> bool:
        task = self._tasks.pop(order_id, None)
        # A task settling its own order finishes normally
        if task is None or task.done() or task is asyncio.current_task():
            return False
        task.cancel()
        return True

    async def close(self) -> None:
        """Cancel every pending task and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, order_id: str, delay: float, callback: Callback) -> None:
        try:
            await asyncio.sleep(delay)
            await callback(order_id)
        except asyncio.CancelledError:
            logger.debug(f"Scheduled task for order {sanitize_id_for_logging(order_id)} cancelled")
            raise
        except Exception as e:
            logger.error(f"Scheduled task for order {sanitize_id_for_logging(order_id)} failed: {e}", exc_info=True)
        finally:
            if self._tasks.get(order_id) is asyncio.current_task():
                self._tasks.pop(order_id, None)
