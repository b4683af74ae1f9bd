"""Base class for stores persisted as one JSON document under one key."""
import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from storefront.errors import PersistenceError
from storefront.events import EventHub
from storefront.logging import get_logger
from storefront.storage import StoragePort

logger = get_logger(__name__)


class PersistentStore:
    """
    Shared load/persist discipline for the cart, wishlist and order ledger.

    - ``load()`` restores the snapshot once; until it has finished, every
      mutation waits for it instead of running against empty state.
    - Mutations run under a lock and return only after the write was
      attempted, so the next read always sees the previous call.
    - Storage failures are logged; in-memory state stays authoritative.

    Subclasses set ``storage_key`` and ``event_name`` and implement
    ``_restore`` and ``_serialize``.
    """

    storage_key: str = ""
    event_name: str = ""

    def __init__(self, storage: StoragePort, events: Optional[EventHub] = None):
        self.storage = storage
        self.events = events or EventHub()
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def load(self) -> None:
        """Restore state from storage. Safe to call more than once."""
        async with self._lock:
            if self._initialized:
                return
            payload = await self._read()
            self._restore(payload)
            self._initialized = True
        logger.debug(f"Loaded '{self.storage_key}'")
        self._notify()

    @asynccontextmanager
    async def _mutation(self, persist: bool = True) -> AsyncIterator[None]:
        """Run a change after load, under the store lock, then persist and notify."""
        if not self._initialized:
            await self.load()
        async with self._lock:
            yield
            if persist:
                await self._persist()
        self._notify()

    def _restore(self, payload: Any) -> None:
        raise NotImplementedError

    def _serialize(self) -> Any:
        raise NotImplementedError

    def _event_data(self) -> dict[str, Any]:
        return {}

    def _notify(self, event: Optional[str] = None, data: Optional[dict[str, Any]] = None) -> None:
        self.events.emit(event or self.event_name, data if data is not None else self._event_data())

    async def _read(self) -> Any:
        try:
            raw = await self.storage.get(self.storage_key)
        except PersistenceError as e:
            logger.error(f"Failed to read '{self.storage_key}': {e}", exc_info=True)
            return None

        if raw is None or raw == "":
            return None

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            # Corrupted snapshot - drop it so the next write starts clean
            logger.warning(f"Corrupted '{self.storage_key}' snapshot discarded: {e}")
            await self._discard()
            return None

    async def _persist(self) -> bool:
        try:
            await self.storage.set(self.storage_key, json.dumps(self._serialize()))
            return True
        except PersistenceError as e:
            logger.error(f"Failed to save '{self.storage_key}': {e}", exc_info=True)
            return False

    async def _discard(self) -> bool:
        try:
            await self.storage.delete(self.storage_key)
            return True
        except PersistenceError as e:
            logger.error(f"Failed to remove '{self.storage_key}': {e}", exc_info=True)
            return False
