"""
Persistence port and its backends.

Every stateful store talks to durable storage through ``StoragePort``:
string values keyed by name, nothing more. Backends raise
``PersistenceError`` when a read or write fails; stores decide what that
means for them.
"""
from typing import Optional, Protocol

from storefront.config import STOREFRONT_KEY_PREFIX, STOREFRONT_STORAGE
from storefront.db import get_redis
from storefront.errors import PersistenceError
from storefront.logging import get_logger

logger = get_logger(__name__)


class StoragePort(Protocol):
    """Async key-value storage."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryStorage:
    """
    Dict-backed storage.

    ``quota`` caps the total number of characters held, the way browser
    storage refuses writes once full.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None, quota: Optional[int] = None):
        self.data: dict[str, str] = dict(initial or {})
        self.quota = quota

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self.data.items() if k != key)
            if used + len(value) > self.quota:
                raise PersistenceError(f"Storage quota exceeded while writing '{key}'")
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class RedisStorage:
    """Upstash Redis backed storage. Keys are namespaced with ``prefix``."""

    def __init__(self, redis=None, prefix: str = STOREFRONT_KEY_PREFIX):
        self._redis = redis  # Lazy initialization
        self.prefix = prefix

    @property
    def redis(self):
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise PersistenceError(f"Redis not available: {e}") from e
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.redis.get(self._key(key))
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to read '{key}' from Redis: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self.redis.set(self._key(key), value)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to write '{key}' to Redis: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to delete '{key}' from Redis: {e}") from e


def create_storage(backend: Optional[str] = None) -> StoragePort:
    """Build the configured backend (``STOREFRONT_STORAGE``)."""
    backend = (backend or STOREFRONT_STORAGE).lower()
    if backend == "redis":
        return RedisStorage()
    if backend != "memory":
        logger.warning(f"Unknown storage backend '{backend}', falling back to memory")
    return MemoryStorage()
