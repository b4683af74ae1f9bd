"""
Tests for the persistence backends
"""
from unittest.mock import AsyncMock

import pytest

from storefront.errors import PersistenceError
from storefront.storage import MemoryStorage, RedisStorage, create_storage


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    @pytest.mark.asyncio
    async def test_get_set_delete(self):
        storage = MemoryStorage()
        assert await storage.get("cart") is None

        await storage.set("cart", "[]")
        assert await storage.get("cart") == "[]"

        await storage.delete("cart")
        assert await storage.get("cart") is None

    @pytest.mark.asyncio
    async def test_delete_missing_key(self):
        storage = MemoryStorage()
        await storage.delete("nothing")

    @pytest.mark.asyncio
    async def test_quota_exceeded(self):
        storage = MemoryStorage(quota=10)
        await storage.set("a", "12345")

        with pytest.raises(PersistenceError):
            await storage.set("b", "123456")

        assert "b" not in storage.data

    @pytest.mark.asyncio
    async def test_quota_counts_replaced_value_once(self):
        storage = MemoryStorage(quota=10)
        await storage.set("a", "1234567890")
        await storage.set("a", "0987654321")
        assert storage.data["a"] == "0987654321"


class TestRedisStorage:
    """Tests for RedisStorage with a mocked client."""

    @pytest.mark.asyncio
    async def test_prefixes_keys(self):
        redis = AsyncMock()
        redis.get.return_value = b'["x"]'
        storage = RedisStorage(redis=redis, prefix="shop:")

        value = await storage.get("cart")
        await storage.set("cart", "[]")
        await storage.delete("cart")

        assert value == '["x"]'
        redis.get.assert_awaited_once_with("shop:cart")
        redis.set.assert_awaited_once_with("shop:cart", "[]")
        redis.delete.assert_awaited_once_with("shop:cart")

    @pytest.mark.asyncio
    async def test_backend_failure_wrapped(self):
        redis = AsyncMock()
        redis.set.side_effect = ConnectionError("down")
        storage = RedisStorage(redis=redis)

        with pytest.raises(PersistenceError):
            await storage.set("cart", "[]")

    @pytest.mark.asyncio
    async def test_missing_credentials(self, monkeypatch):
        def fail():
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")

        monkeypatch.setattr("storefront.storage.get_redis", fail)
        storage = RedisStorage()

        with pytest.raises(PersistenceError):
            await storage.get("cart")


def test_create_storage_defaults_to_memory():
    assert isinstance(create_storage("memory"), MemoryStorage)
    assert isinstance(create_storage("something-else"), MemoryStorage)
    assert isinstance(create_storage("redis"), RedisStorage)
