"""
Database Module - Upstash Redis client and storage keys.

The Redis client is created lazily so the engine can run fully in memory
when no Upstash credentials are configured.
"""
from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from storefront.config import UPSTASH_REDIS_REST_URL, UPSTASH_REDIS_REST_TOKEN

_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses the standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not UPSTASH_REDIS_REST_URL or not UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(url=UPSTASH_REDIS_REST_URL, token=UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


class StorageKeys:
    """Storage keys. Each store reads and writes only its own key."""

    CART = "cart"
    WISHLIST = "wishlist"
    ORDERS = "orders"

    # Owned by the auth collaborator, read-only here
    USER = "user"
    AUTH_TOKEN = "authToken"
