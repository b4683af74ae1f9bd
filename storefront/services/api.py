"""
Storefront backend API client.

Only the calls the commerce engine depends on are wrapped here: listing
the signed-in user's orders and deleting an order. The bearer token is
read from the session on every call and attached when present.
"""
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.config import STOREFRONT_API_TIMEOUT, STOREFRONT_API_URL
from storefront.errors import (
    ERROR_AUTH_FAILED,
    ERROR_BACKEND_UNAVAILABLE,
    ERROR_DELETE_FAILED,
    ERROR_FETCH_FAILED,
    ERROR_ORDER_NOT_FOUND,
    NotFoundError,
    RemoteError,
)
from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


def _raise_for_status(response: httpx.Response, fallback: str) -> None:
    if response.is_success:
        return
    if response.status_code == 401:
        raise RemoteError(ERROR_AUTH_FAILED, status_code=401)
    if response.status_code == 404:
        raise NotFoundError(ERROR_ORDER_NOT_FOUND, status_code=404)
    raise RemoteError(f"{fallback}: {response.status_code}", status_code=response.status_code)


class StorefrontAPI:
    """Async client for the storefront REST API."""

    def __init__(
        self,
        base_url: str = STOREFRONT_API_URL,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = STOREFRONT_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None  # Lazy initialization

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = await self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        reraise=True,
    )
    async def _get(self, path: str) -> httpx.Response:
        return await self.client.get(path, headers=await self._headers())

    async def list_orders(self) -> list[dict[str, Any]]:
        """
        GET /api/orders.

        Raises:
            RemoteError: backend failed or rejected the token
        """
        try:
            response = await self._get("/api/orders")
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch orders: {type(e).__name__}", exc_info=True)
            raise RemoteError(ERROR_FETCH_FAILED) from e

        _raise_for_status(response, ERROR_FETCH_FAILED)
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(ERROR_FETCH_FAILED, status_code=response.status_code) from e
        return data if isinstance(data, list) else []

    async def delete_order(self, order_id: str) -> None:
        """
        DELETE /api/orders/{order_id}.

        Raises:
            NotFoundError: backend has no such order
            RemoteError: any other failure
        """
        try:
            response = await self.client.delete(
                f"/api/orders/{order_id}", headers=await self._headers()
            )
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to delete order {sanitize_id_for_logging(order_id)}: {type(e).__name__}",
                exc_info=True,
            )
            raise RemoteError(ERROR_BACKEND_UNAVAILABLE) from e

        _raise_for_status(response, ERROR_DELETE_FAILED)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
