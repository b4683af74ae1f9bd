"""Read-only view of the signed-in user.

The auth collaborator writes ``authToken`` and ``user``; this engine only
checks whether a token is present and reads the profile to prefill
checkout. The token itself is never validated here.
"""
import json
from typing import Any, Optional

from storefront.db import StorageKeys
from storefront.errors import PersistenceError
from storefront.logging import get_logger
from storefront.storage import StoragePort

logger = get_logger(__name__)


class Session:
    def __init__(self, storage: StoragePort):
        self.storage = storage

    async def _get(self, key: str) -> Optional[str]:
        try:
            return await self.storage.get(key)
        except PersistenceError as e:
            logger.error(f"Failed to read '{key}': {e}", exc_info=True)
            return None

    async def token(self) -> Optional[str]:
        raw = await self._get(StorageKeys.AUTH_TOKEN)
        if raw is None:
            return None
        token = raw.strip()
        # Tolerate a JSON-encoded string as well as the bare token
        if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
            token = token[1:-1].strip()
        return token or None

    async def is_active(self) -> bool:
        return await self.token() is not None

    async def profile(self) -> Optional[dict[str, Any]]:
        raw = await self._get(StorageKeys.USER)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored user profile is not valid JSON")
            return None
        return data if isinstance(data, dict) else None

    async def user_id(self) -> Optional[str]:
        profile = await self.profile()
        if not profile or profile.get("id") in (None, ""):
            return None
        return str(profile["id"])

    async def shipping_prefill(self) -> dict[str, str]:
        """Shipping form values taken from the stored profile."""
        profile = await self.profile() or {}
        address = profile.get("address")
        return {
            "full_name": str(profile.get("name") or profile.get("fullName") or ""),
            "address": address if isinstance(address, str) else "",
            "phone_number": str(profile.get("phone") or ""),
        }
