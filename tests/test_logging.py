"""
Tests for log sanitisation
"""
import logging

import pytest

from storefront.logging import sanitize_id_for_logging, sanitize_string_for_logging
from storefront.orders import OrderLedger


class TestSanitize:
    """Tests for sanitize helpers."""

    def test_full_order_id_kept(self):
        assert sanitize_id_for_logging("GZ-123456-001") == "GZ-123456-001"

    def test_id_escaped_and_truncated(self):
        assert sanitize_id_for_logging("GZ-1\nFAKE LINE") == "GZ-1\\nFAKE LINE"
        assert len(sanitize_id_for_logging("x" * 40)) == 16
        assert sanitize_id_for_logging(None) == "N/A"

    def test_string_truncated(self):
        assert sanitize_string_for_logging("a" * 60, max_length=10) == "a" * 10 + "..."


@pytest.mark.asyncio
async def test_ledger_logs_sanitized_order_id(storage, caplog):
    ledger = OrderLedger(storage)
    caplog.set_level(logging.DEBUG, logger="storefront.orders.ledger")

    await ledger.delete_order("GZ-1\nforged entry")

    messages = [record.getMessage() for record in caplog.records]
    assert any("GZ-1\\nforged ent" in message for message in messages)
    assert not any("\n" in message for message in messages)
