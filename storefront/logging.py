"""
Centralized logging configuration for the storefront engine.

Usage:
    from storefront.logging import get_logger
    logger = get_logger(__name__)

    logger.info("Cart restored")
    logger.error("Failed to persist cart", exc_info=True)
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"


def _get_log_level() -> int:
    """Get log level from environment or default to INFO."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _configure_root_logger() -> None:
    """Attach a stdout handler to the root logger unless one is already there."""
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(_get_log_level())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_get_log_level())

    # Short lines in production, timestamps locally
    is_production = os.environ.get("STOREFRONT_ENV") == "production"
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if is_production else LOG_FORMAT))
    root.addHandler(handler)

    # Every backend round-trip would otherwise log twice
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def _escape_log_injection(value: str) -> str:
    """Neutralise characters that could forge log lines (CWE-117)."""
    return (
        value.replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def sanitize_id_for_logging(id_value: str | None) -> str:
    """
    Sanitize an id for logging.

    Product and order ids arrive from the UI and persisted storage, so they
    are escaped and truncated to 16 characters, enough for a full order id.

    Args:
        id_value: Id to sanitize (can be None)

    Returns:
        Sanitized id or "N/A" if empty
    """
    if not id_value:
        return "N/A"
    safe_value = _escape_log_injection(str(id_value))
    return safe_value[:16]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """Escape and truncate free text (names, filenames) before logging it."""
    if not value:
        return "N/A"
    safe_value = _escape_log_injection(str(value))
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
