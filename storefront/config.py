"""Runtime configuration read from the environment."""
import os


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Backend API
STOREFRONT_API_URL = os.environ.get("STOREFRONT_API_URL", "http://localhost:8082")
STOREFRONT_API_TIMEOUT = _float_env("STOREFRONT_API_TIMEOUT", 10.0)

# Persistence: "memory" keeps state for the process lifetime, "redis" uses Upstash
STOREFRONT_STORAGE = os.environ.get("STOREFRONT_STORAGE", "memory").lower()
STOREFRONT_KEY_PREFIX = os.environ.get("STOREFRONT_KEY_PREFIX", "")

# Upstash Redis (same variable names as the Upstash docs)
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# Checkout timings (seconds)
CHECKOUT_PROCESSING_DELAY = _float_env("CHECKOUT_PROCESSING_DELAY", 2.0)
BANK_SLIP_APPROVAL_DELAY = _float_env("BANK_SLIP_APPROVAL_DELAY", 10.0)
