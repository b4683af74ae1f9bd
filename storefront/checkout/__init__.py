"""Checkout: turns the cart plus shipping and payment input into an order."""
from .models import CheckoutResult, CheckoutStage, SlipUpload
from .orchestrator import CheckoutOrchestrator

__all__ = [
    "CheckoutOrchestrator",
    "CheckoutResult",
    "CheckoutStage",
    "SlipUpload",
]
