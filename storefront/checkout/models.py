"""Checkout stages, results and staged uploads."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from storefront.models import Order


class CheckoutStage(str, Enum):
    COLLECTING_SHIPPING_INFO = "collecting_shipping_info"
    SELECTING_PAYMENT = "selecting_payment"
    PROCESSING = "processing"
    COMPLETE = "complete"


@dataclass
class CheckoutResult:
    """Outcome of one checkout step. Failures carry field-scoped messages."""
    ok: bool
    stage: CheckoutStage
    errors: dict[str, str] = field(default_factory=dict)
    order: Optional[Order] = None


@dataclass
class SlipUpload:
    """Proof of payment staged for a bank-slip order."""
    filename: str
    content_type: str
    data: bytes
    preview: str  # data: URL

    @property
    def size(self) -> int:
        return len(self.data)
