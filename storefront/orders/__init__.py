"""Order processing module."""
from .invoice import render_invoice
from .ledger import OrderLedger, generate_order_id
from .scheduler import ApprovalScheduler
from .status_service import TRANSITIONS, can_transition, initial_status
from .totals import compute_subtotal, compute_totals, compute_transport_fee

__all__ = [
    "ApprovalScheduler",
    "OrderLedger",
    "TRANSITIONS",
    "can_transition",
    "compute_subtotal",
    "compute_totals",
    "compute_transport_fee",
    "generate_order_id",
    "initial_status",
    "render_invoice",
]
