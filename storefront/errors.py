"""
Error taxonomy and user-facing error messages.

Messages are centralized so stores, checkout and tests share one wording.
"""
from typing import Optional

# Cart / wishlist errors
ERROR_ITEM_ID_REQUIRED = "Item id is required"
ERROR_QUANTITY_NOT_NUMERIC = "Quantity must be a number"

# Shipping errors
ERROR_FULL_NAME_REQUIRED = "Full name is required"
ERROR_ADDRESS_REQUIRED = "Address is required"
ERROR_PHONE_REQUIRED = "Phone number is required"
ERROR_PHONE_INVALID = "Please enter a valid phone number"

# Payment errors
ERROR_PAYMENT_REQUIRED = "Please select a payment method"
ERROR_PAYMENT_UNKNOWN = "Unknown payment method"
ERROR_CARD_UNAVAILABLE = (
    "Credit card payment is currently unavailable. Please choose another payment method."
)
ERROR_TRANSPORT_REQUIRED = "Please select a delivery area"
ERROR_TRANSPORT_UNKNOWN = "Unknown delivery area"
ERROR_SLIP_REQUIRED = "Please upload your payment slip"
ERROR_SLIP_EMPTY = "The uploaded payment slip is empty"

# Checkout errors
ERROR_LOGIN_REQUIRED = "Please log in to proceed with checkout"
ERROR_CART_EMPTY = "Your cart is empty"

# Order errors
ERROR_ORDER_NOT_FOUND = "Order not found"
ERROR_ORDER_INVALID_STATUS = "Invalid order status"
ERROR_INVOICE_UNAVAILABLE = "Invoices are only available for completed or approved orders"

# Remote errors
ERROR_AUTH_FAILED = "Authentication failed. Please login again."
ERROR_DELETE_FAILED = "Failed to delete order"
ERROR_FETCH_FAILED = "Failed to load orders. Please try again."
ERROR_BACKEND_UNAVAILABLE = "Storefront service unavailable"


class StorefrontError(Exception):
    """Base class for every error raised by the storefront engine."""


class ValidationError(StorefrontError):
    """Bad input shape or range. Recovered locally and shown next to a field."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def as_field_error(self) -> dict[str, str]:
        return {self.field or "error": self.message}


class PersistenceError(StorefrontError):
    """Durable storage rejected a read or write. Never fatal for the session."""


class RemoteError(StorefrontError):
    """The backend API failed or refused a call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(RemoteError):
    """The backend does not know the requested resource."""


class StateError(StorefrontError):
    """Operation is not valid for the current stage or status."""
