"""
Checkout orchestrator.

Short-lived state machine, one per checkout attempt:

    collecting_shipping_info -> selecting_payment -> processing -> complete

Every step returns a ``CheckoutResult``; bad input and steps taken at the
wrong stage come back as errors instead of exceptions.
"""
import asyncio
import base64
import mimetypes
from decimal import Decimal
from typing import Any, Optional, Union

from storefront.cart import CartStore
from storefront.config import CHECKOUT_PROCESSING_DELAY
from storefront.errors import (
    ERROR_CARD_UNAVAILABLE,
    ERROR_CART_EMPTY,
    ERROR_LOGIN_REQUIRED,
    ERROR_PAYMENT_REQUIRED,
    ERROR_PAYMENT_UNKNOWN,
    ERROR_SLIP_EMPTY,
    ERROR_SLIP_REQUIRED,
    ERROR_TRANSPORT_REQUIRED,
    ERROR_TRANSPORT_UNKNOWN,
    StateError,
    ValidationError,
)
from storefront.events import CHECKOUT_STAGE_CHANGED, EventHub
from storefront.logging import get_logger, sanitize_string_for_logging
from storefront.models import (
    BankSlipPayment,
    CashOnDeliveryPayment,
    CardPayment,
    OrderDraft,
    OrderItem,
    ShippingInfo,
)
from storefront.orders import OrderLedger, render_invoice
from storefront.payments.constants import (
    PaymentMethod,
    TransportZone,
    normalize_payment_method,
    normalize_transport_zone,
    transport_fee,
)
from storefront.services.session import Session
from .models import CheckoutResult, CheckoutStage, SlipUpload

logger = get_logger(__name__)


class CheckoutOrchestrator:
    """Drives one checkout from shipping details to a recorded order."""

    def __init__(
        self,
        cart: CartStore,
        ledger: OrderLedger,
        session: Optional[Session] = None,
        events: Optional[EventHub] = None,
        processing_delay: float = CHECKOUT_PROCESSING_DELAY,
        approval_delay: Optional[float] = None,
    ):
        self.cart = cart
        self.ledger = ledger
        self.session = session
        self.events = events or cart.events
        self.processing_delay = processing_delay
        self.approval_delay = approval_delay

        self.stage = CheckoutStage.COLLECTING_SHIPPING_INFO
        self.prefill: dict[str, str] = {}
        self.shipping: Optional[ShippingInfo] = None
        self.payment_method: Optional[PaymentMethod] = None
        self.slip: Optional[SlipUpload] = None
        self.transport_zone: Optional[TransportZone] = None
        self.errors: dict[str, str] = {}
        self.order = None

    # Derived amounts shown on the payment step

    @property
    def subtotal(self) -> Decimal:
        return self.cart.total_price

    @property
    def transport_fee(self) -> Decimal:
        if self.payment_method != PaymentMethod.CASH_ON_DELIVERY:
            return Decimal("0")
        return transport_fee(self.transport_zone)

    @property
    def final_total(self) -> Decimal:
        return self.subtotal + self.transport_fee

    # Steps

    async def start(self) -> CheckoutResult:
        """Require a signed-in user and a non-empty cart; prefill shipping from the profile."""
        if self.stage != CheckoutStage.COLLECTING_SHIPPING_INFO:
            return self._reject("Checkout has already moved past shipping details")

        if self.session is not None and not await self.session.is_active():
            return self._fail({"session": ERROR_LOGIN_REQUIRED})

        if not self.cart.initialized:
            await self.cart.load()
        if self.cart.is_empty:
            return self._fail({"cart": ERROR_CART_EMPTY})

        if self.session is not None:
            self.prefill = await self.session.shipping_prefill()
        self.errors = {}
        return self._result(True)

    def submit_shipping_info(self, info: Any) -> CheckoutResult:
        """Validate name, address and phone; on success move to payment selection."""
        if self.stage not in (CheckoutStage.COLLECTING_SHIPPING_INFO, CheckoutStage.SELECTING_PAYMENT):
            return self._reject("Shipping details can no longer be changed")

        shipping, errors = ShippingInfo.from_input(info)
        if errors:
            return self._fail(errors)

        self.shipping = shipping
        self.errors = {}
        self._set_stage(CheckoutStage.SELECTING_PAYMENT)
        return self._result(True)

    def select_payment_method(self, method: Union[str, PaymentMethod, None]) -> CheckoutResult:
        """
        Choose how to pay.

        Leaving bank slip drops the staged slip; leaving cash on delivery
        drops the chosen delivery area.
        """
        if self.stage != CheckoutStage.SELECTING_PAYMENT:
            return self._reject("Payment can only be chosen after shipping details")

        normalized = normalize_payment_method(method)
        if normalized is None:
            return self._fail({"payment": ERROR_PAYMENT_UNKNOWN})

        if self.payment_method == PaymentMethod.BANK_SLIP and normalized != PaymentMethod.BANK_SLIP:
            self.slip = None
        if self.payment_method == PaymentMethod.CASH_ON_DELIVERY and normalized != PaymentMethod.CASH_ON_DELIVERY:
            self.transport_zone = None

        self.payment_method = normalized
        self.errors = {}
        return self._result(True)

    def attach_slip(self, data: bytes, filename: str, content_type: Optional[str] = None) -> CheckoutResult:
        """Stage the proof of payment for a bank-slip order."""
        if self.stage != CheckoutStage.SELECTING_PAYMENT or self.payment_method != PaymentMethod.BANK_SLIP:
            return self._reject("A payment slip can only be attached when paying by bank slip")
        if not data:
            return self._fail({"slip": ERROR_SLIP_EMPTY})

        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        preview = f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"
        self.slip = SlipUpload(filename=filename, content_type=content_type, data=bytes(data), preview=preview)
        self.errors.pop("slip", None)
        logger.debug(f"Slip {sanitize_string_for_logging(filename)} staged ({len(data)} bytes)")
        return self._result(True)

    def select_transport_zone(self, zone: Union[str, TransportZone, None]) -> CheckoutResult:
        """Choose the delivery area for a cash-on-delivery order."""
        if self.stage != CheckoutStage.SELECTING_PAYMENT or self.payment_method != PaymentMethod.CASH_ON_DELIVERY:
            return self._reject("A delivery area can only be chosen for cash on delivery")

        normalized = normalize_transport_zone(zone)
        if normalized is None:
            return self._fail({"transport": ERROR_TRANSPORT_UNKNOWN})

        self.transport_zone = normalized
        self.errors.pop("transport", None)
        return self._result(True)

    async def complete_order(self) -> CheckoutResult:
        """
        Place the order.

        Checks run in order: a method is chosen, it is not card, cash on
        delivery has a delivery area, bank slip has a slip. Then the cart
        snapshot is recorded in the ledger, the ordered units leave the
        cart, and a bank-slip order gets its approval scheduled.
        """
        if self.stage != CheckoutStage.SELECTING_PAYMENT:
            return self._reject("Order cannot be completed at this stage")

        errors = self._payment_errors()
        if errors:
            return self._fail(errors)

        if not self.cart.initialized:
            await self.cart.load()
        if self.cart.is_empty:
            return self._fail({"cart": ERROR_CART_EMPTY})

        lines = self.cart.snapshot()
        items = [OrderItem.from_line(line) for line in lines]
        payment = self._build_payment()

        self._set_stage(CheckoutStage.PROCESSING)
        try:
            if self.processing_delay > 0:
                await asyncio.sleep(self.processing_delay)
            order = await self.ledger.record_order(
                OrderDraft(items=items, shipping=self.shipping, payment_method=payment)
            )
        except ValidationError as e:
            self._set_stage(CheckoutStage.SELECTING_PAYMENT)
            return self._fail(e.as_field_error())
        except asyncio.CancelledError:
            self._set_stage(CheckoutStage.SELECTING_PAYMENT)
            raise

        await self.cart.remove_ordered(lines)
        self.order = order
        self._set_stage(CheckoutStage.COMPLETE)

        if order.method == PaymentMethod.BANK_SLIP:
            self.ledger.schedule_approval(order.id, self.approval_delay)

        return self._result(True)

    def invoice(self) -> str:
        """
        Printable invoice for the order placed by this checkout.

        Raises:
            StateError: no order yet, or it is still awaiting approval
        """
        if self.order is None:
            raise StateError("No order has been placed yet")
        current = self.ledger.get_order(self.order.id) or self.order
        return render_invoice(current)

    # Helpers

    def _payment_errors(self) -> dict[str, str]:
        if self.payment_method is None:
            return {"payment": ERROR_PAYMENT_REQUIRED}
        if self.payment_method == PaymentMethod.CARD:
            # Card processing is not offered; always refused
            return {"payment": ERROR_CARD_UNAVAILABLE}
        if self.payment_method == PaymentMethod.CASH_ON_DELIVERY and self.transport_zone is None:
            return {"transport": ERROR_TRANSPORT_REQUIRED}
        if self.payment_method == PaymentMethod.BANK_SLIP and self.slip is None:
            return {"slip": ERROR_SLIP_REQUIRED}
        return {}

    def _build_payment(self) -> Union[CardPayment, BankSlipPayment, CashOnDeliveryPayment]:
        if self.payment_method == PaymentMethod.BANK_SLIP:
            return BankSlipPayment(
                filename=self.slip.filename,
                content_type=self.slip.content_type,
                slip_image=self.slip.preview,
            )
        if self.payment_method == PaymentMethod.CASH_ON_DELIVERY:
            return CashOnDeliveryPayment(transport_zone=self.transport_zone)
        return CardPayment()

    def _set_stage(self, stage: CheckoutStage) -> None:
        if stage == self.stage:
            return
        previous = self.stage
        self.stage = stage
        self.events.emit(CHECKOUT_STAGE_CHANGED, {"from": previous.value, "stage": stage.value})

    def _result(self, ok: bool, errors: Optional[dict[str, str]] = None) -> CheckoutResult:
        return CheckoutResult(
            ok=ok,
            stage=self.stage,
            errors=dict(errors if errors is not None else self.errors),
            order=self.order,
        )

    def _fail(self, errors: dict[str, str]) -> CheckoutResult:
        self.errors = dict(errors)
        logger.info(f"Checkout step failed at {self.stage.value}: {sorted(errors)}")
        return self._result(False)

    def _reject(self, reason: str) -> CheckoutResult:
        logger.warning(f"Checkout step rejected at {self.stage.value}: {reason}")
        return self._result(False, {"state": reason})
