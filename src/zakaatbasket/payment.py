"""Checkout state machine: initiate a gateway payment, then verify it.

The gateway handshake spans an external redirect. ``select_method`` asks
the gateway for a payment session and leaves the orchestrator waiting on
the redirect; the user pays on the gateway's page, which sends them back
with ``reference`` and ``donation_id`` query parameters. Feeding those to
``enter_payment_step`` (or ``resume``) verifies the payment and, once the
gateway reports it completed, clears the basket.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional
from urllib.parse import parse_qs, urlparse

from .basket import BasketManager
from .errors import APIError, ContractError, InvalidTransitionError, PaymentInProgressError
from .models import PAYMENT_METHODS, DonationBasket, Donation, PaymentSession
from .notices import NoticeBoard

logger = logging.getLogger(__name__)


class PaymentState(Enum):
    IDLE = "idle"
    METHOD_SELECTING = "selecting a payment method"
    INITIATING = "initiating payment"
    AWAITING_GATEWAY_REDIRECT = "awaiting gateway redirect"
    VERIFYING = "verifying payment"
    COMPLETED = "completed"


class StepOutcome(Enum):
    SHOW_METHOD_PROMPT = "show_method_prompt"
    REDIRECT_TO_RECIPIENTS = "redirect_to_recipients"
    PAYMENT_COMPLETED = "payment_completed"


@dataclass(frozen=True)
class SuccessRecord:
    """Handed to the confirmation view after a verified payment."""
    donation_id: str
    recipient_count: int
    total_amount: int
    donation: Optional[Donation] = None


def _first(value) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return value or None


def callback_params(query: Optional[Mapping]) -> Optional[tuple[str, str]]:
    """Return ``(donation_id, reference)`` if both callback params are present.

    Accepts a plain mapping or the lists produced by ``parse_qs``.
    """
    if not query:
        return None
    reference = _first(query.get("reference"))
    donation_id = _first(query.get("donation_id"))
    if reference and donation_id:
        return donation_id, reference
    return None


def parse_callback_url(url: str) -> Optional[tuple[str, str]]:
    """Extract ``(donation_id, reference)`` from the gateway's return URL."""
    return callback_params(parse_qs(urlparse(url).query))


def new_idempotency_key() -> str:
    return uuid.uuid4().hex


class PaymentOrchestrator:
    """Drives one basket through payment initiation and verification.

    Args:
        basket: The checkout's basket
        gateway: Object with async ``initiate_payment(basket, payment_method,
            idempotency_key=...)`` and ``verify_payment(donation_id, reference)``,
            normally an ``AsyncZakaatAPI``
        notices: Where user-facing errors are posted
        key_factory: Generates the idempotency key for each submission
    """

    def __init__(self, basket: BasketManager, gateway, notices: Optional[NoticeBoard] = None,
                 key_factory: Callable[[], str] = new_idempotency_key):
        self.basket = basket
        self.gateway = gateway
        self.notices = notices or NoticeBoard()
        self.key_factory = key_factory

        self.state = PaymentState.IDLE
        self.prompt_open = False
        self.session: Optional[PaymentSession] = None
        self.success: Optional[SuccessRecord] = None
        self.donation_id: Optional[str] = None
        self.idempotency_key: Optional[str] = None
        self._attempt = 0
        self._submitted: Optional[DonationBasket] = None

    @property
    def redirect_url(self) -> Optional[str]:
        """Where to send the user to pay, once a session exists."""
        if self.state is PaymentState.AWAITING_GATEWAY_REDIRECT and self.session:
            return self.session.payment_link
        return None

    def _set_state(self, state: PaymentState) -> None:
        if state is not self.state:
            logger.info(f"Payment state: {self.state.value} -> {state.value}")
        self.state = state

    async def enter_payment_step(self, query_params: Optional[Mapping] = None) -> StepOutcome:
        """Handle arrival at the payment step.

        With callback parameters present the payment is verified straight
        away. An empty basket sends the user back to recipient selection
        without touching the state machine.
        """
        callback = callback_params(query_params)
        if callback:
            donation_id, reference = callback
            record = await self.resume(donation_id, reference)
            return StepOutcome.PAYMENT_COMPLETED if record else StepOutcome.SHOW_METHOD_PROMPT

        if self.basket.is_empty:
            logger.info("Basket is empty, redirecting to recipient selection")
            return StepOutcome.REDIRECT_TO_RECIPIENTS

        if self.state in (PaymentState.INITIATING, PaymentState.VERIFYING):
            raise InvalidTransitionError(self.state, "enter the payment step")

        self.success = None
        self.prompt_open = True
        self._set_state(PaymentState.METHOD_SELECTING)
        return StepOutcome.SHOW_METHOD_PROMPT

    def open_method_prompt(self) -> None:
        if self.state is not PaymentState.METHOD_SELECTING:
            raise InvalidTransitionError(self.state, "choose a payment method")
        self.prompt_open = True

    def close_method_prompt(self) -> None:
        """Dismiss the payment-method prompt.

        Ignored while a session is being initiated; that call runs to
        completion.
        """
        if self.state is PaymentState.INITIATING:
            logger.debug("Payment initiation in progress, prompt stays open")
            return
        self.prompt_open = False

    async def select_method(self, method_type: str) -> Optional[PaymentSession]:
        """Start a payment with the chosen method.

        Returns:
            The gateway session (follow ``redirect_url``), or None if the
            method was rejected, initiation failed, or the attempt was
            abandoned while in flight

        Raises:
            PaymentInProgressError: If a session is already being initiated
            InvalidTransitionError: If not selecting a payment method
        """
        if self.state is PaymentState.INITIATING:
            raise PaymentInProgressError("A payment is already being initiated for this basket")
        if self.state is not PaymentState.METHOD_SELECTING:
            raise InvalidTransitionError(self.state, "choose a payment method")

        method = next((m for m in PAYMENT_METHODS if m.type == method_type), None)
        if method is None or not method.is_available:
            self.notices.error("Only Paystack payment is currently supported")
            return None

        if self.basket.is_empty:
            self.notices.error("Your donation basket is empty")
            return None

        self._attempt += 1
        attempt = self._attempt
        submitted = self.basket.snapshot()
        key = self.key_factory()
        self.idempotency_key = key
        self._set_state(PaymentState.INITIATING)

        try:
            session = await self.gateway.initiate_payment(submitted, method.type, idempotency_key=key)
        except (APIError, ContractError) as e:
            if attempt != self._attempt:
                logger.info(f"Discarding failed initiation from abandoned attempt: {e}")
                return None
            self.notices.error(f"Failed to initialize payment: {e}")
            self._set_state(PaymentState.METHOD_SELECTING)
            return None
        except BaseException:
            # cancelled or unexpected failure: leave the basket retryable
            if attempt == self._attempt and self.state is PaymentState.INITIATING:
                self._set_state(PaymentState.METHOD_SELECTING)
            raise

        if attempt != self._attempt:
            logger.info(f"Discarding payment session {session.donation_id} from abandoned attempt")
            return None

        live_total = self.basket.get_basket_total()
        if live_total != submitted.total():
            logger.warning(
                f"Basket changed while initiating payment; submitted {submitted.total()}, now {live_total}"
            )

        self.session = session
        self.donation_id = session.donation_id
        self._submitted = submitted
        self.prompt_open = False
        self._set_state(PaymentState.AWAITING_GATEWAY_REDIRECT)
        return session

    async def resume(self, donation_id: str, reference: str) -> Optional[SuccessRecord]:
        """Verify a payment after the gateway redirects back.

        On a completed payment the basket is cleared and a SuccessRecord
        returned. Anything else posts an error notice, keeps the basket,
        and goes back to method selection so the user can try again.
        """
        if self.state is PaymentState.VERIFYING:
            raise PaymentInProgressError(f"Payment {self.donation_id} is already being verified")
        if self.state is PaymentState.INITIATING:
            raise InvalidTransitionError(self.state, "verify a payment")
        if self.state is PaymentState.COMPLETED and self.success and self.success.donation_id == donation_id:
            return self.success

        self.donation_id = donation_id
        self._set_state(PaymentState.VERIFYING)

        try:
            result = await self.gateway.verify_payment(donation_id, reference)
        except (APIError, ContractError) as e:
            self.notices.error(f"Failed to verify payment: {e}")
            self._set_state(PaymentState.METHOD_SELECTING)
            return None
        except BaseException:
            if self.state is PaymentState.VERIFYING:
                self._set_state(PaymentState.METHOD_SELECTING)
            raise

        if not result.is_completed:
            logger.warning(f"Payment {donation_id} verification returned status {result.status}")
            self.notices.error("Payment verification failed")
            self._set_state(PaymentState.METHOD_SELECTING)
            return None

        record = self._success_record(donation_id, result.donation)
        self.basket.clear_basket()
        self.success = record
        self.session = None
        self._submitted = None
        self.prompt_open = False
        self._set_state(PaymentState.COMPLETED)
        self.notices.success("Donation completed")
        return record

    def abandon(self) -> None:
        """Leave checkout. Results of any in-flight initiation are dropped."""
        self._attempt += 1
        self.session = None
        self._submitted = None
        self.prompt_open = False
        self._set_state(PaymentState.IDLE)

    def _success_record(self, donation_id: str, donation: Optional[Donation]) -> SuccessRecord:
        if self._submitted is not None and self.session and self.session.donation_id == donation_id:
            basket = self._submitted
        else:
            basket = self.basket.basket

        if basket.items or donation is None:
            count, total = len(basket.items), basket.total()
        else:
            # Basket lost across the redirect; fall back to the server's record
            count, total = len(donation.recipients), donation.total_amount

        return SuccessRecord(
            donation_id=donation_id,
            recipient_count=count,
            total_amount=total,
            donation=donation,
        )
