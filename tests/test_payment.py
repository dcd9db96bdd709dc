"""Tests for the checkout payment state machine."""

import asyncio

import pytest

from zakaatbasket.basket import BasketManager
from zakaatbasket.errors import APIError, InvalidTransitionError, PaymentInProgressError
from zakaatbasket.models import Donation, PaymentSession, VerificationResult
from zakaatbasket.notices import NoticeBoard
from zakaatbasket.payment import (
    PaymentOrchestrator,
    PaymentState,
    StepOutcome,
    callback_params,
    parse_callback_url,
)


class FakeGateway:
    def __init__(self, verify_status="completed", donation=None):
        self.initiated = []
        self.verified = []
        self.initiate_error = None
        self.verify_error = None
        self.verify_status = verify_status
        self.donation = donation
        self.block = None

    async def initiate_payment(self, basket, payment_method, idempotency_key=None):
        self.initiated.append((basket, payment_method, idempotency_key))
        if self.block:
            await self.block.wait()
        if self.initiate_error:
            raise self.initiate_error
        return PaymentSession(
            donation_id=f"don-{len(self.initiated)}",
            payment_link="https://checkout.paystack.com/abc",
            reference="ref-1",
        )

    async def verify_payment(self, donation_id, reference):
        self.verified.append((donation_id, reference))
        if self.verify_error:
            raise self.verify_error
        return VerificationResult(status=self.verify_status, donation=self.donation)


@pytest.fixture
def basket(make_recipient):
    manager = BasketManager()
    manager.add_to_basket(make_recipient("a"))
    manager.add_to_basket(make_recipient("b"))
    return manager


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def orchestrator(basket, gateway):
    keys = iter(f"key-{i}" for i in range(1, 100))
    return PaymentOrchestrator(basket, gateway, NoticeBoard(), key_factory=lambda: next(keys))


def run(coro):
    return asyncio.run(coro)


class TestCallbackParams:
    def test_both_present(self):
        assert callback_params({"reference": "r", "donation_id": "d"}) == ("d", "r")

    def test_parse_qs_lists(self):
        assert callback_params({"reference": ["r"], "donation_id": ["d"]}) == ("d", "r")

    def test_missing_one(self):
        assert callback_params({"reference": "r"}) is None
        assert callback_params(None) is None

    def test_parse_url(self):
        url = "https://app.example/zakaat/donation/payment?reference=abc&donation_id=42&trxref=abc"
        assert parse_callback_url(url) == ("42", "abc")
        assert parse_callback_url("https://app.example/payment") is None


class TestEnterPaymentStep:
    def test_shows_prompt(self, orchestrator):
        assert run(orchestrator.enter_payment_step()) is StepOutcome.SHOW_METHOD_PROMPT
        assert orchestrator.state is PaymentState.METHOD_SELECTING
        assert orchestrator.prompt_open

    def test_empty_basket_redirects(self, gateway):
        orchestrator = PaymentOrchestrator(BasketManager(), gateway)
        assert run(orchestrator.enter_payment_step()) is StepOutcome.REDIRECT_TO_RECIPIENTS
        assert orchestrator.state is PaymentState.IDLE

    def test_callback_params_verify(self, orchestrator, gateway):
        outcome = run(orchestrator.enter_payment_step({"reference": "ref-9", "donation_id": "don-9"}))
        assert outcome is StepOutcome.PAYMENT_COMPLETED
        assert gateway.verified == [("don-9", "ref-9")]
        assert orchestrator.state is PaymentState.COMPLETED


class TestSelectMethod:
    def test_initiates_and_awaits_redirect(self, orchestrator, gateway, basket):
        basket.distribute_equally(100000)
        basket.set_support_zaakiyah(True, 100000)

        async def scenario():
            await orchestrator.enter_payment_step()
            return await orchestrator.select_method("paystack")

        session = run(scenario())
        assert session.donation_id == "don-1"
        assert orchestrator.state is PaymentState.AWAITING_GATEWAY_REDIRECT
        assert orchestrator.redirect_url == "https://checkout.paystack.com/abc"
        submitted, method, key = gateway.initiated[0]
        assert method == "paystack"
        assert key == "key-1"
        assert submitted.total() == basket.get_basket_total() == 200000

    def test_wallet_not_supported(self, orchestrator, gateway):
        async def scenario():
            await orchestrator.enter_payment_step()
            return await orchestrator.select_method("wallet")

        assert run(scenario()) is None
        assert gateway.initiated == []
        assert orchestrator.state is PaymentState.METHOD_SELECTING
        assert "Paystack" in orchestrator.notices.latest.message

    def test_initiation_failure_keeps_basket(self, orchestrator, gateway, basket):
        basket.distribute_equally(1000)
        gateway.initiate_error = APIError("Recipient no longer accepting donations", 400)

        async def scenario():
            await orchestrator.enter_payment_step()
            return await orchestrator.select_method("paystack")

        assert run(scenario()) is None
        assert orchestrator.state is PaymentState.METHOD_SELECTING
        assert basket.get_basket_total() == 1000
        assert "no longer accepting" in orchestrator.notices.latest.message

    def test_retry_uses_new_idempotency_key(self, orchestrator, gateway):
        gateway.initiate_error = APIError("boom", 500)

        async def scenario():
            await orchestrator.enter_payment_step()
            await orchestrator.select_method("paystack")
            gateway.initiate_error = None
            return await orchestrator.select_method("paystack")

        assert run(scenario()) is not None
        assert [k for _, _, k in gateway.initiated] == ["key-1", "key-2"]

    def test_requires_method_selection_state(self, orchestrator):
        with pytest.raises(InvalidTransitionError):
            run(orchestrator.select_method("paystack"))

    def test_double_initiation_rejected(self, orchestrator, gateway, basket):
        basket.distribute_equally(1000)

        async def scenario():
            gateway.block = asyncio.Event()
            await orchestrator.enter_payment_step()
            task = asyncio.create_task(orchestrator.select_method("paystack"))
            await asyncio.sleep(0)
            assert orchestrator.state is PaymentState.INITIATING
            with pytest.raises(PaymentInProgressError):
                await orchestrator.select_method("paystack")
            # edits made while the request is in flight are not submitted
            basket.update_basket_item_amount("a", 99999)
            orchestrator.close_method_prompt()
            gateway.block.set()
            return await task

        session = run(scenario())
        assert session is not None
        assert len(gateway.initiated) == 1
        assert gateway.initiated[0][0].total() == 1000
        assert orchestrator.state is PaymentState.AWAITING_GATEWAY_REDIRECT

    def test_abandoned_attempt_discarded(self, orchestrator, gateway):
        async def scenario():
            gateway.block = asyncio.Event()
            await orchestrator.enter_payment_step()
            task = asyncio.create_task(orchestrator.select_method("paystack"))
            await asyncio.sleep(0)
            orchestrator.abandon()
            gateway.block.set()
            return await task

        assert run(scenario()) is None
        assert orchestrator.state is PaymentState.IDLE
        assert orchestrator.redirect_url is None

    def test_cancelled_initiation_allows_retry(self, orchestrator, gateway, basket):
        basket.distribute_equally(1000)
        gateway.initiate_error = asyncio.CancelledError()

        async def scenario():
            await orchestrator.enter_payment_step()
            with pytest.raises(asyncio.CancelledError):
                await orchestrator.select_method("paystack")
            assert orchestrator.state is PaymentState.METHOD_SELECTING
            assert await orchestrator.enter_payment_step() is StepOutcome.SHOW_METHOD_PROMPT
            gateway.initiate_error = None
            return await orchestrator.select_method("paystack")

        assert run(scenario()) is not None
        assert basket.get_basket_total() == 1000
        assert orchestrator.state is PaymentState.AWAITING_GATEWAY_REDIRECT

    def test_unexpected_initiation_error_propagates(self, orchestrator, gateway):
        gateway.initiate_error = RuntimeError("connector closed")

        async def scenario():
            await orchestrator.enter_payment_step()
            await orchestrator.select_method("paystack")

        with pytest.raises(RuntimeError):
            run(scenario())
        assert orchestrator.state is PaymentState.METHOD_SELECTING

    def test_prompt_close_and_reopen(self, orchestrator):
        run(orchestrator.enter_payment_step())
        orchestrator.close_method_prompt()
        assert not orchestrator.prompt_open
        assert orchestrator.state is PaymentState.METHOD_SELECTING
        orchestrator.open_method_prompt()
        assert orchestrator.prompt_open


class TestResume:
    def test_completed_clears_basket(self, orchestrator, basket):
        basket.distribute_equally(100000)

        async def scenario():
            await orchestrator.enter_payment_step()
            session = await orchestrator.select_method("paystack")
            return await orchestrator.resume(session.donation_id, session.reference)

        record = run(scenario())
        assert record.recipient_count == 2
        assert record.total_amount == 100000
        assert basket.is_empty
        assert orchestrator.state is PaymentState.COMPLETED

    def test_record_uses_submitted_amounts(self, orchestrator, basket):
        basket.distribute_equally(100000)

        async def scenario():
            await orchestrator.enter_payment_step()
            session = await orchestrator.select_method("paystack")
            basket.update_basket_item_amount("a", 1)
            return await orchestrator.resume(session.donation_id, session.reference)

        assert run(scenario()).total_amount == 100000

    def test_non_completed_status_keeps_basket(self, orchestrator, gateway, basket):
        basket.distribute_equally(1000)
        gateway.verify_status = "failed"
        record = run(orchestrator.resume("don-1", "ref-1"))
        assert record is None
        assert orchestrator.state is PaymentState.METHOD_SELECTING
        assert basket.get_basket_total() == 1000
        assert orchestrator.notices.latest.message == "Payment verification failed"

    def test_verify_error_allows_retry(self, orchestrator, gateway, basket):
        basket.distribute_equally(1000)
        gateway.verify_error = APIError("Gateway timeout", 504)

        async def scenario():
            assert await orchestrator.resume("don-1", "ref-1") is None
            assert orchestrator.state is PaymentState.METHOD_SELECTING
            gateway.verify_error = None
            return await orchestrator.select_method("paystack")

        assert run(scenario()) is not None

    def test_unexpected_verify_error_allows_retry(self, orchestrator, gateway, basket):
        basket.distribute_equally(1000)
        gateway.verify_error = RuntimeError("event loop closed")
        with pytest.raises(RuntimeError):
            run(orchestrator.resume("don-1", "ref-1"))
        assert orchestrator.state is PaymentState.METHOD_SELECTING
        assert basket.get_basket_total() == 1000

        gateway.verify_error = None
        assert run(orchestrator.resume("don-1", "ref-1")) is not None
        assert orchestrator.state is PaymentState.COMPLETED

    def test_cancelled_verify_allows_retry(self, orchestrator, gateway, basket):
        basket.distribute_equally(1000)
        gateway.verify_error = asyncio.CancelledError()

        async def scenario():
            with pytest.raises(asyncio.CancelledError):
                await orchestrator.resume("don-1", "ref-1")
            return orchestrator.state

        assert run(scenario()) is PaymentState.METHOD_SELECTING
        assert basket.get_basket_total() == 1000

    def test_record_from_donation_when_basket_lost(self, gateway, donation_payload):
        gateway.donation = Donation.from_dict(donation_payload)
        orchestrator = PaymentOrchestrator(BasketManager(), gateway)
        record = run(orchestrator.resume("don-1", "ref-123"))
        assert record.recipient_count == 2
        assert record.total_amount == 200000
        assert record.donation.id == "don-1"

    def test_repeat_callback_is_idempotent(self, orchestrator, gateway):
        async def scenario():
            first = await orchestrator.resume("don-1", "ref-1")
            second = await orchestrator.resume("don-1", "ref-1")
            return first, second

        first, second = run(scenario())
        assert first is second
        assert len(gateway.verified) == 1


class TestEndToEnd:
    def test_two_recipients_with_support(self, basket, gateway):
        notices = NoticeBoard()
        orchestrator = PaymentOrchestrator(basket, gateway, notices)

        basket.distribute_equally(100000)
        assert [i.amount for i in basket.basket.items] == [50000, 50000]
        basket.set_support_zaakiyah(True, 100000)
        assert basket.get_basket_total() == 200000

        async def scenario():
            await orchestrator.enter_payment_step()
            session = await orchestrator.select_method("paystack")
            query = {"reference": session.reference, "donation_id": session.donation_id}
            return await orchestrator.enter_payment_step(query)

        assert run(scenario()) is StepOutcome.PAYMENT_COMPLETED
        assert len(basket.basket.items) == 0
        assert basket.basket.zaakiyah_amount == 0
        assert orchestrator.success.total_amount == 200000
        assert notices.latest.level == "success"
