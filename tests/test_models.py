"""Tests for data models."""

import dataclasses

import pytest

from zakaatbasket.errors import ContractError
from zakaatbasket.models import (
    BasketItem,
    PAYMENT_METHODS,
    Donation,
    DonationBasket,
    PaginationMeta,
    PaymentSession,
    Recipient,
    VerificationResult,
)


class TestRecipient:
    def test_from_dict(self, recipient_payload):
        recipient = Recipient.from_dict(recipient_payload)
        assert recipient.id == "rec-1"
        assert recipient.application_id == "app-1"
        assert recipient.requested_amount == 25_000_000
        assert recipient.total_donations == 2_500_050
        assert recipient.shortfall == 17_499_950
        assert recipient.category == "education"
        assert recipient.supporting_documents[0].name == "Admission Letter"

    def test_from_dict_minimal(self):
        recipient = Recipient.from_dict({
            "id": 7, "applicationId": "a7", "name": "Test",
            "requestedAmount": 100, "shortfall": 100,
        })
        assert recipient.id == "7"
        assert recipient.disbursed_amount is None
        assert recipient.status == "ready"
        assert recipient.location == ""

    def test_missing_required_field(self, recipient_payload):
        del recipient_payload["applicationId"]
        with pytest.raises(ContractError, match="applicationId"):
            Recipient.from_dict(recipient_payload)

    def test_bad_status(self, recipient_payload):
        recipient_payload["status"] = "rejected"
        with pytest.raises(ContractError, match="status"):
            Recipient.from_dict(recipient_payload)

    def test_negative_requested_amount_rejected(self, recipient_payload):
        recipient_payload["requestedAmount"] = -5
        with pytest.raises(ContractError, match="requestedAmount"):
            Recipient.from_dict(recipient_payload)

    def test_negative_shortfall_allowed(self, recipient_payload):
        recipient_payload["shortfall"] = -100
        recipient = Recipient.from_dict(recipient_payload)
        assert recipient.shortfall == -10000
        assert recipient.is_fully_funded

    def test_expected_shortfall(self, recipient_payload):
        recipient = Recipient.from_dict(recipient_payload)
        assert recipient.expected_shortfall() == recipient.shortfall

    def test_funding_progress(self, make_recipient):
        recipient = make_recipient(requested_amount=1000, disbursed_amount=250, total_donations=250)
        assert recipient.funding_progress() == 50.0

    def test_funding_progress_clamped(self, make_recipient):
        recipient = make_recipient(requested_amount=1000, total_donations=5000)
        assert recipient.funding_progress() == 100.0

    def test_to_dict(self, make_recipient):
        d = make_recipient("r9").to_dict()
        assert d["id"] == "r9"
        assert d["supporting_documents"] == []


class TestDonation:
    def test_from_dict(self, donation_payload):
        donation = Donation.from_dict(donation_payload)
        assert donation.is_completed
        assert donation.total_amount == 200000
        assert len(donation.recipients) == 2
        assert donation.recipients[0].amount == 50000

    def test_immutable(self, donation_payload):
        donation = Donation.from_dict(donation_payload)
        with pytest.raises(dataclasses.FrozenInstanceError):
            donation.payment_status = "failed"

    def test_missing_status(self, donation_payload):
        del donation_payload["paymentStatus"]
        with pytest.raises(ContractError, match="paymentStatus"):
            Donation.from_dict(donation_payload)

    def test_to_dict(self, donation_payload):
        d = Donation.from_dict(donation_payload).to_dict()
        assert d["recipients"][1]["recipient_name"] == "Musa Ali"


class TestDonationBasket:
    def test_empty_total(self):
        assert DonationBasket().total() == 0

    def test_total_includes_support(self, make_recipient):
        basket = DonationBasket(
            items=[BasketItem("a", make_recipient("a"), 100), BasketItem("b", make_recipient("b"), 250)],
            zaakiyah_amount=50,
        )
        assert basket.recipients_total() == 350
        assert basket.total() == 400


class TestGatewayContracts:
    def test_payment_session(self):
        session = PaymentSession.from_dict({
            "donationId": "d1", "paymentLink": "https://checkout/abc", "reference": "ref",
        })
        assert session.payment_link == "https://checkout/abc"

    def test_payment_session_requires_link(self):
        with pytest.raises(ContractError, match="paymentLink"):
            PaymentSession.from_dict({"donationId": "d1"})

    def test_verification_result(self, donation_payload):
        result = VerificationResult.from_dict({"status": "completed", "donation": donation_payload})
        assert result.is_completed
        assert result.donation.id == "don-1"

    def test_verification_result_pending(self):
        result = VerificationResult.from_dict({"status": "pending"})
        assert not result.is_completed
        assert result.donation is None

    def test_pagination_meta(self):
        meta = PaginationMeta.from_dict({"totalItems": 45, "currentPage": 2, "itemsPerPage": 20, "totalPages": 3})
        assert meta.has_next
        assert not PaginationMeta.from_dict(None).has_next

    def test_pagination_meta_bad_count(self):
        with pytest.raises(ContractError) as exc:
            PaginationMeta.from_dict({"totalPages": "many"})
        assert exc.value.field == "totalPages"

    def test_pagination_meta_not_an_object(self):
        with pytest.raises(ContractError) as exc:
            PaginationMeta.from_dict(["page", 1])
        assert exc.value.field == "meta"

    def test_only_card_payment_available(self):
        available = [m.type for m in PAYMENT_METHODS if m.is_available]
        assert available == ["paystack"]
