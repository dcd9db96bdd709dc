import pytest

from zakaatbasket.models import Recipient


@pytest.fixture
def make_recipient():
    def _make(recipient_id="r1", name=None, **kwargs):
        defaults = dict(
            application_id=f"app-{recipient_id}",
            name=name or f"Recipient {recipient_id}",
            requested_amount=50_000_00,
            shortfall=50_000_00,
            location="Abuja, Nigeria",
        )
        defaults.update(kwargs)
        return Recipient(id=recipient_id, **defaults)
    return _make


@pytest.fixture
def recipient_payload():
    return {
        "id": "rec-1",
        "applicationId": "app-1",
        "userId": "user-1",
        "name": "Aisha Bello",
        "firstName": "Aisha",
        "lastName": "Bello",
        "location": "Kano, Nigeria",
        "applicationType": "individual",
        "status": "ready",
        "requestedAmount": 250000,
        "disbursedAmount": 50000,
        "totalDonations": 25000.5,
        "shortfall": 174999.5,
        "whyTheyNeedHelp": "University tuition",
        "category": "education",
        "supportingDocuments": [
            {"id": "d1", "name": "Admission Letter", "type": "pdf", "url": "https://files/d1.pdf"},
        ],
        "createdAt": "2025-01-10T09:00:00.000Z",
        "updatedAt": "2025-01-12T09:00:00.000Z",
    }


@pytest.fixture
def donation_payload():
    return {
        "id": "don-1",
        "userId": "user-9",
        "recipients": [
            {"applicationId": "app-1", "recipientId": "rec-1", "recipientName": "Aisha Bello", "amount": 500},
            {"applicationId": "app-2", "recipientId": "rec-2", "recipientName": "Musa Ali", "amount": 500},
        ],
        "totalAmount": 2000,
        "zaakiyahAmount": 1000,
        "paymentMethod": "paystack",
        "paymentReference": "ref-123",
        "paymentStatus": "completed",
        "distributionMethod": "equal",
        "isAnonymous": False,
        "createdAt": "2025-02-01T10:00:00.000Z",
        "completedAt": "2025-02-01T10:05:00.000Z",
    }
