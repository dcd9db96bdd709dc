"""Data models for zakaatbasket package.

All amounts are integer minor units (see ``zakaatbasket.money``). The
``from_dict`` constructors read the camelCase JSON returned by the
donations API and raise ``ContractError`` when a payload is malformed.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Any, Optional

from .errors import ContractError
from .money import to_minor

DISTRIBUTION_METHODS = ("equal", "manual")
APPLICATION_TYPES = ("individual", "organization")
RECIPIENT_STATUSES = ("approved", "ready", "disbursed", "completed")
PAYMENT_METHOD_TYPES = ("paystack", "wallet")
PAYMENT_STATUSES = ("pending", "completed", "failed")
DOCUMENT_TYPES = ("pdf", "image", "other")


def _require(data: dict, key: str) -> Any:
    if not isinstance(data, dict):
        raise ContractError(key, f"expected an object, got {type(data).__name__}")
    if data.get(key) is None:
        raise ContractError(key, "missing required field")
    return data[key]


def _choice(data: dict, key: str, choices: tuple, default: Optional[str] = None) -> Optional[str]:
    value = data.get(key)
    if value is None:
        if default is None:
            raise ContractError(key, "missing required field")
        return default
    if value not in choices:
        raise ContractError(key, f"must be one of {', '.join(choices)}, got {value!r}")
    return value


def _amount(data: dict, key: str, required: bool = True, allow_negative: bool = False) -> Optional[int]:
    value = data.get(key)
    if value is None:
        if required:
            raise ContractError(key, "missing required field")
        return None
    try:
        return to_minor(value, allow_negative=allow_negative)
    except ValueError as e:
        raise ContractError(key, str(e))


def _count(data: dict, key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ContractError(key, f"expected an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ContractError(key, f"expected an integer, got {value!r}")


@dataclass
class Document:
    """A supporting document attached to an application."""
    id: str
    name: str
    type: str
    url: str
    thumbnail_url: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        return cls(
            id=str(_require(data, "id")),
            name=_require(data, "name"),
            type=_choice(data, "type", DOCUMENT_TYPES, default="other"),
            url=_require(data, "url"),
            thumbnail_url=data.get("thumbnailUrl"),
        )


@dataclass
class Recipient:
    """An approved application that can receive donations."""
    id: str
    application_id: str
    name: str
    requested_amount: int
    shortfall: int
    location: str = ""
    user_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    application_type: str = "individual"
    status: str = "ready"
    approved_amount: Optional[int] = None
    disbursed_amount: Optional[int] = None
    total_donations: Optional[int] = None
    why_they_need_help: str = ""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    supporting_documents: list[Document] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_fully_funded(self) -> bool:
        return self.shortfall <= 0

    def expected_shortfall(self) -> int:
        """Shortfall derived from the financial fields.

        The server sends ``shortfall`` directly; this is what it should equal.
        """
        return self.requested_amount - (self.disbursed_amount or 0) - (self.total_donations or 0)

    def funding_progress(self) -> float:
        """Percentage of the requested amount already received (0-100)."""
        if self.requested_amount <= 0:
            return 100.0
        received = (self.disbursed_amount or 0) + (self.total_donations or 0)
        pct = received * 100 / self.requested_amount
        return round(max(0.0, min(100.0, pct)), 1)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Recipient":
        """Build a Recipient from an API payload."""
        return cls(
            id=str(_require(data, "id")),
            application_id=str(_require(data, "applicationId")),
            name=_require(data, "name"),
            requested_amount=_amount(data, "requestedAmount"),
            shortfall=_amount(data, "shortfall", allow_negative=True),
            location=data.get("location") or "",
            user_id=data.get("userId"),
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            avatar_url=data.get("avatarUrl"),
            application_type=_choice(data, "applicationType", APPLICATION_TYPES, default="individual"),
            status=_choice(data, "status", RECIPIENT_STATUSES, default="ready"),
            approved_amount=_amount(data, "approvedAmount", required=False),
            disbursed_amount=_amount(data, "disbursedAmount", required=False),
            total_donations=_amount(data, "totalDonations", required=False),
            why_they_need_help=data.get("whyTheyNeedHelp") or "",
            category=data.get("category"),
            subcategory=data.get("subcategory"),
            supporting_documents=[Document.from_dict(d) for d in data.get("supportingDocuments") or []],
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class BasketItem:
    """A recipient selected for donation and the amount allocated to them."""
    recipient_id: str
    recipient: Recipient
    amount: int = 0
    is_manually_allocated: bool = False


@dataclass
class DonationBasket:
    """The recipients selected in the current checkout and basket-level flags."""
    items: list[BasketItem] = field(default_factory=list)
    distribution_method: Optional[str] = None
    support_zaakiyah: bool = False
    zaakiyah_amount: int = 0
    is_anonymous: bool = False

    def recipients_total(self) -> int:
        return sum(item.amount for item in self.items)

    def total(self) -> int:
        """Total payable: recipient allocations plus platform support."""
        return self.recipients_total() + self.zaakiyah_amount

    def find(self, recipient_id: str) -> Optional[BasketItem]:
        for item in self.items:
            if item.recipient_id == recipient_id:
                return item
        return None


@dataclass
class WatchlistItem:
    """A recipient saved for later."""
    id: str
    recipient_id: str
    recipient: Recipient
    added_at: datetime


@dataclass(frozen=True)
class DonationRecipient:
    """One line of a confirmed donation's breakdown."""
    application_id: str
    recipient_id: str
    recipient_name: str
    amount: int

    @classmethod
    def from_dict(cls, data: dict) -> "DonationRecipient":
        return cls(
            application_id=str(_require(data, "applicationId")),
            recipient_id=str(_require(data, "recipientId")),
            recipient_name=data.get("recipientName") or "",
            amount=_amount(data, "amount"),
        )


@dataclass(frozen=True)
class Donation:
    """A donation record as stored by the server. Immutable."""
    id: str
    recipients: tuple[DonationRecipient, ...]
    total_amount: int
    zaakiyah_amount: int
    payment_method: str
    payment_reference: str
    payment_status: str
    distribution_method: str
    is_anonymous: bool
    user_id: Optional[str] = None
    paystack_reference: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.payment_status == "completed"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        d = asdict(self)
        d["recipients"] = [asdict(r) for r in self.recipients]
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Donation":
        """Build a Donation from an API payload."""
        return cls(
            id=str(_require(data, "id")),
            recipients=tuple(DonationRecipient.from_dict(r) for r in data.get("recipients") or []),
            total_amount=_amount(data, "totalAmount"),
            zaakiyah_amount=_amount(data, "zaakiyahAmount", required=False) or 0,
            payment_method=_choice(data, "paymentMethod", PAYMENT_METHOD_TYPES, default="paystack"),
            payment_reference=data.get("paymentReference") or "",
            payment_status=_choice(data, "paymentStatus", PAYMENT_STATUSES),
            distribution_method=_choice(data, "distributionMethod", DISTRIBUTION_METHODS, default="manual"),
            is_anonymous=bool(data.get("isAnonymous", False)),
            user_id=data.get("userId"),
            paystack_reference=data.get("paystackReference"),
            created_at=data.get("createdAt"),
            completed_at=data.get("completedAt"),
        )


@dataclass(frozen=True)
class PaymentSession:
    """A payment session created by the gateway."""
    donation_id: str
    payment_link: str
    reference: str

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentSession":
        return cls(
            donation_id=str(_require(data, "donationId")),
            payment_link=_require(data, "paymentLink"),
            reference=data.get("reference") or "",
        )


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying a payment with the gateway."""
    status: str
    donation: Optional[Donation] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @classmethod
    def from_dict(cls, data: dict) -> "VerificationResult":
        donation = data.get("donation")
        return cls(
            status=str(_require(data, "status")),
            donation=Donation.from_dict(donation) if donation else None,
        )


@dataclass(frozen=True)
class PaymentMethod:
    """A way to pay for a donation."""
    id: str
    name: str
    type: str
    is_available: bool


PAYMENT_METHODS = (
    PaymentMethod(id="paystack", name="Pay with Card", type="paystack", is_available=True),
    PaymentMethod(id="wallet", name="Zakaat App Wallet", type="wallet", is_available=False),
)


@dataclass
class PaginationMeta:
    """Pagination block of a list response."""
    total_items: int = 0
    current_page: int = 1
    items_per_page: int = 0
    total_pages: int = 0

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PaginationMeta":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ContractError("meta", f"expected an object, got {type(data).__name__}")
        return cls(
            total_items=_count(data, "totalItems", 0),
            current_page=_count(data, "currentPage", 1),
            items_per_page=_count(data, "itemsPerPage", 0),
            total_pages=_count(data, "totalPages", 0),
        )


@dataclass
class Page:
    """One page of results from a list endpoint."""
    items: list
    meta: PaginationMeta = field(default_factory=PaginationMeta)


@dataclass
class RecipientBreakdown:
    recipient_id: str
    recipient_name: str
    amount: int


@dataclass
class DonationSummary:
    """What the confirmation view shows for a basket."""
    total_recipients: int
    total_amount: int
    zaakiyah_amount: int
    distribution_method: str
    recipient_breakdown: list[RecipientBreakdown] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)
