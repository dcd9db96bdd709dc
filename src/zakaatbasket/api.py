"""Donations API client."""

import logging
from typing import Optional

import requests

from .errors import APIError, ContractError
from .models import DonationBasket, Donation, Page, PaginationMeta, PaymentSession, Recipient, VerificationResult
from .money import to_wire

logger = logging.getLogger(__name__)

USER_AGENT = "zakaatbasket/0.1"


def build_payment_payload(basket: DonationBasket, payment_method: str) -> dict:
    """Body for ``POST /donations/initiate-payment``.

    ``totalAmount`` is the basket total at the moment of the call; it is
    computed from the same integer amounts the recipient lines carry.
    """
    return {
        "recipients": [
            {
                "recipientId": item.recipient_id,
                "applicationId": item.recipient.application_id,
                "amount": to_wire(item.amount),
            }
            for item in basket.items
        ],
        "totalAmount": to_wire(basket.total()),
        "zaakiyahAmount": to_wire(basket.zaakiyah_amount),
        "paymentMethod": payment_method,
        "distributionMethod": basket.distribution_method or "manual",
        "isAnonymous": basket.is_anonymous,
    }


def error_message(body, default: str) -> str:
    """Pull the server's message out of an error body, if it has one."""
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, list):
            return "; ".join(str(m) for m in message)
        if message:
            return str(message)
    return default


def unwrap(body) -> dict:
    """Return ``data`` from the ``{message, statusCode, data}`` envelope."""
    if not isinstance(body, dict) or "data" not in body:
        raise ContractError("data", "response is not an API envelope")
    return body["data"]


def parse_page(data, item_parser) -> Page:
    """Parse a paginated ``{data: [...], meta: {...}}`` block."""
    if isinstance(data, list):
        return Page(items=[item_parser(d) for d in data], meta=PaginationMeta(total_items=len(data)))
    if not isinstance(data, dict):
        raise ContractError("data", "expected a paginated object")
    items = data.get("data")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ContractError("data", f"expected a list, got {type(items).__name__}")
    return Page(
        items=[item_parser(d) for d in items],
        meta=PaginationMeta.from_dict(data.get("meta")),
    )


class ZakaatAPI:
    """Synchronous client for the donations REST API."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = 15):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Error calling {method} {path}: {e}")
            raise APIError(f"Could not reach donations API: {e}")

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            message = error_message(body, f"Request to {path} failed")
            logger.error(f"{method} {path} returned status {resp.status_code}: {message}")
            raise APIError(message, resp.status_code)

        return unwrap(body)

    def get_recipients(self, page: int = 1, limit: int = 20) -> Page:
        """Get approved recipients.

        Args:
            page: 1-based page number
            limit: Page size

        Returns:
            Page of Recipient
        """
        data = self._request("GET", "/donations/recipients", params={"page": page, "limit": limit})
        return parse_page(data, Recipient.from_dict)

    def initiate_payment(self, basket: DonationBasket, payment_method: str,
                         idempotency_key: Optional[str] = None) -> PaymentSession:
        """Create a payment session for the basket."""
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = self._request(
            "POST", "/donations/initiate-payment",
            json=build_payment_payload(basket, payment_method),
            headers=headers,
        )
        return PaymentSession.from_dict(data)

    def verify_payment(self, donation_id: str, reference: str) -> VerificationResult:
        """Verify a payment after the gateway redirects back."""
        data = self._request(
            "POST", "/donations/verify-payment",
            json={"donationId": donation_id, "reference": reference},
        )
        return VerificationResult.from_dict(data)

    def get_donation_history(self, page: int = 1, limit: int = 20) -> Page:
        """Get the current user's past donations."""
        data = self._request("GET", "/donations/history", params={"page": page, "limit": limit})
        return parse_page(data, Donation.from_dict)

    def get_donation(self, donation_id: str) -> Donation:
        data = self._request("GET", f"/donations/{donation_id}")
        return Donation.from_dict(data)
