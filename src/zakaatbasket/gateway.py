"""Async donations API client used during checkout."""

import asyncio
import logging
from typing import Optional

import aiohttp

from .api import USER_AGENT, build_payment_payload, error_message, parse_page, unwrap
from .errors import APIError
from .models import DonationBasket, Donation, Page, PaymentSession, Recipient, VerificationResult

logger = logging.getLogger(__name__)


class AsyncZakaatAPI:
    """Async client for the donations REST API.

    The caller owns the ``aiohttp.ClientSession``.
    """

    def __init__(self, session: aiohttp.ClientSession, base_url: str,
                 token: Optional[str] = None, timeout: int = 15):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    async def _request(self, method: str, path: str, headers: Optional[dict] = None, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            async with self.session.request(
                method, url, headers={**self.headers, **(headers or {})},
                timeout=self.timeout, **kwargs
            ) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error calling {method} {path}: {e}")
            raise APIError(f"Could not reach donations API: {e}")

        if status >= 400:
            message = error_message(body, f"Request to {path} failed")
            logger.error(f"{method} {path} returned status {status}: {message}")
            raise APIError(message, status)

        return unwrap(body)

    async def get_recipients(self, page: int = 1, limit: int = 20) -> Page:
        data = await self._request("GET", "/donations/recipients", params={"page": page, "limit": limit})
        return parse_page(data, Recipient.from_dict)

    async def initiate_payment(self, basket: DonationBasket, payment_method: str,
                               idempotency_key: Optional[str] = None) -> PaymentSession:
        """Create a payment session; ``paymentLink`` is where the user pays."""
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = await self._request(
            "POST", "/donations/initiate-payment",
            headers=headers,
            json=build_payment_payload(basket, payment_method),
        )
        return PaymentSession.from_dict(data)

    async def verify_payment(self, donation_id: str, reference: str) -> VerificationResult:
        data = await self._request(
            "POST", "/donations/verify-payment",
            json={"donationId": donation_id, "reference": reference},
        )
        return VerificationResult.from_dict(data)

    async def get_donation_history(self, page: int = 1, limit: int = 20) -> Page:
        data = await self._request("GET", "/donations/history", params={"page": page, "limit": limit})
        return parse_page(data, Donation.from_dict)

    async def get_donation(self, donation_id: str) -> Donation:
        data = await self._request("GET", f"/donations/{donation_id}")
        return Donation.from_dict(data)
