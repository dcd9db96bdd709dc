"""Recipient catalog and donation history browsing."""

import logging
from typing import Iterable, Optional

from .api import ZakaatAPI
from .errors import APIError, ContractError
from .models import Donation, PaginationMeta, Recipient
from .notices import NoticeBoard

logger = logging.getLogger(__name__)

DONATABLE_STATUSES = ("approved", "ready")


def filter_recipients(
    recipients: Iterable[Recipient],
    query: Optional[str] = None,
    category: Optional[str] = None,
    statuses: Optional[Iterable[str]] = None,
) -> list[Recipient]:
    """Filter recipients the way the browse screen does.

    Args:
        recipients: Recipients to filter
        query: Case-insensitive text matched against name, location and
            the reason they need help
        category: Exact category match
        statuses: Keep only these statuses

    Returns:
        Matching recipients in their original order
    """
    result = list(recipients)

    if query and query.strip():
        q = query.strip().lower()
        result = [
            r for r in result
            if q in r.name.lower()
            or q in r.location.lower()
            or q in (r.why_they_need_help or "").lower()
        ]

    if category:
        result = [r for r in result if r.category == category]

    if statuses is not None:
        allowed = set(statuses)
        result = [r for r in result if r.status in allowed]

    return result


class RecipientCatalog:
    """Pages through recipients, keeping the last good list on failure."""

    def __init__(self, api: ZakaatAPI, notices: NoticeBoard, page_size: int = 20):
        self.api = api
        self.notices = notices
        self.page_size = page_size
        self.recipients: list[Recipient] = []
        self.meta = PaginationMeta()

    def refresh(self, page: int = 1) -> list[Recipient]:
        """Fetch a page. Page 1 replaces the list, later pages append.

        On failure an error notice is posted and the cached list is
        returned unchanged (empty on first load).
        """
        try:
            result = self.api.get_recipients(page=page, limit=self.page_size)
        except (APIError, ContractError) as e:
            self.notices.error(f"Failed to fetch recipients: {e}")
            return self.recipients

        if page == 1:
            self.recipients = list(result.items)
        else:
            known = {r.id for r in self.recipients}
            self.recipients.extend(r for r in result.items if r.id not in known)
        self.meta = result.meta
        logger.info(f"Loaded {len(result.items)} recipients (page {page})")
        return self.recipients

    def load_more(self) -> list[Recipient]:
        if not self.meta.has_next:
            return self.recipients
        return self.refresh(self.meta.current_page + 1)

    def get(self, recipient_id: str) -> Optional[Recipient]:
        for recipient in self.recipients:
            if recipient.id == recipient_id:
                return recipient
        return None

    def search(self, query: Optional[str] = None, category: Optional[str] = None) -> list[Recipient]:
        return filter_recipients(self.recipients, query=query, category=category)


class DonationHistory:
    """The user's past donations, cached like the recipient catalog."""

    def __init__(self, api: ZakaatAPI, notices: NoticeBoard, page_size: int = 20):
        self.api = api
        self.notices = notices
        self.page_size = page_size
        self.donations: list[Donation] = []
        self.meta = PaginationMeta()

    def refresh(self, page: int = 1) -> list[Donation]:
        try:
            result = self.api.get_donation_history(page=page, limit=self.page_size)
        except (APIError, ContractError) as e:
            self.notices.error(f"Failed to fetch donation history: {e}")
            return self.donations

        if page == 1:
            self.donations = list(result.items)
        else:
            self.donations.extend(result.items)
        self.meta = result.meta
        return self.donations

    def total_given(self) -> int:
        """Sum of completed donations on the loaded pages."""
        return sum(d.total_amount for d in self.donations if d.is_completed)
