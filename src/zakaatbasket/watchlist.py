"""Recipients saved for later."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterator, Optional

from .models import Recipient, WatchlistItem

logger = logging.getLogger(__name__)


class Watchlist:
    """Saved recipients, independent of the basket."""

    def __init__(self):
        self._items: list[WatchlistItem] = []

    def add_to_watchlist(self, recipient: Recipient) -> WatchlistItem:
        """Save a recipient. Saving one twice returns the existing entry."""
        existing = self._find(recipient.id)
        if existing:
            return existing

        item = WatchlistItem(
            id=f"watchlist-{uuid.uuid4().hex}",
            recipient_id=recipient.id,
            recipient=recipient,
            added_at=datetime.now(timezone.utc),
        )
        self._items.append(item)
        logger.debug(f"Added recipient {recipient.id} to watchlist")
        return item

    def remove_from_watchlist(self, recipient_id: str) -> None:
        self._items = [item for item in self._items if item.recipient_id != recipient_id]

    def is_in_watchlist(self, recipient_id: str) -> bool:
        return self._find(recipient_id) is not None

    def recipients(self) -> list[Recipient]:
        """Saved recipients in the order they were added."""
        return [item.recipient for item in self._items]

    def _find(self, recipient_id: str) -> Optional[WatchlistItem]:
        for item in self._items:
            if item.recipient_id == recipient_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[WatchlistItem]:
        return iter(list(self._items))
