"""Donation basket manager."""

import copy
import logging
from typing import Optional

from . import distribution
from .models import (
    DISTRIBUTION_METHODS,
    BasketItem,
    DonationBasket,
    DonationSummary,
    Recipient,
    RecipientBreakdown,
)

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"Amount must not be negative, got {amount}")


class BasketManager:
    """Owns the basket for one checkout.

    Create one when checkout starts and pass it to whatever needs it
    (the payment orchestrator, the CLI). Amounts are minor units.
    """

    def __init__(self):
        self.basket = DonationBasket()

    # Selection

    def add_to_basket(self, recipient: Recipient, amount: Optional[int] = None) -> BasketItem:
        """Add a recipient, or update the amount of one already selected.

        An existing item keeps its amount unless ``amount`` is given.
        There is no check against the recipient's shortfall.

        Args:
            recipient: Recipient to add
            amount: Allocation in minor units

        Returns:
            The new or existing basket item
        """
        if amount is not None:
            _check_amount(amount)

        existing = self.basket.find(recipient.id)
        if existing:
            if amount is not None:
                existing.amount = amount
            logger.debug(f"Recipient {recipient.id} already in basket")
            return existing

        item = BasketItem(
            recipient_id=recipient.id,
            recipient=recipient,
            amount=amount or 0,
            is_manually_allocated=False,
        )
        self.basket.items.append(item)
        logger.debug(f"Added recipient {recipient.id} to basket")
        return item

    def remove_from_basket(self, recipient_id: str) -> None:
        """Remove a recipient. Unknown ids are ignored."""
        item = self.basket.find(recipient_id)
        if item:
            self.basket.items.remove(item)
            logger.debug(f"Removed recipient {recipient_id} from basket")

    def update_basket_item_amount(self, recipient_id: str, amount: int) -> None:
        """Set one recipient's amount by hand. Other items are not touched."""
        _check_amount(amount)
        item = self.basket.find(recipient_id)
        if not item:
            logger.debug(f"Recipient {recipient_id} not in basket, amount not set")
            return
        item.amount = amount
        item.is_manually_allocated = True

    def clear_basket(self) -> None:
        """Reset to an empty basket, dropping all flags."""
        self.basket = DonationBasket()
        logger.debug("Basket cleared")

    # Flags

    def set_distribution_method(self, method: Optional[str]) -> None:
        if method is not None and method not in DISTRIBUTION_METHODS:
            raise ValueError(f"Unknown distribution method: {method}")
        self.basket.distribution_method = method

    def set_support_zaakiyah(self, support: bool, amount: Optional[int] = None) -> None:
        """Opt in or out of supporting the platform.

        Opting out always zeroes the support amount.
        """
        if amount is not None:
            _check_amount(amount)
        self.basket.support_zaakiyah = support
        self.basket.zaakiyah_amount = (amount or 0) if support else 0

    def set_is_anonymous(self, is_anonymous: bool) -> None:
        self.basket.is_anonymous = is_anonymous

    # Distribution

    def distribute_equally(self, total_amount: int) -> bool:
        """Split ``total_amount`` evenly; see ``distribution.split_equally``."""
        return distribution.distribute_equally(self.basket, total_amount)

    def use_manual_distribution(self) -> None:
        distribution.distribute_manually(self.basket)

    # Computed

    def get_basket_total(self) -> int:
        """Recipient allocations plus platform support, computed fresh."""
        return self.basket.total()

    def get_recipients_total(self) -> int:
        return distribution.allocated_total(self.basket)

    def get_basket_item_count(self) -> int:
        return len(self.basket.items)

    def contains(self, recipient_id: str) -> bool:
        return self.basket.find(recipient_id) is not None

    @property
    def is_empty(self) -> bool:
        return not self.basket.items

    def snapshot(self) -> DonationBasket:
        """Deep copy of the basket, unaffected by later edits."""
        return copy.deepcopy(self.basket)

    def summary(self) -> DonationSummary:
        """Breakdown for the confirmation view."""
        basket = self.basket
        return DonationSummary(
            total_recipients=len(basket.items),
            total_amount=basket.total(),
            zaakiyah_amount=basket.zaakiyah_amount,
            distribution_method=basket.distribution_method or "manual",
            recipient_breakdown=[
                RecipientBreakdown(
                    recipient_id=item.recipient_id,
                    recipient_name=item.recipient.name,
                    amount=item.amount,
                )
                for item in basket.items
            ],
        )
