"""Fund distribution across basket recipients."""

import logging

from .models import DonationBasket

logger = logging.getLogger(__name__)


def split_equally(total_amount: int, count: int) -> list[int]:
    """Split a total into ``count`` shares that sum to it exactly.

    Every share is the floor of ``total_amount / count`` in minor units.
    Whatever is left over goes to the first share. This is a simple
    tie-break, not a fairness guarantee: with ₦100 over three recipients
    the first gets ₦33.34 and the others ₦33.33.

    Args:
        total_amount: Total in minor units
        count: Number of shares (must be positive)

    Returns:
        List of ``count`` amounts, first one carrying the remainder
    """
    if count <= 0:
        raise ValueError(f"Cannot split across {count} recipients")
    if total_amount < 0:
        raise ValueError(f"Amount must not be negative, got {total_amount}")

    per_recipient = total_amount // count
    remainder = total_amount - per_recipient * count

    shares = [per_recipient] * count
    shares[0] += remainder
    return shares


def distribute_equally(basket: DonationBasket, total_amount: int) -> bool:
    """Spread ``total_amount`` over every basket item in insertion order.

    Switches the basket to equal distribution and clears the manual flag
    on each item. Leaves the basket untouched when it is empty or the
    total is zero.

    Returns:
        True if amounts were changed
    """
    if total_amount < 0:
        raise ValueError(f"Amount must not be negative, got {total_amount}")
    if not basket.items or total_amount == 0:
        logger.debug(f"Nothing to distribute (items={len(basket.items)}, total={total_amount})")
        return False

    shares = split_equally(total_amount, len(basket.items))
    for item, share in zip(basket.items, shares):
        item.amount = share
        item.is_manually_allocated = False
    basket.distribution_method = "equal"

    logger.debug(f"Distributed {total_amount} equally across {len(shares)} recipients")
    return True


def distribute_manually(basket: DonationBasket) -> None:
    """Hand allocation over to the user; amounts are set item by item."""
    basket.distribution_method = "manual"


def allocated_total(basket: DonationBasket) -> int:
    """Sum allocated to recipients, excluding platform support."""
    return basket.recipients_total()
