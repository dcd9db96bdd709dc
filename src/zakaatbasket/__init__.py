"""
zakaatbasket - Donation basket and fund distribution for Zakaat giving.

This package lets a donor pick recipients, split a donation across them
equally or by hand, add a platform-support contribution and carry the
basket through payment gateway initiation and verification.
"""

from .models import BasketItem, Donation, DonationBasket, Recipient, WatchlistItem
from .basket import BasketManager
from .watchlist import Watchlist
from .distribution import split_equally
from .api import ZakaatAPI
from .gateway import AsyncZakaatAPI
from .payment import PaymentOrchestrator, PaymentState

__version__ = "0.1.0"
__all__ = [
    "BasketItem",
    "Donation",
    "DonationBasket",
    "Recipient",
    "WatchlistItem",
    "BasketManager",
    "Watchlist",
    "split_equally",
    "ZakaatAPI",
    "AsyncZakaatAPI",
    "PaymentOrchestrator",
    "PaymentState",
]
