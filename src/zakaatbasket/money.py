"""Fixed-point money helpers.

Amounts are held as integer minor units (kobo, 100 per Naira) everywhere
inside the package. The REST API speaks decimal major units, so conversion
only happens when reading or writing JSON.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

MINOR_UNITS = 100
CURRENCY_SYMBOL = "₦"

Number = Union[int, float, str, Decimal]


def to_minor(value: Number, allow_negative: bool = False) -> int:
    """Convert a major-unit amount (e.g. 1500.5) to integer minor units.

    Args:
        value: Amount in major units. Floats are converted through their
            string form so 33.34 stays 3334 rather than 3333.99...
        allow_negative: Accept values below zero (shortfalls can go negative)

    Returns:
        Amount in minor units, rounded half-up to the nearest kobo

    Raises:
        ValueError: If the value is not a number or is negative when
            negatives are not allowed
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")

    minor = int((amount * MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if minor < 0 and not allow_negative:
        raise ValueError(f"Amount must not be negative, got {value}")
    return minor


def to_major(minor: int) -> Decimal:
    """Convert minor units back to a two-place Decimal."""
    return (Decimal(minor) / MINOR_UNITS).quantize(Decimal("0.01"))


def to_wire(minor: int) -> float:
    """Major-unit float for JSON payloads.

    A two-place Decimal converts to the float whose repr is that same
    decimal, so the serialized value matches exactly.
    """
    return float(to_major(minor))


def format_amount(minor: int) -> str:
    """Human-readable amount, e.g. ``₦1,234.50``."""
    sign = "-" if minor < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(to_major(minor)):,.2f}"
