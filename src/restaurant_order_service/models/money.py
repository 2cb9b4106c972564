"""Monetary helpers shared by order and payment models."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")

# Two amounts within this tolerance are considered equal.
AMOUNT_TOLERANCE = Decimal("0.01")


def to_amount(value: Any) -> Decimal:
    """Convert a number to a Decimal quantized to cents.

    Args:
        value: int, float, str or Decimal amount

    Returns:
        Decimal: Amount rounded half-up to two places
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def amounts_match(left: Decimal, right: Decimal) -> bool:
    """Check whether two amounts agree within the cent tolerance."""
    return abs(to_amount(left) - to_amount(right)) <= AMOUNT_TOLERANCE
