"""Helpers for integer minor-unit (centavo) amounts."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, Decimal]


def round_minor(value: Number) -> int:
    """
    Round a monetary value to the nearest whole minor unit, halves away from zero.

    Python's built-in round() uses banker's rounding, which would make a
    250.5 centavo amount round down; amounts must round half-up.

    Example:
        >>> round_minor(12.5)
        13
        >>> round_minor(Decimal("560000.0"))
        560000
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_php(amount_minor: int) -> str:
    """Render centavos as a peso string, e.g. 350000 -> '₱3,500.00'."""
    return f"₱{Decimal(amount_minor) / 100:,.2f}"
