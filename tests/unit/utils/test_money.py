"""
Unit tests for minor-unit money helpers.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from booking_engine.utils.money import format_php, round_minor


@pytest.mark.unit
@pytest.mark.parametrize(
    "value,expected",
    [
        (0, 0),
        (12.5, 13),
        (13.5, 14),
        (Decimal("400.5"), 401),
        (Decimal("400.49"), 400),
        (560000.0, 560000),
    ],
)
def test_round_minor_rounds_half_up(value: float, expected: int) -> None:
    assert round_minor(value) == expected


@pytest.mark.unit
def test_format_php() -> None:
    assert format_php(350000) == "₱3,500.00"
    assert format_php(5) == "₱0.05"
