"""
Unit tests for Philippine mobile number normalization.
"""

from __future__ import annotations

import pytest

from booking_engine.utils.phone import format_mobile_display, normalize_mobile_ph


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw",
    [
        "0917 123 4567",
        "09171234567",
        "+639171234567",
        "639171234567",
        "9171234567",
        "(0917) 123-4567",
        " +63 917 123 4567 ",
    ],
)
def test_normalizes_common_formats(raw: str) -> None:
    assert normalize_mobile_ph(raw) == "+639171234567"


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw",
    [
        "12345",
        "",
        None,
        "0817 123 4567",  # landline-style prefix
        "0917 123 456",  # too short
        "0917 123 45678",  # too long
        "+1 917 123 4567",
        "abc",
    ],
)
def test_rejects_invalid_numbers(raw: str | None) -> None:
    assert normalize_mobile_ph(raw) is None


@pytest.mark.unit
def test_only_leading_plus_is_kept() -> None:
    assert normalize_mobile_ph("+63+917+123+4567") == "+639171234567"


@pytest.mark.unit
def test_display_format() -> None:
    assert format_mobile_display("+639171234567") == "0917 123 4567"
    assert format_mobile_display("639171234567") == "0917 123 4567"


@pytest.mark.unit
def test_display_returns_invalid_input_unchanged() -> None:
    assert format_mobile_display("12345") == "12345"
    assert format_mobile_display(None) == ""
