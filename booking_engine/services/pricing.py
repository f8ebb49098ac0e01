"""
Booking price calculation.

Pure and deterministic: the same inputs always produce the same quote, and
nothing here touches the database or the network. The quote is frozen onto the
booking at creation time, before any payment happens.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from booking_engine.utils.datetime import calendar_days_between
from booking_engine.utils.money import round_minor

ACCESSIBILITY_DISCOUNT = Decimal("0.20")
DOWN_PAYMENT_RATE = Decimal("0.5")


@dataclass(frozen=True)
class PriceQuote:
    """Monetary terms of a stay, all amounts in integer minor units (centavos)."""

    total_price: int
    down_payment: int
    nights: int
    nightly_rate: int

    @property
    def balance(self) -> int:
        return self.total_price - self.down_payment


def calculate_booking_price(
    base_price: int,
    base_pax: int,
    extra_pax_price: int,
    check_in: date,
    check_out: date,
    adults: int,
    kids: int,
    has_pwd: bool = False,
) -> PriceQuote:
    """
    Compute nightly rate, total price and required down payment for a stay.

    Toddlers are not passed in: they never count toward occupancy. Same-day or
    inverted date ranges are clamped to one night.

    Args:
        base_price: Nightly unit price covering up to base_pax guests
        base_pax: Guests included in base_price
        extra_pax_price: Nightly charge per guest above base_pax
        check_in: Arrival date
        check_out: Departure date
        adults: Adult guests
        kids: Kid guests (charged like adults)
        has_pwd: Accessibility (PWD) discount eligibility, 20% off the stay

    Returns:
        PriceQuote with total_price, down_payment, nights and nightly_rate

    Example:
        >>> quote = calculate_booking_price(350000, 4, 50000, date(2025, 1, 1), date(2025, 1, 3), 2, 0)
        >>> quote.total_price, quote.down_payment
        (700000, 350000)
    """
    nights = max(1, calendar_days_between(check_out, check_in))
    extra_heads = max(0, adults + kids - base_pax)

    nightly_rate = base_price + extra_heads * extra_pax_price
    raw_total = Decimal(nightly_rate) * nights

    if has_pwd:
        raw_total = raw_total * (1 - ACCESSIBILITY_DISCOUNT)

    total_price = round_minor(raw_total)
    down_payment = round_minor(Decimal(total_price) * DOWN_PAYMENT_RATE)

    return PriceQuote(
        total_price=total_price,
        down_payment=down_payment,
        nights=nights,
        nightly_rate=nightly_rate,
    )
