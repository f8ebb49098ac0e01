"""
Guest email contract: "send confirmation" and "send cancellation".

Both are fire-and-forget. A missing API key or a provider failure is logged
and counted; the booking transition that triggered the email stands.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from html import escape

import structlog

from booking_engine.config import RESEND_API_KEY
from booking_engine.metrics import side_effect_failures
from booking_engine.network.resend import send_email
from booking_engine.utils.money import format_php

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BookingEmailDetails:
    booking_id: str
    guest_name: str
    guest_email: str
    unit_name: str
    check_in: date
    check_out: date
    total_price: int
    balance: int

    @property
    def reference(self) -> str:
        return self.booking_id[-6:].upper()


def _format_date(value: date) -> str:
    return value.strftime("%b %d, %Y")


def send_booking_confirmation(details: BookingEmailDetails) -> bool:
    """
    Email the guest that their booking is confirmed.

    Returns:
        bool: True if the provider accepted the message
    """
    if not RESEND_API_KEY:
        logger.warning("email_skipped_missing_api_key", booking_id=details.booking_id)
        return False

    html = (
        f"<p>Hi {escape(details.guest_name)},</p>"
        f"<p>Your stay at <strong>{escape(details.unit_name)}</strong> is confirmed.</p>"
        f"<ul>"
        f"<li>Reference: {details.reference}</li>"
        f"<li>Check-in: {_format_date(details.check_in)}</li>"
        f"<li>Check-out: {_format_date(details.check_out)}</li>"
        f"<li>Total: {format_php(details.total_price)}</li>"
        f"<li>Balance due on arrival: {format_php(details.balance)}</li>"
        f"</ul>"
    )
    try:
        send_email(details.guest_email, "Booking Confirmed", html)
        logger.info("confirmation_email_sent", booking_id=details.booking_id)
        return True
    except Exception as e:
        side_effect_failures.labels(sink="email").inc()
        logger.exception("confirmation_email_failed", booking_id=details.booking_id, error=str(e))
        return False


def send_booking_cancellation(
    email: str, guest_name: str, unit_name: str, booking_id: str, reason: str
) -> bool:
    """
    Email the guest that their booking was cancelled, with the reason.

    Returns:
        bool: True if the provider accepted the message
    """
    if not RESEND_API_KEY:
        logger.warning("email_skipped_missing_api_key", booking_id=booking_id)
        return False

    html = (
        f"<p>Hi {escape(guest_name)},</p>"
        f"<p>Your reservation for <strong>{escape(unit_name)}</strong> "
        f"(ref {booking_id[-6:].upper()}) has been cancelled.</p>"
        f"<p>Reason: {escape(reason)}</p>"
    )
    try:
        send_email(email, "Booking Cancelled", html)
        logger.info("cancellation_email_sent", booking_id=booking_id)
        return True
    except Exception as e:
        side_effect_failures.labels(sink="email").inc()
        logger.exception("cancellation_email_failed", booking_id=booking_id, error=str(e))
        return False
