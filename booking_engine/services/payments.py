"""
Payment confirmation adapter.

Maps provider events (webhook deliveries, direct session checks) onto the
booking state machine and exposes the read-only status query polled by the
client payment page.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from booking_engine.config import APP_BASE_URL
from booking_engine.db.readers.bookings import get_booking, get_booking_with_parties
from booking_engine.db.writers.bookings import append_booking_event, set_checkout_session
from booking_engine.errors import BookingNotFoundError, InvalidStateError, ValidationError
from booking_engine.metrics import webhook_events
from booking_engine.models.booking_events import BookingEventKind
from booking_engine.models.bookings import BookingStatus
from booking_engine.network.paymongo import (
    create_checkout_session,
    get_checkout_session,
    is_session_paid,
)
from booking_engine.services.bookings import confirm_booking

logger = structlog.get_logger(__name__)

PAYMENT_PAID_EVENT = "checkout_session.payment.paid"
CONFIRMED_STATUSES = {BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value}


def payment_status(engine: Engine, booking_id: str) -> str:
    """
    Return "confirmed" once the booking is CONFIRMED or COMPLETED, else "pending".

    Pure read; safe to poll at any frequency.

    Raises:
        BookingNotFoundError: Unknown booking
    """
    with engine.connect() as conn:
        booking = get_booking(conn, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    return "confirmed" if booking["status"] in CONFIRMED_STATUSES else "pending"


def initiate_checkout(engine: Engine, booking_id: str) -> str:
    """
    Open a hosted checkout session for a PENDING booking's down payment.

    Returns:
        The provider's hosted checkout URL

    Raises:
        BookingNotFoundError: Unknown booking
        InvalidStateError: Booking is no longer PENDING
        PaymentGatewayError: Provider call failed or is not configured
    """
    with engine.connect() as conn:
        booking = get_booking_with_parties(conn, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    if booking["status"] != BookingStatus.PENDING.value:
        raise InvalidStateError(f"Booking {booking_id} is {booking['status']}, checkout requires PENDING")

    billing = {"name": booking["guest_name"] or "Guest"}
    if booking["guest_email"]:
        billing["email"] = booking["guest_email"]
    if booking["guest_mobile"]:
        billing["phone"] = booking["guest_mobile"]

    session_id, checkout_url = create_checkout_session(
        booking_id=booking_id,
        unit_name=booking["unit_name"],
        amount=booking["down_payment"],
        success_url=f"{APP_BASE_URL}/book/success?bookingId={booking_id}",
        cancel_url=f"{APP_BASE_URL}/book/cancelled?bookingId={booking_id}",
        billing=billing,
    )

    with engine.begin() as conn:
        stored = set_checkout_session(conn, booking_id, session_id)
        if not stored:
            # Confirmed or cancelled while we were talking to the provider
            raise InvalidStateError(f"Booking {booking_id} is no longer PENDING")
        append_booking_event(
            conn, booking_id, BookingEventKind.CHECKOUT_STARTED, {"checkout_session_id": session_id}
        )

    logger.info("checkout_started", booking_id=booking_id, checkout_session_id=session_id)
    return checkout_url


def verify_payment(engine: Engine, booking_id: str) -> str:
    """
    Ask the provider directly whether the booking's checkout session is paid.

    Compensates for a lost or delayed webhook. Confirms the booking through
    the state machine when the session is paid.

    Returns:
        "confirmed" or "pending"

    Raises:
        BookingNotFoundError: Unknown booking
        PaymentGatewayError: Provider call failed
    """
    with engine.connect() as conn:
        booking = get_booking(conn, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    if booking["status"] in CONFIRMED_STATUSES:
        return "confirmed"

    session_id = booking["checkout_session_id"]
    if booking["status"] != BookingStatus.PENDING.value or not session_id:
        return "pending"

    attributes = get_checkout_session(session_id)
    if not is_session_paid(attributes):
        logger.info("payment_not_yet_paid", booking_id=booking_id, checkout_session_id=session_id)
        return "pending"

    result = confirm_booking(engine, booking_id, "Payment verified via direct session check")
    return "confirmed" if result.status in CONFIRMED_STATUSES else "pending"


def _as_object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_event_envelope(payload: dict[str, Any]) -> tuple[Optional[str], str]:
    """
    Read (event_id, event_type) from a webhook body.

    Raises:
        ValidationError: data or data.attributes is present but not an object
    """
    data = payload.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid payload")
    attributes = data.get("attributes")
    if attributes is None:
        attributes = {}
    if not isinstance(attributes, dict):
        raise ValidationError("Invalid payload")

    event_id = data.get("id")
    event_type = attributes.get("type")
    return (
        str(event_id) if event_id else None,
        event_type if isinstance(event_type, str) and event_type else "unknown",
    )


def extract_booking_id(payload: dict[str, Any]) -> Optional[str]:
    """Pull data.attributes.data.attributes.metadata.booking_id out of a webhook body."""
    attributes = _as_object(_as_object(payload.get("data")).get("attributes"))
    session = _as_object(attributes.get("data"))
    metadata = _as_object(_as_object(session.get("attributes")).get("metadata"))
    booking_id = metadata.get("booking_id")
    if isinstance(booking_id, (dict, list)):
        return None
    return str(booking_id) if booking_id else None


def handle_webhook_event(engine: Engine, payload: dict[str, Any]) -> str:
    """
    Apply one authenticated webhook delivery.

    Only checkout_session.payment.paid does anything; every other event type
    is accepted and ignored. A missing or unknown booking id is logged, not
    raised, so the provider never retries an irrelevant delivery.

    Args:
        engine: SQLAlchemy engine
        payload: Parsed webhook body

    Returns:
        Outcome label: processed, duplicate or ignored

    Raises:
        ValidationError: The body is not shaped like a webhook event
    """
    event_id, event_type = parse_event_envelope(payload)

    if event_type != PAYMENT_PAID_EVENT:
        logger.info("webhook_event_ignored", event_type=event_type, event_id=event_id)
        webhook_events.labels(event_type=event_type, outcome="ignored").inc()
        return "ignored"

    booking_id = extract_booking_id(payload)
    if not booking_id:
        logger.warning("webhook_missing_booking_id", event_type=event_type, event_id=event_id)
        webhook_events.labels(event_type=event_type, outcome="ignored").inc()
        return "ignored"

    try:
        result = confirm_booking(
            engine, booking_id, f"Payment confirmed via PayMongo event {event_id}"
        )
    except BookingNotFoundError:
        logger.warning("webhook_unknown_booking", booking_id=booking_id, event_id=event_id)
        webhook_events.labels(event_type=event_type, outcome="ignored").inc()
        return "ignored"

    outcome = "processed" if result.changed else "duplicate"
    webhook_events.labels(event_type=event_type, outcome=outcome).inc()
    logger.info("webhook_event_applied", booking_id=booking_id, event_id=event_id, outcome=outcome)
    return outcome

