"""
Booking state machine.

    PENDING   --confirm-->  CONFIRMED  --complete-->  COMPLETED
    PENDING   --cancel--->  CANCELLED
    CONFIRMED --cancel--->  CANCELLED

confirm_booking, cancel_booking and complete_booking are the only code paths
that change a booking's status. Each opens a transaction whose first
statement is a conditional UPDATE guarded on the current status; only the
caller whose UPDATE matched performs the derived work (event, commission)
in that same transaction and, after commit, the notifications. Every other
caller (a replayed webhook, the reaper, a second admin click) gets an
idempotent no-op result. An event without an outgoing edge from the current
state is a no-op, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from booking_engine.actors import ANONYMOUS_ACTOR, SYSTEM_ACTOR, Actor, Role
from booking_engine.db.readers.bookings import get_booking, get_booking_with_parties
from booking_engine.db.readers.users import find_guest, get_unit, get_user
from booking_engine.db.writers.bookings import (
    append_booking_event,
    insert_booking,
    transition_booking_status,
)
from booking_engine.db.writers.users import insert_guest
from booking_engine.errors import BookingNotFoundError, ValidationError
from booking_engine.metrics import booking_transitions, bookings_created, commissions_created
from booking_engine.models.booking_events import BookingEventKind
from booking_engine.models.bookings import BookingStatus, PaymentStatus
from booking_engine.models.notifications import Severity
from booking_engine.services.audit import record_activity
from booking_engine.services.commissions import derive_commission
from booking_engine.services.email import (
    BookingEmailDetails,
    send_booking_cancellation,
    send_booking_confirmation,
)
from booking_engine.services.notifications import notify, notify_admins
from booking_engine.services.pricing import PriceQuote, calculate_booking_price
from booking_engine.utils.money import format_php
from booking_engine.utils.phone import format_mobile_display, normalize_mobile_ph

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BookingIntake:
    """Booking request as received from the intake boundary (shape already validated)."""

    unit_id: str
    check_in: date
    check_out: date
    adults: int
    kids: int = 0
    toddlers: int = 0
    guest_name: Optional[str] = None
    guest_mobile: Optional[str] = None
    guest_email: Optional[str] = None
    has_car: bool = False
    has_pet: bool = False
    has_pwd: bool = False
    walk_in_guest_name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class CreatedBooking:
    booking_id: str
    quote: PriceQuote


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a transition call.

    changed is False for an idempotent no-op; status is always the booking's
    status after the call.
    """

    booking_id: str
    status: str
    changed: bool
    commission_id: Optional[str] = None


def _resolve_guest(
    engine: Engine, name: Optional[str], mobile: Optional[str], email: Optional[str]
) -> str:
    """Find the guest by mobile/email or create them; tolerates a concurrent first booking."""
    with engine.connect() as conn:
        existing = find_guest(conn, mobile, email)
    if existing:
        return str(existing["id"])

    try:
        with engine.begin() as conn:
            return insert_guest(conn, {"name": name, "mobile": mobile, "email": email})
    except IntegrityError:
        # Another request registered the same mobile between our read and insert
        with engine.connect() as conn:
            existing = find_guest(conn, mobile, email)
        if existing:
            return str(existing["id"])
        raise


def create_booking(
    engine: Engine, intake: BookingIntake, actor: Actor = ANONYMOUS_ACTOR
) -> CreatedBooking:
    """
    Validate an intake request, freeze its price and persist a PENDING booking.

    Availability is not checked here; that is the intake boundary's job.
    Walk-in bookings (walk_in_guest_name set) are admin-only and may omit
    guest contact details.

    Args:
        engine: SQLAlchemy engine
        intake: Booking request
        actor: Who is creating the booking

    Returns:
        CreatedBooking with the new id and the frozen price quote

    Raises:
        ValidationError: Unknown unit, no occupants, or invalid mobile number
        AuthorizationError: Walk-in booking by a non-admin
    """
    if intake.adults < 1:
        raise ValidationError("At least one adult is required.")
    if intake.kids < 0 or intake.toddlers < 0:
        raise ValidationError("Guest counts cannot be negative.")

    walk_in = bool(intake.walk_in_guest_name and intake.walk_in_guest_name.strip())
    if walk_in:
        actor.require(Role.ADMIN)

    mobile = normalize_mobile_ph(intake.guest_mobile)
    if intake.guest_mobile and not mobile:
        raise ValidationError("Please enter a valid mobile number (e.g. 0917 123 4567).")
    if not walk_in:
        if not mobile:
            raise ValidationError("A valid mobile number is required.")
        if not intake.guest_name or len(intake.guest_name.strip()) < 2:
            raise ValidationError("Guest name is required.")

    with engine.connect() as conn:
        unit = get_unit(conn, intake.unit_id)
    if unit is None:
        raise ValidationError("Unit not found.")

    quote = calculate_booking_price(
        base_price=unit["base_price"],
        base_pax=unit["base_pax"],
        extra_pax_price=unit["extra_pax_price"],
        check_in=intake.check_in,
        check_out=intake.check_out,
        adults=intake.adults,
        kids=intake.kids,
        has_pwd=intake.has_pwd,
    )

    user_id: Optional[str] = None
    if mobile:
        guest_name = intake.guest_name.strip() if intake.guest_name else None
        user_id = _resolve_guest(engine, guest_name, mobile, intake.guest_email or None)

    with engine.begin() as conn:
        booking_id = insert_booking(
            conn,
            {
                "unit_id": intake.unit_id,
                "user_id": user_id,
                "walk_in_guest_name": intake.walk_in_guest_name.strip() if walk_in else None,
                "check_in": intake.check_in,
                "check_out": intake.check_out,
                "adults": intake.adults,
                "kids": intake.kids,
                "toddlers": intake.toddlers,
                "has_car": intake.has_car,
                "has_pet": intake.has_pet,
                "has_pwd": intake.has_pwd,
                "total_price": quote.total_price,
                "down_payment": quote.down_payment,
                "balance": quote.balance,
            },
        )
        payload: dict[str, Any] = {
            "total_price": quote.total_price,
            "down_payment": quote.down_payment,
            "nights": quote.nights,
            "nightly_rate": quote.nightly_rate,
        }
        if intake.notes:
            payload["notes"] = intake.notes
        append_booking_event(conn, booking_id, BookingEventKind.CREATED, payload, actor.actor_id)

    bookings_created.inc()
    logger.info(
        "booking_created",
        booking_id=booking_id,
        unit_id=intake.unit_id,
        total_price=quote.total_price,
        walk_in=walk_in,
    )

    display_name = intake.walk_in_guest_name if walk_in else intake.guest_name
    if mobile:
        display_name = f"{display_name} ({format_mobile_display(mobile)})"
    notify_admins(
        engine,
        "New Reservation Request",
        f"{display_name} requested {unit['name']}. Payment pending.",
        "/admin/bookings",
        Severity.INFO,
    )
    return CreatedBooking(booking_id=booking_id, quote=quote)


def _email_details(booking: dict[str, Any]) -> BookingEmailDetails:
    return BookingEmailDetails(
        booking_id=booking["id"],
        guest_name=booking["guest_name"] or "Guest",
        guest_email=booking["guest_email"],
        unit_name=booking["unit_name"],
        check_in=booking["check_in"],
        check_out=booking["check_out"],
        total_price=booking["total_price"],
        balance=booking["balance"],
    )


def confirm_booking(
    engine: Engine,
    booking_id: str,
    annotation: str,
    actor: Actor = SYSTEM_ACTOR,
) -> TransitionResult:
    """
    PENDING -> CONFIRMED, the single entry point for confirmation.

    On the transition that actually changes state: payment status becomes
    PARTIAL, the annotation is logged as a CONFIRMED event and, for an
    agent-linked booking, exactly one commission is derived, all in one
    transaction. After commit the agent is notified and the guest is emailed.
    Called again (webhook replay, poll, admin) it is a no-op.

    Args:
        engine: SQLAlchemy engine
        booking_id: Booking ID
        annotation: Why/how the booking was confirmed (e.g. webhook event id)
        actor: SYSTEM for webhook/poll paths, ADMIN for manual approval

    Returns:
        TransitionResult

    Raises:
        BookingNotFoundError: Unknown booking
        AuthorizationError: Actor is neither admin nor system
    """
    actor.require(Role.ADMIN, Role.SYSTEM)
    commission: Optional[dict[str, Any]] = None

    with engine.begin() as conn:
        changed = transition_booking_status(
            conn,
            booking_id,
            from_statuses=[BookingStatus.PENDING],
            to_status=BookingStatus.CONFIRMED,
            payment_status=PaymentStatus.PARTIAL,
        )
        booking = get_booking_with_parties(conn, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)

        if changed:
            append_booking_event(
                conn,
                booking_id,
                BookingEventKind.CONFIRMED,
                {"annotation": annotation},
                actor.actor_id,
            )
            if booking["agent_id"]:
                agent = get_user(conn, booking["agent_id"])
                if agent is None:
                    logger.warning(
                        "commission_agent_missing",
                        booking_id=booking_id,
                        agent_id=booking["agent_id"],
                    )
                else:
                    commission = derive_commission(conn, booking, agent)

    if not changed:
        booking_transitions.labels(transition="confirm", outcome="noop").inc()
        logger.info("booking_confirm_noop", booking_id=booking_id, status=booking["status"])
        return TransitionResult(booking_id, booking["status"], changed=False)

    booking_transitions.labels(transition="confirm", outcome="applied").inc()
    logger.info("booking_confirmed", booking_id=booking_id, annotation=annotation)

    record_activity(
        engine, actor.actor_id, "BOOKING_CONFIRMED", "BOOKING", booking_id, annotation
    )

    if commission is not None:
        commissions_created.labels(source="confirm").inc()
        notify(
            engine,
            commission["agent_id"],
            "New Commission",
            f"You earned {format_php(commission['amount'])} commission for booking "
            f"{booking_id[-6:].upper()}.",
            "/portal/bookings",
            Severity.SUCCESS,
        )

    if booking["guest_email"]:
        send_booking_confirmation(_email_details(booking))

    return TransitionResult(
        booking_id,
        BookingStatus.CONFIRMED.value,
        changed=True,
        commission_id=commission["id"] if commission else None,
    )


def cancel_booking(
    engine: Engine,
    booking_id: str,
    reason: str,
    actor: Actor = SYSTEM_ACTOR,
    send_email: bool = True,
) -> TransitionResult:
    """
    PENDING or CONFIRMED -> CANCELLED.

    An already-derived commission is left untouched; reversing it is an
    explicit admin decision in the commission ledger. The guest is emailed
    the reason when they have an address, unless send_email is False (the
    reaper sends its emails itself, off the transition path).

    Raises:
        BookingNotFoundError: Unknown booking
        AuthorizationError: Actor is neither admin nor system
    """
    actor.require(Role.ADMIN, Role.SYSTEM)

    with engine.begin() as conn:
        changed = transition_booking_status(
            conn,
            booking_id,
            from_statuses=[BookingStatus.PENDING, BookingStatus.CONFIRMED],
            to_status=BookingStatus.CANCELLED,
        )
        booking = get_booking_with_parties(conn, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if changed:
            append_booking_event(
                conn, booking_id, BookingEventKind.CANCELLED, {"reason": reason}, actor.actor_id
            )

    if not changed:
        booking_transitions.labels(transition="cancel", outcome="noop").inc()
        logger.info("booking_cancel_noop", booking_id=booking_id, status=booking["status"])
        return TransitionResult(booking_id, booking["status"], changed=False)

    booking_transitions.labels(transition="cancel", outcome="applied").inc()
    logger.info("booking_cancelled", booking_id=booking_id, reason=reason)

    record_activity(engine, actor.actor_id, "BOOKING_CANCELLED", "BOOKING", booking_id, reason)

    if send_email:
        _email_cancellation(booking, reason)

    return TransitionResult(booking_id, BookingStatus.CANCELLED.value, changed=True)


def send_cancellation_notice(engine: Engine, booking_id: str, reason: str) -> bool:
    """
    Email the guest of an already-cancelled booking.

    Returns:
        bool: True if an email was accepted by the provider
    """
    with engine.connect() as conn:
        booking = get_booking_with_parties(conn, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    return _email_cancellation(booking, reason)


def _email_cancellation(booking: dict[str, Any], reason: str) -> bool:
    if not booking["guest_email"]:
        return False
    return send_booking_cancellation(
        booking["guest_email"],
        booking["guest_name"] or "Guest",
        booking["unit_name"],
        booking["id"],
        reason,
    )


def complete_booking(
    engine: Engine, booking_id: str, actor: Actor = SYSTEM_ACTOR
) -> TransitionResult:
    """
    CONFIRMED -> COMPLETED. Idempotent, no notifications.

    Raises:
        BookingNotFoundError: Unknown booking
        AuthorizationError: Actor is neither admin nor system
    """
    actor.require(Role.ADMIN, Role.SYSTEM)

    with engine.begin() as conn:
        changed = transition_booking_status(
            conn,
            booking_id,
            from_statuses=[BookingStatus.CONFIRMED],
            to_status=BookingStatus.COMPLETED,
        )
        booking = get_booking(conn, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if changed:
            append_booking_event(conn, booking_id, BookingEventKind.COMPLETED, {}, actor.actor_id)

    outcome = "applied" if changed else "noop"
    booking_transitions.labels(transition="complete", outcome=outcome).inc()
    logger.info("booking_complete", booking_id=booking_id, outcome=outcome)
    return TransitionResult(booking_id, booking["status"], changed=changed)


def submit_payment_proof(engine: Engine, booking_id: str, reference_number: str) -> None:
    """
    Record a guest's manual payment reference and alert admins.

    The booking stays PENDING until an admin confirms it.

    Raises:
        ValidationError: Empty reference number
        BookingNotFoundError: Unknown booking
    """
    reference = (reference_number or "").strip()
    if not reference:
        raise ValidationError("Payment reference number is required.")

    with engine.begin() as conn:
        booking = get_booking_with_parties(conn, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        append_booking_event(
            conn,
            booking_id,
            BookingEventKind.PAYMENT_PROOF_SUBMITTED,
            {"reference_number": reference},
        )

    logger.info("payment_proof_submitted", booking_id=booking_id)
    notify_admins(
        engine,
        "Payment Received",
        f"{booking['guest_name'] or 'A guest'} submitted proof for {booking['unit_name']}. "
        f"Ref: {reference}",
        "/admin/bookings",
        Severity.WARNING,
    )


def track_booking(engine: Engine, booking_id: str) -> dict[str, Any]:
    """
    Return the guest-facing view of a booking: no contact data, no event log.

    Raises:
        BookingNotFoundError: Unknown booking
    """
    with engine.connect() as conn:
        booking = get_booking_with_parties(conn, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)

    return {
        "id": booking["id"],
        "unit_name": booking["unit_name"],
        "guest_name": booking["guest_name"],
        "check_in": booking["check_in"],
        "check_out": booking["check_out"],
        "adults": booking["adults"],
        "kids": booking["kids"],
        "status": booking["status"],
        "payment_status": booking["payment_status"],
        "total_price": booking["total_price"],
        "down_payment": booking["down_payment"],
        "balance": booking["balance"],
    }
