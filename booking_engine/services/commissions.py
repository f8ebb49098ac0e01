"""
Commission ledger: derivation, settlement and agent self-claims.

A commission comes into existence when an agent-linked booking is confirmed,
or when an agent is attached (self-claim or approved claim request) to a
booking that is already confirmed. All paths go through derive_commission,
which is the single place that enforces one commission per booking.
Settlement (pay out / reject) is a separate PENDING -> {PAID_OUT, REJECTED}
state machine driven only by admins.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from booking_engine.actors import Actor, Role
from booking_engine.config import CLAIM_WINDOW_DAYS
from booking_engine.db.readers.bookings import get_booking, search_orphan_bookings
from booking_engine.db.readers.commissions import (
    get_commission,
    get_commission_for_booking,
    list_commissions,
)
from booking_engine.db.readers.users import get_user
from booking_engine.db.writers.bookings import append_booking_event, assign_agent_if_unassigned
from booking_engine.db.writers.commissions import insert_commission, settle_commission
from booking_engine.errors import (
    BookingNotFoundError,
    CommissionNotFoundError,
    InvalidStateError,
    ValidationError,
)
from booking_engine.metrics import commission_settlements, commissions_created
from booking_engine.models.booking_events import BookingEventKind
from booking_engine.models.bookings import BookingStatus
from booking_engine.models.commissions import CommissionStatus
from booking_engine.models.notifications import Severity
from booking_engine.models.users import UserRole
from booking_engine.services.audit import record_activity
from booking_engine.services.notifications import notify, notify_admins
from booking_engine.utils.datetime import utc_now
from booking_engine.utils.money import format_php, round_minor

logger = structlog.get_logger(__name__)

CLAIMABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
COMMISSIONABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


def compute_commission_amount(total_price: int, commission_rate: float) -> int:
    """round(total_price * commission_rate), half-up, in centavos."""
    return round_minor(Decimal(total_price) * Decimal(str(commission_rate)))


def derive_commission(
    conn: Connection, booking: dict[str, Any], agent: dict[str, Any]
) -> Optional[dict[str, Any]]:
    """
    Create the PENDING commission for a booking at the agent's current rate.

    Runs inside the caller's transaction so the commission is committed
    together with the transition that produced it.

    Args:
        conn: Connection of the caller's open transaction
        booking: Booking row (id, total_price)
        agent: Agent user row (id, commission_rate)

    Returns:
        The new commission (id, booking_id, agent_id, amount), or None when
        the booking already has a commission.
    """
    existing = get_commission_for_booking(conn, booking["id"])
    if existing:
        logger.info(
            "commission_already_derived",
            booking_id=booking["id"],
            commission_id=existing["id"],
        )
        return None

    amount = compute_commission_amount(booking["total_price"], agent["commission_rate"])
    commission_id = insert_commission(conn, booking["id"], agent["id"], amount)
    logger.info(
        "commission_derived",
        booking_id=booking["id"],
        agent_id=agent["id"],
        commission_id=commission_id,
        amount=amount,
    )
    return {
        "id": commission_id,
        "booking_id": booking["id"],
        "agent_id": agent["id"],
        "amount": amount,
    }


def _settle(
    engine: Engine,
    commission_id: str,
    actor: Actor,
    to_status: CommissionStatus,
) -> dict[str, Any]:
    actor.require(Role.ADMIN)

    with engine.begin() as conn:
        paid_at = utc_now() if to_status == CommissionStatus.PAID_OUT else None
        changed = settle_commission(conn, commission_id, to_status, paid_at=paid_at)
        commission = get_commission(conn, commission_id)
        if commission is None:
            raise CommissionNotFoundError(commission_id)
        if not changed:
            raise InvalidStateError(
                f"Commission {commission_id} is {commission['status']}, only PENDING "
                "commissions can be settled"
            )

    commission_settlements.labels(outcome=to_status.value.lower()).inc()
    logger.info(
        "commission_settled",
        commission_id=commission_id,
        status=to_status.value,
        actor_id=actor.actor_id,
    )
    return commission


def mark_paid(engine: Engine, commission_id: str, actor: Actor) -> dict[str, Any]:
    """
    Pay out a PENDING commission (admin only).

    Raises:
        AuthorizationError: Actor is not an admin
        CommissionNotFoundError: Unknown commission
        InvalidStateError: Commission is already PAID_OUT or REJECTED
    """
    commission = _settle(engine, commission_id, actor, CommissionStatus.PAID_OUT)

    notify(
        engine,
        commission["agent_id"],
        "Commission Paid",
        f"Your commission of {format_php(commission['amount'])} has been paid out.",
        "/portal/commissions",
        Severity.SUCCESS,
    )
    record_activity(
        engine,
        actor.actor_id,
        "COMMISSION_PAID_OUT",
        "COMMISSION",
        commission_id,
        f"amount={commission['amount']} booking={commission['booking_id']}",
    )
    return commission


def reject(engine: Engine, commission_id: str, actor: Actor) -> dict[str, Any]:
    """
    Reject a PENDING commission (admin only).

    Raises:
        AuthorizationError: Actor is not an admin
        CommissionNotFoundError: Unknown commission
        InvalidStateError: Commission is already PAID_OUT or REJECTED
    """
    commission = _settle(engine, commission_id, actor, CommissionStatus.REJECTED)

    notify(
        engine,
        commission["agent_id"],
        "Commission Rejected",
        f"Your commission claim for booking {commission['booking_id'][-6:].upper()} was rejected.",
        "/portal/commissions",
        Severity.WARNING,
    )
    record_activity(
        engine,
        actor.actor_id,
        "COMMISSION_REJECTED",
        "COMMISSION",
        commission_id,
        f"booking={commission['booking_id']}",
    )
    return commission


def get_commissions(engine: Engine, actor: Actor) -> list[dict[str, Any]]:
    """List commissions: admins see all, agents see their own."""
    actor.require(Role.ADMIN, Role.AGENT)
    with engine.connect() as conn:
        return list_commissions(conn, agent_id=None if actor.is_admin else actor.actor_id)


def search_claimable_bookings(engine: Engine, actor: Actor, guest_name: str) -> list[dict[str, Any]]:
    """
    Search orphan bookings an agent may claim.

    Args:
        engine: SQLAlchemy engine
        actor: Searching agent
        guest_name: Partial guest name, at least 2 characters

    Returns:
        Up to 5 matches, newest first
    """
    actor.require(Role.AGENT)
    query = (guest_name or "").strip()
    if len(query) < 2:
        raise ValidationError("Please enter a valid guest name.")

    created_after = utc_now() - timedelta(days=CLAIM_WINDOW_DAYS)
    with engine.connect() as conn:
        return search_orphan_bookings(conn, query, created_after)


def attach_agent(
    conn: Connection,
    booking_id: str,
    agent_id: str,
    actor_id: Optional[str],
    created_after: Optional[datetime] = None,
) -> tuple[dict[str, Any], dict[str, Any], Optional[dict[str, Any]]]:
    """
    Assign an agent to an unassigned booking inside the caller's transaction.

    A CONFIRMED or COMPLETED booking gets its commission derived right away.
    A PENDING booking only records the agent; confirm_booking derives the
    commission when payment lands. Both the assignment here and the confirm
    transition start with a guarded update of the same booking row, so
    whichever commits second sees the other's change.

    Args:
        conn: Connection of the caller's open transaction
        booking_id: Booking to attach
        agent_id: Agent user ID
        actor_id: Who performed the attachment, for the event log
        created_after: Only bookings created after this instant qualify

    Returns:
        (booking, agent, commission) where commission is None for a PENDING
        booking

    Raises:
        BookingNotFoundError: Unknown booking
        InvalidStateError: Already claimed, cancelled, outside the window, or
            a commission already exists
        ValidationError: agent_id is not an agent
    """
    assigned = assign_agent_if_unassigned(
        conn,
        booking_id,
        agent_id,
        statuses=CLAIMABLE_STATUSES,
        created_after=created_after,
    )
    booking = get_booking(conn, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    if not assigned:
        if booking["agent_id"] is not None:
            raise InvalidStateError("This booking is already claimed.")
        if booking["status"] not in {s.value for s in CLAIMABLE_STATUSES}:
            raise InvalidStateError("Cancelled bookings cannot be claimed.")
        raise InvalidStateError(
            f"Bookings older than {CLAIM_WINDOW_DAYS} days can no longer be claimed."
        )

    agent = get_user(conn, agent_id)
    if agent is None or agent["role"] != UserRole.AGENT.value:
        raise ValidationError("Agent profile not found.")

    commission = None
    if booking["status"] in {s.value for s in COMMISSIONABLE_STATUSES}:
        commission = derive_commission(conn, booking, agent)
        if commission is None:
            raise InvalidStateError("A commission already exists for this booking.")

    append_booking_event(
        conn,
        booking_id,
        BookingEventKind.AGENT_CLAIMED,
        {
            "agent_id": agent_id,
            "commission_id": commission["id"] if commission else None,
            "amount": commission["amount"] if commission else None,
        },
        actor_id,
    )
    return booking, agent, commission


def claim_booking(engine: Engine, booking_id: str, actor: Actor) -> dict[str, Any]:
    """
    Attach the acting agent to an orphan booking.

    The assignment is a conditional update, so two agents racing for the same
    booking cannot both win. A confirmed booking gets its commission in the
    same transaction and the whole claim rolls back if either step is refused;
    a PENDING booking gets its commission later, from confirm_booking.

    Returns:
        dict with booking_id, agent_id, status, commission_id and amount
        (the last two None until the booking is confirmed)

    Raises:
        AuthorizationError: Actor is not an agent
        BookingNotFoundError: Unknown booking
        InvalidStateError: Already claimed, cancelled, outside the claim
            window, or a commission already exists
    """
    actor.require(Role.AGENT)
    if not actor.actor_id:
        raise ValidationError("Agent identity is required to claim a booking.")

    created_after = utc_now() - timedelta(days=CLAIM_WINDOW_DAYS)

    with engine.begin() as conn:
        booking, agent, commission = attach_agent(
            conn, booking_id, actor.actor_id, actor.actor_id, created_after=created_after
        )

    reference = booking_id[-6:].upper()
    if commission:
        commissions_created.labels(source="claim").inc()
        message = f"{agent['name'] or 'An agent'} claimed booking {reference}. Review needed."
        details = f"commission={commission['id']} amount={commission['amount']}"
    else:
        message = (
            f"{agent['name'] or 'An agent'} claimed booking {reference}. "
            "Commission will be created on confirmation."
        )
        details = "commission=deferred"
    logger.info(
        "booking_claimed",
        booking_id=booking_id,
        agent_id=actor.actor_id,
        status=booking["status"],
        commission_id=commission["id"] if commission else None,
    )

    notify_admins(engine, "Commission Claim", message, "/admin/claims", Severity.INFO)
    record_activity(engine, actor.actor_id, "BOOKING_CLAIMED", "BOOKING", booking_id, details)
    return {
        "booking_id": booking_id,
        "agent_id": actor.actor_id,
        "status": booking["status"],
        "commission_id": commission["id"] if commission else None,
        "amount": commission["amount"] if commission else None,
    }
