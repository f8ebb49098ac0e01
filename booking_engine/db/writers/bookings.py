"""
Guarded writes for bookings.

Every status change is one conditional UPDATE whose WHERE clause names the
states the transition may leave. The statement is atomic in the database, so
when the webhook, the reaper and an admin race on the same booking exactly one
UPDATE matches a row; the others see rowcount 0 and take their no-op branch.
Callers must issue these as the first statement of their transaction.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from booking_engine.models.booking_events import BookingEvent, BookingEventKind
from booking_engine.models.bookings import Booking, BookingStatus, PaymentStatus
from booking_engine.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_booking(conn: Connection, row: dict[str, Any]) -> str:
    """
    Insert a new booking row.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        row (dict): Column values; id, status and timestamps default when absent.

    Returns:
        str: The new booking ID
    """
    now = utc_now()
    values = {
        "status": BookingStatus.PENDING.value,
        "payment_status": PaymentStatus.UNPAID.value,
        "created_at": now,
        "updated_at": now,
        **row,
    }
    result = conn.execute(insert(Booking).values(**values).returning(Booking.id))
    return str(result.scalar_one())


def transition_booking_status(
    conn: Connection,
    booking_id: str,
    from_statuses: Iterable[BookingStatus],
    to_status: BookingStatus,
    payment_status: Optional[PaymentStatus] = None,
) -> bool:
    """
    Move a booking to to_status only if it is currently in one of from_statuses.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        booking_id (str): Booking ID.
        from_statuses: States this transition may leave.
        to_status (BookingStatus): Target state.
        payment_status (Optional[PaymentStatus]): Payment status to set alongside.

    Returns:
        bool: True if this call changed the row, False if the booking was
        missing or already outside from_statuses.
    """
    values: dict[str, Any] = {"status": to_status.value, "updated_at": utc_now()}
    if payment_status is not None:
        values["payment_status"] = payment_status.value

    stmt = (
        update(Booking)
        .where(Booking.id == booking_id)
        .where(Booking.status.in_([s.value for s in from_statuses]))
        .values(**values)
    )
    result = conn.execute(stmt)
    return result.rowcount == 1


def assign_agent_if_unassigned(
    conn: Connection,
    booking_id: str,
    agent_id: str,
    statuses: Optional[Iterable[BookingStatus]] = None,
    created_after: Optional[datetime] = None,
) -> bool:
    """
    Set agent_id on a booking that has none. agent_id is never overwritten.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        booking_id (str): Booking ID.
        agent_id (str): Claiming agent's user ID.
        statuses: Only assign when the booking is in one of these states.
        created_after (Optional[datetime]): Only assign bookings created after this instant.

    Returns:
        bool: True if the agent was assigned by this call
    """
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id)
        .where(Booking.agent_id.is_(None))
        .values(agent_id=agent_id, updated_at=utc_now())
    )
    if statuses is not None:
        stmt = stmt.where(Booking.status.in_([s.value for s in statuses]))
    if created_after is not None:
        stmt = stmt.where(Booking.created_at >= created_after)
    return conn.execute(stmt).rowcount == 1


def set_checkout_session(conn: Connection, booking_id: str, checkout_session_id: str) -> bool:
    """
    Record the payment provider's checkout session on a still-PENDING booking.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        booking_id (str): Booking ID.
        checkout_session_id (str): Provider checkout session ID.

    Returns:
        bool: True if stored
    """
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id)
        .where(Booking.status == BookingStatus.PENDING.value)
        .values(checkout_session_id=checkout_session_id, updated_at=utc_now())
    )
    return conn.execute(stmt).rowcount == 1


def append_booking_event(
    conn: Connection,
    booking_id: str,
    kind: BookingEventKind,
    payload: Optional[dict[str, Any]] = None,
    actor_id: Optional[str] = None,
) -> None:
    """
    Append one entry to a booking's event log.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        booking_id (str): Booking ID.
        kind (BookingEventKind): Event kind.
        payload (Optional[dict]): Structured event details.
        actor_id (Optional[str]): Acting user, None for system triggers.
    """
    conn.execute(
        insert(BookingEvent).values(
            booking_id=booking_id,
            kind=kind.value,
            payload=payload or {},
            actor_id=actor_id,
            created_at=utc_now(),
        )
    )
    logger.debug("booking_event_appended", booking_id=booking_id, kind=kind.value)
