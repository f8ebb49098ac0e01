from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection
from sqlalchemy.orm import aliased

from booking_engine.models.booking_events import BookingEvent
from booking_engine.models.bookings import Booking, BookingStatus
from booking_engine.models.units import Unit
from booking_engine.models.users import User


def get_booking(conn: Connection, booking_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a booking row by id.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_id (str): Booking ID.

    Returns:
        Optional[dict[str, Any]]: Booking columns, or None if not found.
    """
    row = (
        conn.execute(select(Booking.__table__).where(Booking.id == booking_id))
        .mappings()
        .first()
    )
    return dict(row) if row else None


def get_booking_with_parties(conn: Connection, booking_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a booking together with unit name and guest contact details.

    Used to build confirmation and cancellation messages. guest_name falls
    back to the walk-in guest name when the booking has no linked guest.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (str): Booking ID.

    Returns:
        Optional[dict]: Booking columns plus unit_name, guest_name, guest_email, guest_mobile
    """
    guest = aliased(User)
    stmt = (
        select(
            Booking.__table__,
            Unit.name.label("unit_name"),
            func.coalesce(guest.name, Booking.walk_in_guest_name).label("guest_name"),
            guest.email.label("guest_email"),
            guest.mobile.label("guest_mobile"),
        )
        .join(Unit, Unit.id == Booking.unit_id)
        .outerjoin(guest, guest.id == Booking.user_id)
        .where(Booking.id == booking_id)
    )
    row = conn.execute(stmt).mappings().first()
    return dict(row) if row else None


def list_stale_booking_ids(conn: Connection, created_before: datetime) -> list[str]:
    """
    List PENDING bookings created before the given instant, oldest first.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        created_before (datetime): Cutoff (exclusive).

    Returns:
        list[str]: Booking IDs
    """
    stmt = (
        select(Booking.id)
        .where(Booking.status == BookingStatus.PENDING.value)
        .where(Booking.created_at < created_before)
        .order_by(Booking.created_at)
    )
    return list(conn.execute(stmt).scalars().all())


def search_orphan_bookings(
    conn: Connection,
    guest_name: str,
    created_after: datetime,
    limit: int = 5,
) -> list[dict[str, Any]]:
    """
    Find claimable bookings: no agent, guest name contains the query
    (case-insensitive), created after the cutoff, and not cancelled.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        guest_name (str): Partial guest name.
        created_after (datetime): Oldest creation time to include.
        limit (int): Maximum rows returned.

    Returns:
        list[dict]: Summary rows, newest first
    """
    guest = aliased(User)
    display_name = func.coalesce(guest.name, Booking.walk_in_guest_name)
    stmt = (
        select(
            Booking.id,
            Booking.check_in,
            Booking.check_out,
            Booking.total_price,
            Booking.status,
            Booking.created_at,
            Unit.name.label("unit_name"),
            display_name.label("guest_name"),
        )
        .join(Unit, Unit.id == Booking.unit_id)
        .outerjoin(guest, guest.id == Booking.user_id)
        .where(Booking.agent_id.is_(None))
        .where(Booking.status != BookingStatus.CANCELLED.value)
        .where(Booking.created_at >= created_after)
        .where(display_name.icontains(guest_name, autoescape=True))
        .order_by(Booking.created_at.desc())
        .limit(limit)
    )
    return [dict(row) for row in conn.execute(stmt).mappings().all()]


def list_booking_events(conn: Connection, booking_id: str) -> list[dict[str, Any]]:
    """
    Return a booking's event log in insertion order.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (str): Booking ID.

    Returns:
        list[dict]: Event rows (kind, payload, actor_id, created_at)
    """
    stmt = (
        select(
            BookingEvent.kind,
            BookingEvent.payload,
            BookingEvent.actor_id,
            BookingEvent.created_at,
        )
        .where(BookingEvent.booking_id == booking_id)
        .order_by(BookingEvent.id)
    )
    return [dict(row) for row in conn.execute(stmt).mappings().all()]
