from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from booking_engine.models.bookings import Booking
from booking_engine.models.commissions import Commission
from booking_engine.models.units import Unit


def get_commission(conn: Connection, commission_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a commission by id.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        commission_id (str): Commission ID.

    Returns:
        Optional[dict]: Commission columns or None if not found.
    """
    row = (
        conn.execute(select(Commission.__table__).where(Commission.id == commission_id))
        .mappings()
        .first()
    )
    return dict(row) if row else None


def get_commission_for_booking(conn: Connection, booking_id: str) -> Optional[dict[str, Any]]:
    """Fetch the commission derived for a booking, if any."""
    row = (
        conn.execute(select(Commission.__table__).where(Commission.booking_id == booking_id))
        .mappings()
        .first()
    )
    return dict(row) if row else None


def list_commissions(conn: Connection, agent_id: Optional[str] = None) -> list[dict[str, Any]]:
    """
    List commissions newest first, optionally restricted to one agent.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        agent_id (Optional[str]): Only this agent's commissions when given.

    Returns:
        list[dict]: Commission rows with booking dates and unit name
    """
    stmt = (
        select(
            Commission.__table__,
            Booking.check_in,
            Booking.check_out,
            Booking.total_price,
            Unit.name.label("unit_name"),
        )
        .join(Booking, Booking.id == Commission.booking_id)
        .join(Unit, Unit.id == Booking.unit_id)
        .order_by(Commission.created_at.desc())
    )
    if agent_id is not None:
        stmt = stmt.where(Commission.agent_id == agent_id)
    return [dict(row) for row in conn.execute(stmt).mappings().all()]
