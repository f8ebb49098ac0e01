from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection
from sqlalchemy.orm import aliased

from booking_engine.models.bookings import Booking
from booking_engine.models.claim_requests import ClaimRequest, ClaimRequestStatus
from booking_engine.models.units import Unit
from booking_engine.models.users import User


def get_claim_request(conn: Connection, claim_request_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a claim request by id.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        claim_request_id (str): Claim request ID.

    Returns:
        Optional[dict]: Claim request columns or None if not found.
    """
    row = (
        conn.execute(select(ClaimRequest.__table__).where(ClaimRequest.id == claim_request_id))
        .mappings()
        .first()
    )
    return dict(row) if row else None


def has_open_claim_request(conn: Connection, booking_id: str, agent_id: str) -> bool:
    """True if the agent already has a PENDING request for the booking."""
    stmt = (
        select(func.count())
        .select_from(ClaimRequest)
        .where(ClaimRequest.booking_id == booking_id)
        .where(ClaimRequest.agent_id == agent_id)
        .where(ClaimRequest.status == ClaimRequestStatus.PENDING.value)
    )
    return int(conn.execute(stmt).scalar_one()) > 0


def list_claim_requests(
    conn: Connection, agent_id: Optional[str] = None
) -> list[dict[str, Any]]:
    """
    List claim requests newest first, optionally restricted to one agent.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        agent_id (Optional[str]): Only this agent's requests when given.

    Returns:
        list[dict]: Request rows with agent name, guest name, unit name and
        booking dates
    """
    agent = aliased(User)
    guest = aliased(User)
    stmt = (
        select(
            ClaimRequest.__table__,
            agent.name.label("agent_name"),
            func.coalesce(guest.name, Booking.walk_in_guest_name).label("guest_name"),
            Unit.name.label("unit_name"),
            Booking.check_in,
            Booking.check_out,
            Booking.total_price,
            Booking.status.label("booking_status"),
        )
        .join(Booking, Booking.id == ClaimRequest.booking_id)
        .join(Unit, Unit.id == Booking.unit_id)
        .join(agent, agent.id == ClaimRequest.agent_id)
        .outerjoin(guest, guest.id == Booking.user_id)
        .order_by(ClaimRequest.created_at.desc())
    )
    if agent_id is not None:
        stmt = stmt.where(ClaimRequest.agent_id == agent_id)
    return [dict(row) for row in conn.execute(stmt).mappings().all()]
