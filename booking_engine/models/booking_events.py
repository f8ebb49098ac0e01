"""SQLAlchemy model for the append-only per-booking event log."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from booking_engine.models.base import Base, JSONPayload
from booking_engine.utils.datetime import utc_now


class BookingEventKind(str, Enum):
    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    CHECKOUT_STARTED = "CHECKOUT_STARTED"
    PAYMENT_PROOF_SUBMITTED = "PAYMENT_PROOF_SUBMITTED"
    AGENT_CLAIMED = "AGENT_CLAIMED"
    NOTE = "NOTE"


class BookingEvent(Base):
    """
    ORM model for one entry in a booking's ordered event log.

    Rows are only ever inserted. Payment-proof references, webhook annotations
    and transition reasons are kept as structured payloads rather than being
    appended to a free-text notes column. The autoincrement id gives a total
    order within a booking even when timestamps collide.
    """

    __tablename__ = "booking_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind = Column(String(32), nullable=False)
    payload = Column(JSONPayload, nullable=False, default=dict)
    actor_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
