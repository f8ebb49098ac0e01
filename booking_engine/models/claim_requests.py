"""SQLAlchemy model for agent claim requests awaiting admin review."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from booking_engine.models.base import Base, new_id
from booking_engine.utils.datetime import utc_now


class ClaimRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ClaimRequest(Base):
    """
    ORM model for an agent asking an admin to credit them with a booking.

    Unlike a self-claim, a request carries the agent's evidence (description)
    and only attaches the agent once an admin approves it. An agent has at
    most one PENDING request per booking, enforced by a partial unique index.
    """

    __tablename__ = "claim_requests"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    agent_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    status = Column(String(10), nullable=False, default=ClaimRequestStatus.PENDING.value)
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index(
            "uq_claim_requests_open",
            "booking_id",
            "agent_id",
            unique=True,
            postgresql_where=status == ClaimRequestStatus.PENDING.value,
            sqlite_where=status == ClaimRequestStatus.PENDING.value,
        ),
    )
