"""SQLAlchemy model for agent referral commissions."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from booking_engine.models.base import Base, new_id
from booking_engine.utils.datetime import utc_now


class CommissionStatus(str, Enum):
    PENDING = "PENDING"
    PAID_OUT = "PAID_OUT"
    REJECTED = "REJECTED"


class Commission(Base):
    """
    ORM model for a referral payout owed to an agent.

    booking_id is unique: a booking has at most one commission no matter how
    many times, or through which path, derivation is attempted. amount is
    fixed at creation from the agent's rate at that instant.
    """

    __tablename__ = "commissions"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, unique=True)
    agent_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # centavos
    status = Column(String(10), nullable=False, default=CommissionStatus.PENDING.value)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
