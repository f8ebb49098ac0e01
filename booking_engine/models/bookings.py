# models/bookings.py

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
)

from booking_engine.models.base import Base, new_id
from booking_engine.utils.datetime import utc_now


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class Booking(Base):
    """
    ORM model for a guest reservation of one unit over a date range.

    total_price, down_payment and balance are frozen at creation from the
    pricing quote. status and payment_status are only ever written by the
    guarded transitions in db.writers.bookings; agent_id is set at most once.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_bookings_balance_non_negative"),
        CheckConstraint(
            "balance = total_price - down_payment", name="ck_bookings_balance_matches_terms"
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    unit_id = Column(String(36), ForeignKey("units.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)  # guest
    agent_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    walk_in_guest_name = Column(String, nullable=True)

    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    adults = Column(Integer, nullable=False)
    kids = Column(Integer, nullable=False, default=0)
    toddlers = Column(Integer, nullable=False, default=0)  # not counted toward occupancy

    has_car = Column(Boolean, nullable=False, default=False)
    has_pet = Column(Boolean, nullable=False, default=False)
    has_pwd = Column(Boolean, nullable=False, default=False)

    total_price = Column(Integer, nullable=False)
    down_payment = Column(Integer, nullable=False)
    balance = Column(Integer, nullable=False)

    status = Column(String(10), nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_status = Column(String(10), nullable=False, default=PaymentStatus.UNPAID.value)
    checkout_session_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
