"""SQLAlchemy model for guests, agents and admins."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, String

from booking_engine.models.base import Base, new_id
from booking_engine.utils.datetime import utc_now


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    CLIENT = "CLIENT"


class User(Base):
    """
    ORM model for every person the engine references.

    Guests are CLIENT users matched at intake by normalized mobile number or
    email. Agents are AGENT users; commission_rate is the fraction (0-1) of a
    booking's total paid out as referral commission. ADMIN users receive
    operational notifications.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    mobile = Column(String(13), nullable=True, unique=True)  # canonical +639XXXXXXXXX
    role = Column(String(10), nullable=False, default=UserRole.CLIENT.value)
    commission_rate = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
