from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from booking_engine.models.base import Base
from booking_engine.utils.datetime import utc_now


class Severity(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Notification(Base):
    """ORM model for an in-app notification addressed to one user."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)
    severity = Column(String(10), nullable=False, default=Severity.INFO.value)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
