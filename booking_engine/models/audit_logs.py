from sqlalchemy import Column, DateTime, Integer, String, Text

from booking_engine.models.base import Base
from booking_engine.utils.datetime import utc_now


class AuditLog(Base):
    """
    ORM model for an audit trail entry.

    actor_id is null when the action was taken by the system (webhook, reaper).
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(String(36), nullable=True, index=True)
    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String(36), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
