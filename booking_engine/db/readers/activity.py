from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Connection

from booking_engine.models.audit_logs import AuditLog
from booking_engine.models.notifications import Notification


def list_notifications(conn: Connection, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
    """Return a user's most recent notifications, newest first."""
    stmt = (
        select(Notification.__table__)
        .where(Notification.user_id == user_id)
        .order_by(Notification.id.desc())
        .limit(limit)
    )
    return [dict(row) for row in conn.execute(stmt).mappings().all()]


def list_audit_logs(conn: Connection, limit: int = 50) -> list[dict[str, Any]]:
    """Return the most recent audit entries, newest first."""
    stmt = select(AuditLog.__table__).order_by(AuditLog.id.desc()).limit(limit)
    return [dict(row) for row in conn.execute(stmt).mappings().all()]
