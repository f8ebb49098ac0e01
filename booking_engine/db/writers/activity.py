from typing import Any, Optional

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from booking_engine.models.audit_logs import AuditLog
from booking_engine.models.notifications import Notification
from booking_engine.utils.datetime import utc_now


def insert_notifications(conn: Connection, rows: list[dict[str, Any]]) -> None:
    """
    Insert notification rows (user_id, title, message, link, severity).

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        rows (list[dict]): Notifications to insert.
    """
    if not rows:
        return
    now = utc_now()
    conn.execute(insert(Notification), [{**row, "is_read": False, "created_at": now} for row in rows])


def mark_notifications_read(conn: Connection, user_id: str) -> int:
    """Mark all of a user's unread notifications as read. Returns rows updated."""
    stmt = (
        update(Notification)
        .where(Notification.user_id == user_id)
        .where(Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return conn.execute(stmt).rowcount


def insert_audit_log(
    conn: Connection,
    actor_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    details: Optional[str],
) -> None:
    """Insert one audit trail entry."""
    conn.execute(
        insert(AuditLog).values(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            created_at=utc_now(),
        )
    )
