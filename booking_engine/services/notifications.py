"""
In-app notification sink.

Dispatch is fire-and-forget: every call runs in its own transaction, and a
failure is logged and counted but never raised. Callers invoke these only
after their own state change has committed, so a notification hiccup can
never undo a booking or commission transition.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from booking_engine.actors import Actor
from booking_engine.db.readers.activity import list_notifications
from booking_engine.db.readers.users import list_admin_ids
from booking_engine.db.writers.activity import insert_notifications, mark_notifications_read
from booking_engine.errors import AuthorizationError
from booking_engine.metrics import side_effect_failures
from booking_engine.models.notifications import Severity

logger = structlog.get_logger(__name__)


def notify(
    engine: Engine,
    user_id: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    severity: Severity = Severity.INFO,
) -> bool:
    """
    Create a notification for one user.

    Args:
        engine: SQLAlchemy engine
        user_id: Recipient user ID
        title: Short heading
        message: Body text
        link: Optional in-app path
        severity: Display severity

    Returns:
        bool: True if stored, False if the dispatch failed (already logged)
    """
    try:
        with engine.begin() as conn:
            insert_notifications(
                conn,
                [
                    {
                        "user_id": user_id,
                        "title": title,
                        "message": message,
                        "link": link,
                        "severity": severity.value,
                    }
                ],
            )
        return True
    except Exception as e:
        side_effect_failures.labels(sink="notification").inc()
        logger.exception("notification_dispatch_failed", user_id=user_id, title=title, error=str(e))
        return False


def notify_admins(
    engine: Engine,
    title: str,
    message: str,
    link: Optional[str] = None,
    severity: Severity = Severity.INFO,
) -> int:
    """
    Create the same notification for every active admin.

    Returns:
        int: Number of notifications stored (0 on failure)
    """
    try:
        with engine.begin() as conn:
            admin_ids = list_admin_ids(conn)
            insert_notifications(
                conn,
                [
                    {
                        "user_id": admin_id,
                        "title": title,
                        "message": message,
                        "link": link,
                        "severity": severity.value,
                    }
                    for admin_id in admin_ids
                ],
            )
        return len(admin_ids)
    except Exception as e:
        side_effect_failures.labels(sink="notification").inc()
        logger.exception("admin_notification_failed", title=title, error=str(e))
        return 0


def get_inbox(engine: Engine, actor: Actor, limit: int = 20) -> list[dict[str, Any]]:
    """Latest notifications addressed to the actor, newest first."""
    if not actor.actor_id:
        raise AuthorizationError("Sign in to read notifications")
    with engine.connect() as conn:
        return list_notifications(conn, actor.actor_id, limit=limit)


def mark_all_read(engine: Engine, actor: Actor) -> int:
    """Mark every unread notification of the actor as read; returns how many changed."""
    if not actor.actor_id:
        raise AuthorizationError("Sign in to read notifications")
    with engine.begin() as conn:
        return mark_notifications_read(conn, actor.actor_id)
