"""Audit trail sink. Fire-and-forget like the notification sink."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from booking_engine.actors import Actor, Role
from booking_engine.db.readers.activity import list_audit_logs
from booking_engine.db.writers.activity import insert_audit_log
from booking_engine.metrics import side_effect_failures

logger = structlog.get_logger(__name__)


def record_activity(
    engine: Engine,
    actor_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    details: Optional[str] = None,
) -> bool:
    """
    Write one audit entry in its own transaction.

    Args:
        engine: SQLAlchemy engine
        actor_id: Acting user ID, None for system triggers
        action: Verb, e.g. COMMISSION_PAID_OUT
        entity_type: BOOKING or COMMISSION
        entity_id: Affected entity ID
        details: Free-form context

    Returns:
        bool: True if stored, False if the write failed (logged, not raised)
    """
    try:
        with engine.begin() as conn:
            insert_audit_log(conn, actor_id, action, entity_type, entity_id, details)
        return True
    except Exception as e:
        side_effect_failures.labels(sink="audit").inc()
        logger.exception(
            "audit_log_failed",
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            error=str(e),
        )
        return False


def get_audit_log(engine: Engine, actor: Actor, limit: int = 50) -> list[dict[str, Any]]:
    """Most recent audit entries, admin only."""
    actor.require(Role.ADMIN)
    with engine.connect() as conn:
        return list_audit_logs(conn, limit=limit)
