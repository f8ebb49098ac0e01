"""Notification inbox and audit log routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from booking_engine.actors import Actor
from booking_engine.dependencies import get_actor, get_db_engine
from booking_engine.routes._helpers import domain_errors
from booking_engine.schemas.activity import AuditLogResponse, NotificationResponse
from booking_engine.services.audit import get_audit_log
from booking_engine.services.notifications import get_inbox, mark_all_read

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationResponse])
def list_notifications_route(
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> list[NotificationResponse]:
    with domain_errors("notification_listing"):
        rows = get_inbox(engine, actor)
    return [NotificationResponse(**row) for row in rows]


@router.post("/notifications/read-all")
def mark_all_read_route(
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> dict[str, int]:
    with domain_errors("notification_mark_read"):
        updated = mark_all_read(engine, actor)
    return {"updated": updated}


@router.get("/audit", response_model=list[AuditLogResponse])
def list_audit_route(
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> list[AuditLogResponse]:
    with domain_errors("audit_listing"):
        rows = get_audit_log(engine, actor)
    return [AuditLogResponse(**row) for row in rows]
