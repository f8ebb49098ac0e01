"""Scheduled reaper trigger (called by the platform cron, GET or POST)."""

from __future__ import annotations

import hmac
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.engine import Engine

from booking_engine.config import CRON_SECRET
from booking_engine.dependencies import get_db_engine
from booking_engine.services.reaper import cancel_stale_bookings

router = APIRouter()
logger = structlog.get_logger(__name__)


def validate_cron_secret(authorization: Optional[str]) -> bool:
    """
    Check `Authorization: Bearer <CRON_SECRET>`.

    Always True when no CRON_SECRET is configured.
    """
    if not CRON_SECRET:
        return True
    if not authorization or not authorization.startswith("Bearer "):
        return False
    return hmac.compare_digest(authorization[len("Bearer "):], CRON_SECRET)


@router.api_route("/cron/cleanup", methods=["GET", "POST"])
def cleanup_stale_bookings(
    authorization: Optional[str] = Header(None),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, int]:
    """
    Cancel PENDING bookings older than the stale threshold.

    Returns:
        dict: {"cancelled": <count>}; per-booking failures are logged only
    """
    if not validate_cron_secret(authorization):
        logger.warning("cron_authentication_failed")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        cancelled = cancel_stale_bookings(engine)
    except Exception as e:
        logger.exception("reaper_sweep_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return {"cancelled": cancelled}
