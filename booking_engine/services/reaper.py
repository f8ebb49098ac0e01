"""
Stale-booking reaper.

Cancels PENDING bookings that were never paid within STALE_BOOKING_HOURS,
through the same cancel_booking transition an admin uses. The sweep runs in
two phases: every cancellation is applied and counted first, then the guest
emails go out on a small thread pool under an overall time bound. A slow or
failing email never un-counts a cancellation or holds back the rest of the
sweep.
"""

from __future__ import annotations

import concurrent.futures
import math
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.engine import Engine

from booking_engine.actors import SYSTEM_ACTOR
from booking_engine.config import (
    REAPER_ITEM_TIMEOUT_SECONDS,
    REAPER_MAX_WORKERS,
    STALE_BOOKING_HOURS,
)
from booking_engine.db.readers.bookings import list_stale_booking_ids
from booking_engine.metrics import reaper_cancelled, reaper_item_failures, reaper_runs
from booking_engine.services.bookings import cancel_booking, send_cancellation_notice
from booking_engine.utils.datetime import hours_ago

logger = structlog.get_logger(__name__)

EXPIRY_REASON = (
    f"Reservation expired (no payment received within {STALE_BOOKING_HOURS} hours)"
)


def cancel_stale_bookings(engine: Engine, now: Optional[datetime] = None) -> int:
    """
    Cancel every PENDING booking older than the stale threshold.

    Args:
        engine: SQLAlchemy engine
        now: Reference time (defaults to the current UTC time)

    Returns:
        Number of bookings this sweep actually cancelled. Bookings confirmed
        or cancelled by another caller mid-sweep are not counted.
    """
    reaper_runs.inc()
    cutoff = hours_ago(STALE_BOOKING_HOURS, now)

    with engine.connect() as conn:
        booking_ids = list_stale_booking_ids(conn, cutoff)

    if not booking_ids:
        logger.info("reaper_no_stale_bookings", cutoff=cutoff.isoformat())
        return 0

    logger.info("reaper_sweep_started", stale_count=len(booking_ids), cutoff=cutoff.isoformat())

    cancelled_ids: list[str] = []
    for booking_id in booking_ids:
        try:
            result = cancel_booking(
                engine, booking_id, EXPIRY_REASON, SYSTEM_ACTOR, send_email=False
            )
        except Exception as e:
            reaper_item_failures.labels(reason="error").inc()
            logger.exception("reaper_item_failed", booking_id=booking_id, error=str(e))
            continue
        if result.changed:
            cancelled_ids.append(booking_id)

    reaper_cancelled.inc(len(cancelled_ids))
    send_expiry_emails(engine, cancelled_ids)

    logger.info(
        "reaper_sweep_completed", stale_count=len(booking_ids), cancelled=len(cancelled_ids)
    )
    return len(cancelled_ids)


def send_expiry_emails(engine: Engine, booking_ids: list[str]) -> int:
    """
    Email the guests of bookings the sweep cancelled.

    Each email gets REAPER_ITEM_TIMEOUT_SECONDS of wall time; the pool is
    given one such slot per round of REAPER_MAX_WORKERS emails. Emails still
    running when the budget is spent are abandoned and counted as timeouts.

    Returns:
        Number of emails that finished (sent or skipped) within the budget
    """
    if not booking_ids:
        return 0

    rounds = math.ceil(len(booking_ids) / REAPER_MAX_WORKERS)
    budget = REAPER_ITEM_TIMEOUT_SECONDS * rounds

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=REAPER_MAX_WORKERS)
    try:
        futures = {
            executor.submit(send_cancellation_notice, engine, booking_id, EXPIRY_REASON): booking_id
            for booking_id in booking_ids
        }
        done, not_done = concurrent.futures.wait(futures, timeout=budget)

        finished = 0
        for future in done:
            error = future.exception()
            if error is None:
                finished += 1
                continue
            reaper_item_failures.labels(reason="error").inc()
            logger.error(
                "reaper_email_failed", booking_id=futures[future], error=str(error)
            )
        for future in not_done:
            reaper_item_failures.labels(reason="timeout").inc()
            logger.error(
                "reaper_email_timed_out", booking_id=futures[future], budget_seconds=budget
            )
    finally:
        # Abandon overrunning emails; queued ones are dropped
        executor.shutdown(wait=False, cancel_futures=True)

    return finished
