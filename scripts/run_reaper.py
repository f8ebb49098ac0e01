import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import structlog

from booking_engine.db.engine import engine
from booking_engine.logging_config import setup_logging
from booking_engine.services.reaper import cancel_stale_bookings

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    """
    Run one stale-booking sweep, for hosts that schedule it with an OS-level
    cron instead of calling /cron/cleanup.
    """
    logger.info("reaper_cli_started")

    try:
        cancelled = cancel_stale_bookings(engine)
        logger.info("reaper_cli_completed", cancelled=cancelled)
    except Exception:
        logger.exception("reaper_cli_failed")
        raise


if __name__ == "__main__":
    main()
