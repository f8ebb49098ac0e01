"""
SQLAlchemy engine singleton with production-ready connection pooling.

All coordination between the webhook handler, the reaper and interactive
requests happens through this database; nothing is shared in process memory.
"""

from typing import Any, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from booking_engine.config import DATABASE_URL

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")


def _engine_options(url: str) -> dict[str, Any]:
    """
    Build create_engine keyword arguments for the configured backend.

    SQLite (local development and the test suite) does not take pool sizing,
    and its connections must be usable from FastAPI's worker threads.
    """
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
    return {
        "pool_size": 10,  # Number of connections to maintain in the pool
        "max_overflow": 20,  # Additional connections when pool is exhausted
        "pool_pre_ping": True,  # Detect stale connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }


engine: Engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=False,
    **_engine_options(DATABASE_URL),
)


def check_engine_health(target: Optional[Engine] = None) -> bool:
    """
    Check if database engine is healthy and connections are working.

    Used by the /ready endpoint to verify database connectivity before
    allowing traffic to the service.

    Args:
        target: Engine to probe (defaults to the module engine)

    Returns:
        bool: True if database is reachable and healthy, False otherwise
    """
    try:
        with (target or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
