"""
FastAPI dependency injection providers.

Routes never reach for the engine singleton or parse identity headers
themselves; both come from here so tests can swap them through
app.dependency_overrides.
"""

from __future__ import annotations

from typing import Generator, Optional

from fastapi import Header, HTTPException, status
from sqlalchemy.engine import Engine

from booking_engine.actors import ANONYMOUS_ACTOR, Actor, Role
from booking_engine.db.engine import engine


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Yields:
        Engine: SQLAlchemy database engine

    Testing Example:
        >>> app.dependency_overrides[get_db_engine] = lambda: test_engine
    """
    yield engine


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """
    Build the authorization context from gateway-set identity headers.

    Credentials are verified upstream; this service trusts X-Actor-Id and
    X-Actor-Role as given. No headers means an anonymous guest. SYSTEM is
    reserved for internal triggers and cannot be claimed over HTTP.

    Raises:
        HTTPException: 400 for an unknown or reserved role
    """
    if not x_actor_role:
        return ANONYMOUS_ACTOR

    try:
        role = Role(x_actor_role.strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown actor role {x_actor_role!r}",
        )
    if role == Role.SYSTEM:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="SYSTEM role cannot be asserted by a client",
        )
    return Actor(actor_id=x_actor_id or None, role=role)
