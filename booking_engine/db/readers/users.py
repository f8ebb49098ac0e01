from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.engine import Connection

from booking_engine.models.units import Unit
from booking_engine.models.users import User, UserRole


def get_user(conn: Connection, user_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a user (guest, agent or admin) by id.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        user_id (str): User ID.

    Returns:
        Optional[dict]: User columns or None if not found.
    """
    row = conn.execute(select(User.__table__).where(User.id == user_id)).mappings().first()
    return dict(row) if row else None


def find_guest(
    conn: Connection, mobile: Optional[str], email: Optional[str]
) -> Optional[dict[str, Any]]:
    """
    Match an existing user by normalized mobile number or email.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        mobile (Optional[str]): Canonical +639XXXXXXXXX number.
        email (Optional[str]): Email address.

    Returns:
        Optional[dict]: First matching user, mobile matches preferred.
    """
    clauses = []
    if mobile:
        clauses.append(User.mobile == mobile)
    if email:
        clauses.append(User.email == email)
    if not clauses:
        return None

    rows = conn.execute(select(User.__table__).where(or_(*clauses))).mappings().all()
    for row in rows:
        if mobile and row["mobile"] == mobile:
            return dict(row)
    return dict(rows[0]) if rows else None


def list_admin_ids(conn: Connection) -> list[str]:
    """Return ids of all active ADMIN users."""
    stmt = (
        select(User.id)
        .where(User.role == UserRole.ADMIN.value)
        .where(User.is_active.is_(True))
        .order_by(User.id)
    )
    return list(conn.execute(stmt).scalars().all())


def get_unit(conn: Connection, unit_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch the pricing inputs and name of a unit.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        unit_id (str): Unit ID.

    Returns:
        Optional[dict]: Unit columns or None if not found.
    """
    row = conn.execute(select(Unit.__table__).where(Unit.id == unit_id)).mappings().first()
    return dict(row) if row else None
