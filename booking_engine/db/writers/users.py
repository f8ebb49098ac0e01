from typing import Any

from sqlalchemy import insert
from sqlalchemy.engine import Connection

from booking_engine.models.users import User, UserRole
from booking_engine.utils.datetime import utc_now


def insert_guest(conn: Connection, data: dict[str, Any]) -> str:
    """
    Create a CLIENT user for a first-time guest.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        data (dict): name, mobile (canonical) and optional email.

    Returns:
        str: The new user ID
    """
    now = utc_now()
    result = conn.execute(
        insert(User)
        .values(
            name=data.get("name"),
            mobile=data.get("mobile"),
            email=data.get("email"),
            role=UserRole.CLIENT.value,
            created_at=now,
            updated_at=now,
        )
        .returning(User.id)
    )
    return str(result.scalar_one())
