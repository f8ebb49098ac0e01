from datetime import datetime
from typing import Optional

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from booking_engine.models.commissions import Commission, CommissionStatus
from booking_engine.utils.datetime import utc_now


def insert_commission(conn: Connection, booking_id: str, agent_id: str, amount: int) -> str:
    """
    Insert a PENDING commission for a booking.

    The unique constraint on booking_id rejects a second row for the same
    booking with an IntegrityError.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        booking_id (str): Booking ID.
        agent_id (str): Credited agent's user ID.
        amount (int): Commission in centavos.

    Returns:
        str: The new commission ID
    """
    now = utc_now()
    result = conn.execute(
        insert(Commission)
        .values(
            booking_id=booking_id,
            agent_id=agent_id,
            amount=amount,
            status=CommissionStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        .returning(Commission.id)
    )
    return str(result.scalar_one())


def settle_commission(
    conn: Connection,
    commission_id: str,
    to_status: CommissionStatus,
    paid_at: Optional[datetime] = None,
) -> bool:
    """
    Move a commission out of PENDING.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        commission_id (str): Commission ID.
        to_status (CommissionStatus): PAID_OUT or REJECTED.
        paid_at (Optional[datetime]): Payout timestamp for PAID_OUT.

    Returns:
        bool: True if the commission was PENDING and has been updated
    """
    stmt = (
        update(Commission)
        .where(Commission.id == commission_id)
        .where(Commission.status == CommissionStatus.PENDING.value)
        .values(status=to_status.value, paid_at=paid_at, updated_at=utc_now())
    )
    return conn.execute(stmt).rowcount == 1
