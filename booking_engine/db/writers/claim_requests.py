from typing import Optional

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from booking_engine.models.claim_requests import ClaimRequest, ClaimRequestStatus
from booking_engine.utils.datetime import utc_now


def insert_claim_request(conn: Connection, booking_id: str, agent_id: str, description: str) -> str:
    """
    Insert a PENDING claim request.

    A second open request by the same agent for the same booking violates the
    partial unique index and raises IntegrityError.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        booking_id (str): Booking the agent asks to be credited for.
        agent_id (str): Requesting agent's user ID.
        description (str): Agent's account of the referral.

    Returns:
        str: The new claim request ID
    """
    now = utc_now()
    result = conn.execute(
        insert(ClaimRequest)
        .values(
            booking_id=booking_id,
            agent_id=agent_id,
            description=description,
            status=ClaimRequestStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        .returning(ClaimRequest.id)
    )
    return str(result.scalar_one())


def review_claim_request(
    conn: Connection,
    claim_request_id: str,
    to_status: ClaimRequestStatus,
    reviewed_by: Optional[str],
    rejection_reason: Optional[str] = None,
) -> bool:
    """
    Move a claim request out of PENDING.

    Args:
        conn (Connection): SQLAlchemy DB connection (within transaction).
        claim_request_id (str): Claim request ID.
        to_status (ClaimRequestStatus): APPROVED or REJECTED.
        reviewed_by (Optional[str]): Reviewing admin's user ID.
        rejection_reason (Optional[str]): Shown to the agent on rejection.

    Returns:
        bool: True if the request was PENDING and has been updated
    """
    now = utc_now()
    stmt = (
        update(ClaimRequest)
        .where(ClaimRequest.id == claim_request_id)
        .where(ClaimRequest.status == ClaimRequestStatus.PENDING.value)
        .values(
            status=to_status.value,
            reviewed_by=reviewed_by,
            reviewed_at=now,
            rejection_reason=rejection_reason,
            updated_at=now,
        )
    )
    return conn.execute(stmt).rowcount == 1
