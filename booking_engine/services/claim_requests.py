"""
Reviewed claim requests.

An agent who referred a guest but was not linked to the booking can ask an
admin to credit them, describing the referral. Requests move
PENDING -> APPROVED or PENDING -> REJECTED exactly once. Approval attaches
the agent through the same attach_agent path a self-claim uses, so the
one-agent-per-booking and one-commission-per-booking guarantees hold no
matter which path gets there first.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from booking_engine.actors import Actor, Role
from booking_engine.db.readers.bookings import get_booking
from booking_engine.db.readers.claim_requests import (
    get_claim_request,
    has_open_claim_request,
    list_claim_requests,
)
from booking_engine.db.writers.claim_requests import insert_claim_request, review_claim_request
from booking_engine.errors import (
    BookingNotFoundError,
    ClaimRequestNotFoundError,
    InvalidStateError,
    ValidationError,
)
from booking_engine.metrics import claim_request_reviews, commissions_created
from booking_engine.models.bookings import BookingStatus
from booking_engine.models.claim_requests import ClaimRequestStatus
from booking_engine.models.notifications import Severity
from booking_engine.services.audit import record_activity
from booking_engine.services.commissions import attach_agent
from booking_engine.services.notifications import notify, notify_admins

logger = structlog.get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 2000


def submit_claim_request(
    engine: Engine, actor: Actor, booking_id: str, description: str
) -> dict[str, Any]:
    """
    File a claim request for an unassigned booking (agent only).

    Args:
        engine: SQLAlchemy engine
        actor: Requesting agent
        booking_id: Booking the agent referred
        description: How the agent referred the guest

    Returns:
        dict with id, booking_id, agent_id and status

    Raises:
        AuthorizationError: Actor is not an agent
        ValidationError: Missing booking id or description
        BookingNotFoundError: Unknown booking
        InvalidStateError: Booking already has an agent or is cancelled, or
            the agent already has an open request for it
    """
    actor.require(Role.AGENT)
    description = (description or "").strip()
    if not actor.actor_id:
        raise ValidationError("Agent identity is required to submit a claim.")
    if not booking_id:
        raise ValidationError("Booking ID is required.")
    if not description:
        raise ValidationError("Please describe how you referred this guest.")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters."
        )

    try:
        with engine.begin() as conn:
            booking = get_booking(conn, booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            if booking["agent_id"] is not None:
                raise InvalidStateError("This booking is already claimed.")
            if booking["status"] == BookingStatus.CANCELLED.value:
                raise InvalidStateError("Cancelled bookings cannot be claimed.")
            if has_open_claim_request(conn, booking_id, actor.actor_id):
                raise InvalidStateError("You already have a pending claim for this booking.")
            claim_request_id = insert_claim_request(conn, booking_id, actor.actor_id, description)
    except IntegrityError as e:
        # Two submits raced past the open-request check
        logger.warning(
            "claim_request_duplicate", booking_id=booking_id, agent_id=actor.actor_id, error=str(e)
        )
        raise InvalidStateError("You already have a pending claim for this booking.") from e

    logger.info(
        "claim_request_submitted",
        claim_request_id=claim_request_id,
        booking_id=booking_id,
        agent_id=actor.actor_id,
    )
    notify_admins(
        engine,
        "New Claim Request",
        f"An agent requested credit for booking {booking_id[-6:].upper()}.",
        "/admin/claims",
        Severity.INFO,
    )
    record_activity(
        engine, actor.actor_id, "CLAIM_REQUEST_SUBMITTED", "CLAIM_REQUEST", claim_request_id
    )
    return {
        "id": claim_request_id,
        "booking_id": booking_id,
        "agent_id": actor.actor_id,
        "status": ClaimRequestStatus.PENDING.value,
    }


def get_claim_requests(engine: Engine, actor: Actor) -> list[dict[str, Any]]:
    """List claim requests: admins see all, agents see their own."""
    actor.require(Role.ADMIN, Role.AGENT)
    with engine.connect() as conn:
        return list_claim_requests(conn, agent_id=None if actor.is_admin else actor.actor_id)


def approve_claim_request(engine: Engine, claim_request_id: str, actor: Actor) -> dict[str, Any]:
    """
    Approve a PENDING claim request and attach its agent (admin only).

    The review and the attachment commit together: if the booking was
    claimed, cancelled or credited in the meantime, the request stays
    PENDING and the admin gets the reason.

    Returns:
        dict with id, booking_id, agent_id, status and commission_id (None
        while the booking is still PENDING)

    Raises:
        AuthorizationError: Actor is not an admin
        ClaimRequestNotFoundError: Unknown request
        InvalidStateError: Already reviewed, or the booking can no longer
            take this agent
    """
    actor.require(Role.ADMIN)

    with engine.begin() as conn:
        changed = review_claim_request(
            conn, claim_request_id, ClaimRequestStatus.APPROVED, actor.actor_id
        )
        claim = get_claim_request(conn, claim_request_id)
        if claim is None:
            raise ClaimRequestNotFoundError(claim_request_id)
        if not changed:
            raise InvalidStateError("This claim has already been reviewed.")

        _, _, commission = attach_agent(
            conn, claim["booking_id"], claim["agent_id"], actor.actor_id
        )

    claim_request_reviews.labels(outcome="approved").inc()
    if commission:
        commissions_created.labels(source="claim_request").inc()
    logger.info(
        "claim_request_approved",
        claim_request_id=claim_request_id,
        booking_id=claim["booking_id"],
        agent_id=claim["agent_id"],
        commission_id=commission["id"] if commission else None,
    )

    notify(
        engine,
        claim["agent_id"],
        "Claim Approved",
        f"Your claim for booking {claim['booking_id'][-6:].upper()} has been approved.",
        "/portal/commissions",
        Severity.SUCCESS,
    )
    record_activity(
        engine,
        actor.actor_id,
        "CLAIM_REQUEST_APPROVED",
        "CLAIM_REQUEST",
        claim_request_id,
        f"booking={claim['booking_id']} agent={claim['agent_id']}",
    )
    return {
        "id": claim_request_id,
        "booking_id": claim["booking_id"],
        "agent_id": claim["agent_id"],
        "status": ClaimRequestStatus.APPROVED.value,
        "commission_id": commission["id"] if commission else None,
    }


def reject_claim_request(
    engine: Engine, claim_request_id: str, actor: Actor, reason: Optional[str] = None
) -> dict[str, Any]:
    """
    Reject a PENDING claim request (admin only).

    Raises:
        AuthorizationError: Actor is not an admin
        ClaimRequestNotFoundError: Unknown request
        InvalidStateError: Already reviewed
    """
    actor.require(Role.ADMIN)
    reason = (reason or "").strip() or None

    with engine.begin() as conn:
        changed = review_claim_request(
            conn,
            claim_request_id,
            ClaimRequestStatus.REJECTED,
            actor.actor_id,
            rejection_reason=reason,
        )
        claim = get_claim_request(conn, claim_request_id)
        if claim is None:
            raise ClaimRequestNotFoundError(claim_request_id)
        if not changed:
            raise InvalidStateError("This claim has already been reviewed.")

    claim_request_reviews.labels(outcome="rejected").inc()
    logger.info("claim_request_rejected", claim_request_id=claim_request_id, reason=reason)

    message = f"Your claim for booking {claim['booking_id'][-6:].upper()} was rejected."
    if reason:
        message = f"{message} Reason: {reason}"
    notify(engine, claim["agent_id"], "Claim Rejected", message, "/portal/claims", Severity.WARNING)
    record_activity(
        engine, actor.actor_id, "CLAIM_REQUEST_REJECTED", "CLAIM_REQUEST", claim_request_id, reason
    )
    return {
        "id": claim_request_id,
        "booking_id": claim["booking_id"],
        "agent_id": claim["agent_id"],
        "status": ClaimRequestStatus.REJECTED.value,
        "commission_id": None,
    }
