"""Claim request routes: agents submit, admins approve or reject."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.engine import Engine

from booking_engine.actors import Actor
from booking_engine.dependencies import get_actor, get_db_engine
from booking_engine.routes._helpers import domain_errors
from booking_engine.schemas.claim_requests import (
    ClaimRejectionPayload,
    ClaimRequestPayload,
    ClaimRequestResponse,
    ClaimReviewResponse,
)
from booking_engine.services.claim_requests import (
    approve_claim_request,
    get_claim_requests,
    reject_claim_request,
    submit_claim_request,
)

router = APIRouter()


@router.post(
    "/claim-requests",
    status_code=status.HTTP_201_CREATED,
    response_model=ClaimReviewResponse,
)
def submit_claim_request_route(
    payload: ClaimRequestPayload,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> ClaimReviewResponse:
    with domain_errors("claim_request_submission"):
        created = submit_claim_request(engine, actor, payload.booking_id, payload.description)
    return ClaimReviewResponse(**created)


@router.get("/claim-requests", response_model=list[ClaimRequestResponse])
def list_claim_requests_route(
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> list[ClaimRequestResponse]:
    """Admins see the whole review queue; agents see their own requests."""
    with domain_errors("claim_request_listing"):
        rows = get_claim_requests(engine, actor)
    return [ClaimRequestResponse(**row) for row in rows]


@router.post("/claim-requests/{claim_request_id}/approve", response_model=ClaimReviewResponse)
def approve_claim_request_route(
    claim_request_id: str,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> ClaimReviewResponse:
    with domain_errors("claim_request_approval"):
        reviewed = approve_claim_request(engine, claim_request_id, actor)
    return ClaimReviewResponse(**reviewed)


@router.post("/claim-requests/{claim_request_id}/reject", response_model=ClaimReviewResponse)
def reject_claim_request_route(
    claim_request_id: str,
    payload: Optional[ClaimRejectionPayload] = Body(None),
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> ClaimReviewResponse:
    with domain_errors("claim_request_rejection"):
        reviewed = reject_claim_request(
            engine, claim_request_id, actor, reason=payload.reason if payload else None
        )
    return ClaimReviewResponse(**reviewed)
