"""Commission ledger and agent self-claim routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.engine import Engine

from booking_engine.actors import Actor
from booking_engine.dependencies import get_actor, get_db_engine
from booking_engine.routes._helpers import domain_errors
from booking_engine.schemas.commissions import (
    ClaimCandidate,
    ClaimResponse,
    CommissionResponse,
    SettlementResponse,
)
from booking_engine.services.commissions import (
    claim_booking,
    get_commissions,
    mark_paid,
    reject,
    search_claimable_bookings,
)

router = APIRouter()


@router.get("/commissions", response_model=list[CommissionResponse])
def list_commissions_route(
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> list[CommissionResponse]:
    """Admins see the full ledger; agents see their own commissions."""
    with domain_errors("commission_listing"):
        rows = get_commissions(engine, actor)
    return [CommissionResponse(**row) for row in rows]


@router.post("/commissions/{commission_id}/pay", response_model=SettlementResponse)
def pay_commission_route(
    commission_id: str,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> SettlementResponse:
    with domain_errors("commission_payout"):
        mark_paid(engine, commission_id, actor)
    return SettlementResponse(id=commission_id, status="PAID_OUT")


@router.post("/commissions/{commission_id}/reject", response_model=SettlementResponse)
def reject_commission_route(
    commission_id: str,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> SettlementResponse:
    with domain_errors("commission_rejection"):
        reject(engine, commission_id, actor)
    return SettlementResponse(id=commission_id, status="REJECTED")


@router.get("/claims/search", response_model=list[ClaimCandidate])
def search_claims_route(
    guest_name: str = Query(..., description="Partial guest name, at least 2 characters"),
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> list[ClaimCandidate]:
    """Orphan bookings the calling agent may claim."""
    with domain_errors("claim_search"):
        rows = search_claimable_bookings(engine, actor, guest_name)
    return [ClaimCandidate(**row) for row in rows]


@router.post(
    "/claims/{booking_id}",
    status_code=status.HTTP_201_CREATED,
    response_model=ClaimResponse,
)
def claim_route(
    booking_id: str,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> ClaimResponse:
    """Attach the calling agent to an orphan booking."""
    with domain_errors("booking_claim"):
        claimed = claim_booking(engine, booking_id, actor)
    return ClaimResponse(
        booking_id=claimed["booking_id"],
        status=claimed["status"],
        commission_id=claimed["commission_id"],
        amount=claimed["amount"],
    )
