"""Booking intake, tracking and admin transition routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.engine import Engine

from booking_engine.actors import Actor, Role
from booking_engine.dependencies import get_actor, get_db_engine
from booking_engine.routes._helpers import domain_errors
from booking_engine.schemas.bookings import (
    BookingCreatedResponse,
    BookingCreatePayload,
    BookingTrackingResponse,
    CancelPayload,
    ConfirmPayload,
    PaymentProofPayload,
    TransitionResponse,
)
from booking_engine.services.bookings import (
    BookingIntake,
    TransitionResult,
    cancel_booking,
    complete_booking,
    confirm_booking,
    create_booking,
    submit_payment_proof,
    track_booking,
)

router = APIRouter()


def _transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        booking_id=result.booking_id, status=result.status, changed=result.changed
    )


@router.post(
    "/bookings",
    status_code=status.HTTP_201_CREATED,
    response_model=BookingCreatedResponse,
)
def create_booking_route(
    payload: BookingCreatePayload,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> BookingCreatedResponse:
    """
    Create a PENDING booking with a frozen price quote.

    Returns:
        BookingCreatedResponse: New booking id and the quote it was priced at
    """
    with domain_errors("booking_creation"):
        created = create_booking(engine, BookingIntake(**payload.model_dump()), actor)

    quote = created.quote
    return BookingCreatedResponse(
        booking_id=created.booking_id,
        total_price=quote.total_price,
        down_payment=quote.down_payment,
        balance=quote.balance,
        nights=quote.nights,
        nightly_rate=quote.nightly_rate,
    )


@router.get("/bookings/{booking_id}", response_model=BookingTrackingResponse)
def track_booking_route(
    booking_id: str, engine: Engine = Depends(get_db_engine)
) -> BookingTrackingResponse:
    """Guest-facing booking status page data (no contact details)."""
    with domain_errors("booking_tracking"):
        return BookingTrackingResponse(**track_booking(engine, booking_id))


@router.post("/bookings/{booking_id}/confirm", response_model=TransitionResponse)
def confirm_booking_route(
    booking_id: str,
    payload: ConfirmPayload,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> TransitionResponse:
    """Manual admin approval, e.g. after checking a submitted payment proof."""
    with domain_errors("booking_confirm"):
        actor.require(Role.ADMIN)
        result = confirm_booking(engine, booking_id, payload.annotation, actor)
    return _transition_response(result)


@router.post("/bookings/{booking_id}/cancel", response_model=TransitionResponse)
def cancel_booking_route(
    booking_id: str,
    payload: CancelPayload,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> TransitionResponse:
    with domain_errors("booking_cancel"):
        actor.require(Role.ADMIN)
        result = cancel_booking(engine, booking_id, payload.reason, actor)
    return _transition_response(result)


@router.post("/bookings/{booking_id}/complete", response_model=TransitionResponse)
def complete_booking_route(
    booking_id: str,
    engine: Engine = Depends(get_db_engine),
    actor: Actor = Depends(get_actor),
) -> TransitionResponse:
    with domain_errors("booking_complete"):
        actor.require(Role.ADMIN)
        result = complete_booking(engine, booking_id, actor)
    return _transition_response(result)


@router.post("/bookings/{booking_id}/payment-proof", status_code=status.HTTP_202_ACCEPTED)
def submit_payment_proof_route(
    booking_id: str,
    payload: PaymentProofPayload,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """
    Record a manual payment reference for admin review.

    Returns:
        dict: Acknowledgement; the booking stays PENDING until an admin confirms
    """
    with domain_errors("payment_proof"):
        submit_payment_proof(engine, booking_id, payload.reference_number)
    return {"message": "Payment proof submitted for review"}
