"""Client-facing payment routes: checkout, direct verification, status polling."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from booking_engine.dependencies import get_db_engine
from booking_engine.routes._helpers import domain_errors
from booking_engine.schemas.payments import CheckoutResponse, PaymentStatusResponse
from booking_engine.services.payments import initiate_checkout, payment_status, verify_payment

router = APIRouter()


@router.post("/payments/{booking_id}/checkout", response_model=CheckoutResponse)
def checkout_route(booking_id: str, engine: Engine = Depends(get_db_engine)) -> CheckoutResponse:
    """Start a hosted checkout for the booking's down payment."""
    with domain_errors("checkout"):
        checkout_url = initiate_checkout(engine, booking_id)
    return CheckoutResponse(booking_id=booking_id, checkout_url=checkout_url)


@router.post("/payments/{booking_id}/verify", response_model=PaymentStatusResponse)
def verify_route(
    booking_id: str, engine: Engine = Depends(get_db_engine)
) -> PaymentStatusResponse:
    """Ask the provider whether the session was paid and confirm if so."""
    with domain_errors("payment_verification"):
        return PaymentStatusResponse(status=verify_payment(engine, booking_id))


@router.get("/payments/{booking_id}/status", response_model=PaymentStatusResponse)
def status_route(
    booking_id: str, engine: Engine = Depends(get_db_engine)
) -> PaymentStatusResponse:
    """Polled by the payment page. Read only."""
    with domain_errors("payment_status"):
        return PaymentStatusResponse(status=payment_status(engine, booking_id))
