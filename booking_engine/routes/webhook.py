"""PayMongo webhook receiver route."""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from booking_engine.config import PAYMONGO_WEBHOOK_SECRET
from booking_engine.dependencies import get_db_engine
from booking_engine.errors import AuthenticationError, ValidationError
from booking_engine.metrics import webhook_events
from booking_engine.services.payments import handle_webhook_event, parse_event_envelope
from booking_engine.services.webhook_signature import SIGNATURE_HEADER, verify_webhook_signature

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post("/webhooks/paymongo")
async def receive_paymongo_webhook(
    request: Request, engine: Engine = Depends(get_db_engine)
) -> JSONResponse:
    """
    Handle incoming PayMongo webhook events.

    Authentication: HMAC-SHA256 signature in the paymongo-signature header
    (t=<unix ts>,te=<test sig>,li=<live sig>) over "{t}.{raw body}".

    Expected payload structure:
        {
            "data": {
                "id": "evt_...",
                "attributes": {
                    "type": "checkout_session.payment.paid",
                    "data": {"attributes": {"metadata": {"booking_id": "..."}}}
                }
            }
        }

    Responds 200 for every authenticated, parseable delivery, including
    irrelevant event types and unknown bookings, so the provider does not
    retry them. 401 on signature failure, 400 on a body that is not JSON or
    not shaped like an event, 500 on unexpected processing errors.
    """
    raw_body = await request.body()

    try:
        verify_webhook_signature(
            raw_body, request.headers.get(SIGNATURE_HEADER), PAYMONGO_WEBHOOK_SECRET
        )
    except AuthenticationError as e:
        webhook_events.labels(event_type="unknown", outcome="unauthorized").inc()
        logger.warning(
            "webhook_signature_invalid",
            reason=str(e),
            client=request.client.host if request.client else None,
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid signature"},
        )

    try:
        payload: dict[str, Any] = json.loads(raw_body)
        if not isinstance(payload, dict):
            raise ValueError("webhook body must be a JSON object")
    except ValueError:
        logger.exception("webhook_invalid_json")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON"},
        )

    try:
        event_id, event_type = parse_event_envelope(payload)
    except ValidationError as e:
        webhook_events.labels(event_type="unknown", outcome="invalid").inc()
        logger.warning("webhook_invalid_payload", reason=str(e))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid payload"},
        )
    logger.info("webhook_received", event_type=event_type, event_id=event_id)

    try:
        outcome = await run_in_threadpool(handle_webhook_event, engine, payload)
    except Exception as e:
        webhook_events.labels(event_type=event_type, outcome="failed").inc()
        logger.exception("webhook_processing_failed", event_type=event_type, error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    return JSONResponse(content={"status": "success", "outcome": outcome})
