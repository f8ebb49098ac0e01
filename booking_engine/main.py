# booking_engine/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_engine.config import ALLOWED_ORIGINS, CRON_SECRET, PAYMONGO_WEBHOOK_SECRET
from booking_engine.logging_config import setup_logging
from booking_engine.middleware import RequestIDMiddleware
from booking_engine.routes.activity import router as activity_router
from booking_engine.routes.bookings import router as bookings_router
from booking_engine.routes.claim_requests import router as claim_requests_router
from booking_engine.routes.commissions import router as commissions_router
from booking_engine.routes.cron import router as cron_router
from booking_engine.routes.health import router as health_router
from booking_engine.routes.metrics import router as metrics_router
from booking_engine.routes.payments import router as payments_router
from booking_engine.routes.webhook import router as webhook_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Booking Engine API",
    description="Booking lifecycle, payment confirmation and commission settlement",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)

app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(bookings_router, tags=["Bookings"])
app.include_router(payments_router, tags=["Payments"])
app.include_router(webhook_router, tags=["Webhooks"])
app.include_router(cron_router, tags=["Cron"])
app.include_router(commissions_router, tags=["Commissions"])
app.include_router(claim_requests_router, tags=["Claim Requests"])
app.include_router(activity_router, tags=["Activity"])


@app.on_event("startup")
def startup_event() -> None:
    """Warn operators about insecure configuration."""
    logger.info("FastAPI application starting up...")

    if not PAYMONGO_WEBHOOK_SECRET:
        logger.warning(
            "webhook_signature_verification_disabled",
            detail="PAYMONGO_WEBHOOK_SECRET is unset; any caller can confirm bookings",
        )
    if not CRON_SECRET:
        logger.warning(
            "cron_trigger_unprotected",
            detail="CRON_SECRET is unset; /cron/cleanup accepts unauthenticated calls",
        )

    logger.info("FastAPI application initialized")
