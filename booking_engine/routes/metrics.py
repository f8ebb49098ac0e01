"""
Prometheus metrics endpoint.

Example:
    GET /metrics

    Response:
        # HELP booking_transitions_total Booking state machine transition attempts
        # TYPE booking_transitions_total counter
        booking_transitions_total{outcome="applied",transition="confirm"} 12.0
        booking_transitions_total{outcome="noop",transition="confirm"} 3.0
        ...
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def metrics() -> Any:
    """Expose all registered collectors in Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
