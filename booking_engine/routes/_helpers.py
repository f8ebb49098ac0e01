"""
Translation of domain errors into HTTP responses for route handlers.

Keeps every router on the same status-code mapping:

    ValidationError      -> 422
    AuthenticationError  -> 401
    AuthorizationError   -> 403
    NotFoundError        -> 404
    InvalidStateError    -> 409
    PaymentGatewayError  -> 502
    anything else        -> 500 (logged with traceback)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import structlog
from fastapi import HTTPException, status

from booking_engine.errors import (
    AuthenticationError,
    AuthorizationError,
    BookingEngineError,
    InvalidStateError,
    NotFoundError,
    PaymentGatewayError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[BookingEngineError], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (PaymentGatewayError, status.HTTP_502_BAD_GATEWAY),
]


def http_status_for(error: BookingEngineError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def domain_errors(operation: str) -> Iterator[None]:
    """
    Map domain errors raised inside the block to HTTPException.

    Args:
        operation: snake_case operation name used in failure logs

    Raises:
        HTTPException: With the mapped status and the error message as detail
    """
    try:
        yield
    except HTTPException:
        raise
    except BookingEngineError as e:
        status_code = http_status_for(e)
        if status_code == status.HTTP_502_BAD_GATEWAY:
            logger.error(f"{operation}_gateway_failed", error=str(e))
        else:
            logger.info(f"{operation}_rejected", status_code=status_code, error=str(e))
        raise HTTPException(status_code=status_code, detail=str(e))
    except Exception as e:
        logger.exception(f"{operation}_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
