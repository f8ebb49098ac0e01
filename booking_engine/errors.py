"""
Domain error taxonomy for the booking engine.

Services raise these; route handlers translate them into HTTP responses.
Idempotent no-op transitions are NOT errors and never raise.
"""

from __future__ import annotations


class BookingEngineError(Exception):
    """Base class for all domain errors."""


class ValidationError(BookingEngineError):
    """Input rejected before any state mutation (bad intake, invalid phone, unknown unit)."""


class AuthenticationError(BookingEngineError):
    """Caller could not be authenticated (webhook signature, cron secret)."""


class AuthorizationError(BookingEngineError):
    """Authenticated actor lacks the role required for the operation."""


class NotFoundError(BookingEngineError):
    """Referenced entity does not exist."""


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class CommissionNotFoundError(NotFoundError):
    def __init__(self, commission_id: str):
        super().__init__(f"Commission {commission_id} not found")
        self.commission_id = commission_id


class ClaimRequestNotFoundError(NotFoundError):
    def __init__(self, claim_request_id: str):
        super().__init__(f"Claim request {claim_request_id} not found")
        self.claim_request_id = claim_request_id


class InvalidStateError(BookingEngineError):
    """Operation is not allowed from the entity's current state."""


class PaymentGatewayError(BookingEngineError):
    """Payment provider call failed or the provider is not configured."""
