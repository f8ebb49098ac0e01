from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class ClaimRequestPayload(BaseModel):
    """Schema for an agent asking to be credited with a booking."""

    booking_id: str = Field(..., min_length=1, description="Booking the agent referred")
    description: str = Field(
        ..., min_length=1, max_length=2000, description="How the agent referred the guest"
    )


class ClaimRejectionPayload(BaseModel):
    reason: Optional[str] = Field(None, max_length=500, description="Shown to the agent")


class ClaimRequestResponse(BaseModel):
    """Claim request as shown in the admin review queue and the agent portal."""

    id: str
    booking_id: str
    agent_id: str
    description: str
    status: str
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    agent_name: Optional[str] = None
    guest_name: Optional[str] = None
    unit_name: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    total_price: Optional[int] = None
    booking_status: Optional[str] = None


class ClaimReviewResponse(BaseModel):
    id: str
    booking_id: str
    agent_id: str
    status: str
    commission_id: Optional[str] = None
