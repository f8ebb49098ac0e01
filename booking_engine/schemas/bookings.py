from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class BookingCreatePayload(BaseModel):
    """
    Schema for a booking request from the intake boundary.
    walk_in_guest_name is honoured for admins only.
    """

    unit_id: str = Field(..., description="Unit being reserved")
    check_in: date = Field(..., description="Arrival date")
    check_out: date = Field(..., description="Departure date")
    adults: int = Field(..., ge=1, description="Adult guests (at least one)")
    kids: int = Field(0, ge=0, description="Kids, counted toward occupancy")
    toddlers: int = Field(0, ge=0, description="Toddlers, not counted toward occupancy")
    guest_name: Optional[str] = Field(None, max_length=200, description="Guest full name")
    guest_mobile: Optional[str] = Field(None, description="Mobile number, any common local format")
    guest_email: Optional[str] = Field(None, max_length=320, description="Guest email (optional)")
    has_car: bool = False
    has_pet: bool = False
    has_pwd: bool = Field(False, description="Eligible for the 20% accessibility discount")
    walk_in_guest_name: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_dates(self) -> "BookingCreatePayload":
        if self.check_out < self.check_in:
            raise ValueError("check_out must not be before check_in")
        return self


class BookingCreatedResponse(BaseModel):
    booking_id: str
    total_price: int
    down_payment: int
    balance: int
    nights: int
    nightly_rate: int


class ConfirmPayload(BaseModel):
    annotation: str = Field("Manually confirmed by admin", max_length=500)


class CancelPayload(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class PaymentProofPayload(BaseModel):
    reference_number: str = Field(..., min_length=1, max_length=100)


class TransitionResponse(BaseModel):
    """Result of a state-machine call; changed is False for an idempotent no-op."""

    booking_id: str
    status: str
    changed: bool


class BookingTrackingResponse(BaseModel):
    id: str
    unit_name: str
    guest_name: Optional[str] = None
    check_in: date
    check_out: date
    adults: int
    kids: int
    status: str
    payment_status: str
    total_price: int
    down_payment: int
    balance: int
