from typing import Literal

from pydantic import BaseModel


class PaymentStatusResponse(BaseModel):
    status: Literal["confirmed", "pending"]


class CheckoutResponse(BaseModel):
    booking_id: str
    checkout_url: str
