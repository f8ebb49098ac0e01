from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class CommissionResponse(BaseModel):
    """Commission row as shown in the admin ledger and the agent portal."""

    id: str
    booking_id: str
    agent_id: str
    amount: int
    status: str
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    unit_name: Optional[str] = None
    check_in: Optional[date] = None
    total_price: Optional[int] = None


class SettlementResponse(BaseModel):
    id: str
    status: str


class ClaimCandidate(BaseModel):
    id: str
    guest_name: Optional[str] = None
    unit_name: str
    check_in: date
    check_out: date
    total_price: int
    status: str
    created_at: datetime


class ClaimResponse(BaseModel):
    """
    Result of a self-claim. commission_id and amount stay empty when the
    booking is still PENDING; the commission follows on confirmation.
    """

    booking_id: str
    status: str
    commission_id: Optional[str] = None
    amount: Optional[int] = None
