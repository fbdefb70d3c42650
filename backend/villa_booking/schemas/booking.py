"""
Pydantic schemas for booking request/response validation.

Business bounds (guest count, dates, text lengths) are enforced by the booking
service so they surface as `invalid_input`; the schemas only check shape.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from villa_booking.domain.lifecycle import PaymentMethod


class BookingCreate(BaseModel):
    check_in: datetime
    check_out: datetime
    guest_count: int
    total_price: Decimal
    special_requests: Optional[str] = None


class CustomerInfo(BaseModel):
    """Exactly the four fields collected at the customer-info step."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)


class PaymentMethodSelect(BaseModel):
    method: PaymentMethod


class PaymentProofSubmit(BaseModel):
    proof_ref: str


class BookingUpdate(BaseModel):
    """The only fields a guest may change after creation."""

    model_config = ConfigDict(extra="forbid")

    special_requests: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    id: int
    owner_id: Optional[str]
    check_in: datetime
    check_out: datetime
    guest_count: int
    total_price: float
    status: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    payment_method: Optional[str] = None
    payment_deadline: Optional[datetime] = None
    payment_proof_ref: Optional[str] = None
    special_requests: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    refund_amount: Optional[float] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
    refund_amount: float


class RefundQuoteResponse(BaseModel):
    booking_id: int
    days_until_check_in: int
    refund_percentage: int
    refund_amount: float
    policy: str


class PaymentWindowResponse(BaseModel):
    booking_id: int
    deadline: Optional[datetime]
    expired: bool
    seconds_remaining: Optional[int]
