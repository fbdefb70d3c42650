"""
Booking endpoints: the guest's side of the reservation flow.

Every step names the booking by id; nothing is carried between requests
except what is stored on the booking itself.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.security import Caller, get_current_caller
from villa_booking.db.session import get_db
from villa_booking.domain.date_range import DateRange
from villa_booking.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingResponse,
    CancelRequest,
    CustomerInfo,
    PaymentMethodSelect,
    PaymentProofSubmit,
    PaymentWindowResponse,
    RefundQuoteResponse,
)
from villa_booking.services import booking_service

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve the villa for a date range. The booking starts as a draft and
    holds the dates for the payment window.

    Returns 409 if the dates overlap an active booking.
    """
    return await booking_service.create_booking(
        db,
        caller,
        DateRange(booking_data.check_in, booking_data.check_out),
        booking_data.guest_count,
        booking_data.total_price,
        special_requests=booking_data.special_requests,
    )


@router.get("", response_model=list[BookingResponse])
async def list_user_bookings(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated caller."""
    return await booking_service.get_user_bookings(db, caller)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking(db, booking_id, caller)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    payload: dict[str, Any] = Body(...),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Only `special_requests` may be changed; any other field is rejected."""
    return await booking_service.update_booking(db, booking_id, caller, payload)


@router.put("/{booking_id}/customer-info", response_model=BookingResponse)
async def attach_customer_info(
    booking_id: int,
    info: CustomerInfo,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.attach_customer_info(db, booking_id, caller, info)


@router.put("/{booking_id}/payment-method", response_model=BookingResponse)
async def select_payment_method(
    booking_id: int,
    selection: PaymentMethodSelect,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.select_payment_method(db, booking_id, caller, selection.method)


@router.get("/{booking_id}/payment-window", response_model=PaymentWindowResponse)
async def get_payment_window(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Deadline and time left to submit proof of payment."""
    return await booking_service.payment_window_status(db, booking_id, caller)


@router.post("/{booking_id}/payment-proof", response_model=BookingResponse)
async def submit_payment_proof(
    booking_id: int,
    proof: PaymentProofSubmit,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """
    Record the reference to an uploaded transfer slip and send the booking for
    review. Returns 410 once the payment window has closed.
    """
    booking = await booking_service.submit_payment_proof(db, booking_id, caller, proof.proof_ref)
    return booking


@router.get("/{booking_id}/refund-quote", response_model=RefundQuoteResponse)
async def get_refund_quote(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.refund_quote(db, booking_id, caller)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    request: Optional[CancelRequest] = None,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking, release its dates and fix the refund amount."""
    reason = request.reason if request else None
    booking = await booking_service.cancel_booking(db, booking_id, caller, reason=reason)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
        refund_amount=booking.refund_amount,
    )
