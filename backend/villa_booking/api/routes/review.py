"""
Reviewer endpoints: the queue of bookings awaiting a decision, and the
confirm/reject actions. All require the reviewer role.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.security import Caller, require_reviewer
from villa_booking.db.session import get_db
from villa_booking.domain.lifecycle import BookingStatus
from villa_booking.schemas.booking import BookingCancelResponse, BookingResponse
from villa_booking.schemas.review import RejectRequest
from villa_booking.services import booking_service

router = APIRouter(prefix="/review/bookings", tags=["Review"])


@router.get("", response_model=list[BookingResponse])
async def list_bookings_for_review(
    status: BookingStatus = Query(BookingStatus.PENDING_REVIEW),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(require_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Oldest first, so slips are reviewed in the order they arrived."""
    return await booking_service.list_for_review(
        db, caller, status=status, limit=limit, offset=offset
    )


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int,
    caller: Caller = Depends(require_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.confirm_booking(db, booking_id, caller)


@router.post("/{booking_id}/reject", response_model=BookingCancelResponse)
async def reject_booking(
    booking_id: int,
    request: RejectRequest,
    caller: Caller = Depends(require_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Reject a booking. Equivalent to a cancellation by the reviewer."""
    booking = await booking_service.reject_booking(db, booking_id, caller, request.reason)
    return BookingCancelResponse(
        message="Booking rejected",
        booking_id=booking.id,
        status=booking.status,
        refund_amount=booking.refund_amount,
    )
