"""
Public availability endpoints: yes/no for a range, a price quote, and the
occupancy calendar (Redis-cached).
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.logging import get_logger
from villa_booking.db.session import get_db
from villa_booking.domain.date_range import DateRange
from villa_booking.schemas.availability import (
    AvailabilityResponse,
    CalendarResponse,
    OccupiedRange,
    PriceQuoteResponse,
)
from villa_booking.services import availability_service, booking_service
from villa_booking.services.cache_service import get_cached_calendar, set_cached_calendar

logger = get_logger(__name__)
router = APIRouter(prefix="/availability", tags=["Availability"])


@router.get("", response_model=AvailabilityResponse)
async def check_availability(
    check_in: datetime = Query(...),
    check_out: datetime = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Live check, never cached. A same-day turnover counts as available."""
    date_range = DateRange(check_in, check_out)
    available = await availability_service.is_available(db, date_range)
    return AvailabilityResponse(
        check_in=date_range.check_in,
        check_out=date_range.check_out,
        available=available,
    )


@router.get("/quote", response_model=PriceQuoteResponse)
async def get_price_quote(
    check_in: datetime = Query(...),
    check_out: datetime = Query(...),
):
    date_range = DateRange(check_in, check_out)
    quote = booking_service.quote_price(date_range)
    return PriceQuoteResponse(
        check_in=date_range.check_in,
        check_out=date_range.check_out,
        nights=quote.nights,
        nightly_rate=quote.nightly_rate,
        subtotal=quote.subtotal,
        tax=quote.tax,
        total=quote.total,
        currency=quote.currency,
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    start: datetime = Query(...),
    end: datetime = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Occupied ranges between `start` and `end`, for the date picker.
    Cached in Redis; invalidated whenever occupancy changes.
    """
    window = DateRange(start, end)

    cached = await get_cached_calendar(window.check_in, window.check_out)
    if cached is not None:
        logger.info("calendar_cache_hit", start=window.check_in.isoformat())
        return CalendarResponse(
            start=window.check_in,
            end=window.check_out,
            occupied=[OccupiedRange(**r) for r in cached],
            cached=True,
        )

    ranges = await availability_service.occupied_ranges(db, window)
    occupied = [OccupiedRange(check_in=r.check_in, check_out=r.check_out) for r in ranges]

    await set_cached_calendar(
        window.check_in,
        window.check_out,
        [r.model_dump(mode="json") for r in occupied],
    )
    return CalendarResponse(start=window.check_in, end=window.check_out, occupied=occupied)
