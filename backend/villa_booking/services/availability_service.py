"""
Availability checks against the booking repository.

Overlap is half-open: [a1, a2) and [b1, b2) conflict iff a1 < b2 and b1 < a2,
so a guest can check in on the day the previous guest checks out.

Only active bookings participate. A windowed booking found past its payment
deadline is expired on the spot and does not block the range.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.config import get_settings
from villa_booking.core.logging import get_logger
from villa_booking.core.metrics import record_availability
from villa_booking.db.base import utcnow
from villa_booking.domain.date_range import DateRange
from villa_booking.domain.payment_window import should_expire
from villa_booking.models.booking import Booking
from villa_booking.repositories.booking_repository import BookingRepository
from villa_booking.services import payment_window

logger = get_logger(__name__)


async def find_conflicts(
    db: AsyncSession,
    date_range: DateRange,
    excluding: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[Booking]:
    settings = get_settings()
    repo = BookingRepository(db)
    now = now or utcnow()

    candidates = await repo.find_overlapping(date_range, settings.UNIT_ID, exclude_id=excluding)
    conflicts = []
    for booking in candidates:
        if await payment_window.expire_if_lapsed(repo, booking, now):
            continue
        conflicts.append(booking)
    return conflicts


async def is_available(
    db: AsyncSession,
    date_range: DateRange,
    excluding: Optional[int] = None,
    now: Optional[datetime] = None,
) -> bool:
    conflicts = await find_conflicts(db, date_range, excluding=excluding, now=now)
    available = not conflicts
    record_availability(available)
    logger.debug(
        "availability_checked",
        check_in=date_range.check_in.isoformat(),
        check_out=date_range.check_out.isoformat(),
        available=available,
        conflicts=[b.id for b in conflicts],
    )
    return available


async def occupied_ranges(
    db: AsyncSession,
    window: DateRange,
    now: Optional[datetime] = None,
) -> list[DateRange]:
    """
    Occupied stays inside `window` for the public calendar.

    Read-only: lapsed bookings are skipped here but left for the next
    state-changing call to expire.
    """
    settings = get_settings()
    repo = BookingRepository(db)
    now = now or utcnow()

    bookings = await repo.find_overlapping(window, settings.UNIT_ID)
    return [
        b.date_range
        for b in bookings
        if not should_expire(b.status, b.payment_deadline, now)
    ]
