"""
Payment window service.

The deadline is fixed when the booking is created (creation time plus
PAYMENT_WINDOW_HOURS) and confirmed when the guest picks a payment method.
Expiry is lazy: callers run `expire_if_lapsed` whenever they read or mutate a
booking, and the first observation past the deadline moves it to `expired`.
"""

from datetime import datetime
from typing import Optional

from villa_booking.core.config import get_settings
from villa_booking.core.logging import get_logger
from villa_booking.core.metrics import booking_expirations, record_transition
from villa_booking.db.base import utcnow
from villa_booking.domain.lifecycle import BookingStatus, assert_transition
from villa_booking.domain.payment_window import compute_deadline, seconds_remaining, should_expire
from villa_booking.models.booking import Booking
from villa_booking.repositories.booking_repository import BookingRepository
from villa_booking.services import cache_service

logger = get_logger(__name__)


def start(booking: Booking, now: Optional[datetime] = None) -> datetime:
    """Deadline for this booking. Idempotent once a deadline exists."""
    if booking.payment_deadline is not None:
        return booking.payment_deadline
    settings = get_settings()
    anchor = booking.created_at or now or utcnow()
    return compute_deadline(anchor, settings.PAYMENT_WINDOW_HOURS)


def is_expired(booking: Booking, now: Optional[datetime] = None) -> bool:
    """Expired already, or still windowed and past the deadline."""
    if booking.booking_status == BookingStatus.EXPIRED:
        return True
    return should_expire(booking.status, booking.payment_deadline, now or utcnow())


async def expire_if_lapsed(
    repo: BookingRepository,
    booking: Booking,
    now: Optional[datetime] = None,
) -> bool:
    """Move a lapsed booking to `expired`. True only on the transition itself."""
    now = now or utcnow()
    if not should_expire(booking.status, booking.payment_deadline, now):
        return False

    assert_transition(booking.status, BookingStatus.EXPIRED)
    await repo.save(
        booking,
        {"status": BookingStatus.EXPIRED.value, "expired_at": now},
        now=now,
    )
    cache_service.mark_calendar_dirty(repo.db)
    booking_expirations.inc()
    record_transition("expire")
    logger.info(
        "booking_expired",
        booking_id=booking.id,
        deadline=booking.payment_deadline.isoformat(),
    )
    return True


def window_status(booking: Booking, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    expired = is_expired(booking, now)
    return {
        "booking_id": booking.id,
        "deadline": booking.payment_deadline,
        "expired": expired,
        "seconds_remaining": 0 if expired else seconds_remaining(booking.payment_deadline, now),
    }
