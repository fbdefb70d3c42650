"""
Loading a booking on behalf of a caller.

Only the booking's owner or a reviewer may see or change it.
"""

from villa_booking.core.exceptions import Forbidden, NotFound
from villa_booking.core.logging import get_logger
from villa_booking.core.security import Caller
from villa_booking.models.booking import Booking
from villa_booking.repositories.booking_repository import BookingRepository

logger = get_logger(__name__)


def ensure_can_access(booking: Booking, caller: Caller) -> None:
    if caller.is_reviewer:
        return
    if booking.owner_id is None or booking.owner_id != caller.user_id:
        logger.warning(
            "booking_access_denied",
            booking_id=booking.id,
            caller_id=caller.user_id,
        )
        raise Forbidden("You do not have permission to access this booking")


async def load_booking(repo: BookingRepository, booking_id: int, caller: Caller) -> Booking:
    booking = await repo.get(booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found")
    ensure_can_access(booking, caller)
    return booking
