from villa_booking.models.booking import Booking
from villa_booking.models.unit import Unit

__all__ = ["Booking", "Unit"]
