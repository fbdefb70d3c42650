from villa_booking.repositories.booking_repository import BookingRepository

__all__ = ["BookingRepository"]
