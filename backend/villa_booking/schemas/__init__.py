from villa_booking.schemas.availability import (
    AvailabilityResponse,
    CalendarResponse,
    OccupiedRange,
    PriceQuoteResponse,
)
from villa_booking.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingResponse,
    BookingUpdate,
    CancelRequest,
    CustomerInfo,
    PaymentMethodSelect,
    PaymentProofSubmit,
    PaymentWindowResponse,
    RefundQuoteResponse,
)
from villa_booking.schemas.review import RejectRequest

__all__ = [
    "AvailabilityResponse", "CalendarResponse", "OccupiedRange", "PriceQuoteResponse",
    "BookingCancelResponse", "BookingCreate", "BookingResponse", "BookingUpdate",
    "CancelRequest", "CustomerInfo", "PaymentMethodSelect", "PaymentProofSubmit",
    "PaymentWindowResponse", "RefundQuoteResponse",
    "RejectRequest",
]
