"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from villa_booking.api.routes import availability, bookings, review

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(availability.router)
api_router.include_router(bookings.router)
api_router.include_router(review.router)
