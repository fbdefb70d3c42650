"""
Pydantic schemas for availability, calendar and price quotes.
"""

from datetime import datetime

from pydantic import BaseModel


class AvailabilityResponse(BaseModel):
    check_in: datetime
    check_out: datetime
    available: bool


class PriceQuoteResponse(BaseModel):
    check_in: datetime
    check_out: datetime
    nights: int
    nightly_rate: float
    subtotal: float
    tax: float
    total: float
    currency: str


class OccupiedRange(BaseModel):
    check_in: datetime
    check_out: datetime


class CalendarResponse(BaseModel):
    start: datetime
    end: datetime
    occupied: list[OccupiedRange]
    cached: bool = False
