"""Fixed nightly rate plus tax."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from villa_booking.domain.date_range import DateRange

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceQuote:
    nights: int
    nightly_rate: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str


def quote(date_range: DateRange, nightly_rate: Decimal, tax_rate: Decimal, currency: str) -> PriceQuote:
    rate = Decimal(str(nightly_rate))
    subtotal = (rate * date_range.nights).quantize(CENTS, rounding=ROUND_HALF_UP)
    tax = (subtotal * Decimal(str(tax_rate))).quantize(CENTS, rounding=ROUND_HALF_UP)
    return PriceQuote(
        nights=date_range.nights,
        nightly_rate=rate,
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
        currency=currency,
    )
