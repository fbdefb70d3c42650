"""
Proof-of-payment workflow.

The guest uploads a transfer slip to blob storage elsewhere and hands us the
resulting reference. We check the reference is well formed, record it once,
and move the booking to `pending_review`. Whether the slip actually shows the
right amount is for the reviewer to decide.
"""

import re
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncSession

from villa_booking.core.exceptions import AlreadySubmitted, InvalidProof, WindowExpired
from villa_booking.core.logging import get_logger
from villa_booking.core.metrics import track_transition
from villa_booking.core.security import Caller
from villa_booking.db.base import utcnow
from villa_booking.domain.lifecycle import BookingStatus, assert_in
from villa_booking.models.booking import Booking
from villa_booking.repositories.booking_repository import BookingRepository
from villa_booking.services import payment_window
from villa_booking.services.access import load_booking

logger = get_logger(__name__)

MAX_PROOF_REF_LENGTH = 2048
SECURE_SCHEMES = {"https"}

# Opaque storage keys such as "slips/2024/06/abc123.jpg"
_STORAGE_KEY = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._/\-]*$")


def validate_proof_ref(proof_ref: Optional[str]) -> str:
    """Return the cleaned reference or raise InvalidProof."""
    ref = (proof_ref or "").strip()
    if not ref:
        raise InvalidProof("Payment proof reference is required")
    if len(ref) > MAX_PROOF_REF_LENGTH:
        raise InvalidProof(f"Payment proof reference cannot exceed {MAX_PROOF_REF_LENGTH} characters")

    if "://" in ref or ref.lower().startswith(("http:", "https:")):
        parsed = urlparse(ref)
        if parsed.scheme.lower() not in SECURE_SCHEMES:
            raise InvalidProof("Payment slip URL must be a secure (https) URL")
        if not parsed.netloc:
            raise InvalidProof("Payment slip URL has no host")
        return ref

    if not _STORAGE_KEY.match(ref) or ".." in ref:
        raise InvalidProof("Payment proof reference is not a valid storage key")
    return ref


@track_transition("submit_payment_proof")
async def submit(
    db: AsyncSession,
    booking_id: int,
    caller: Caller,
    proof_ref: str,
    now: Optional[datetime] = None,
) -> Booking:
    now = now or utcnow()
    repo = BookingRepository(db)
    booking = await load_booking(repo, booking_id, caller)

    if booking.booking_status == BookingStatus.EXPIRED:
        raise WindowExpired("The payment window for this booking has closed")

    if await payment_window.expire_if_lapsed(repo, booking, now):
        # The expiry must survive the failed request
        await db.commit()
        raise WindowExpired("The payment window for this booking has closed")

    if booking.payment_proof_ref:
        raise AlreadySubmitted("Payment proof has already been submitted for this booking")

    assert_in(booking.status, {BookingStatus.AWAITING_PAYMENT}, "submit payment proof")
    ref = validate_proof_ref(proof_ref)

    await repo.save(
        booking,
        {
            "payment_proof_ref": ref,
            "payment_submitted_at": now,
            "status": BookingStatus.PENDING_REVIEW.value,
        },
        now=now,
    )

    logger.info(
        "payment_proof_submitted",
        booking_id=booking.id,
        payment_method=booking.payment_method,
    )
    return booking
