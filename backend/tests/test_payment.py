"""
Tests for the payment window and proof-of-payment submission.
"""

from datetime import timedelta

import pytest

from tests.conftest import CUSTOMER, JUNE_1, JUNE_5, NOW
from villa_booking.core.exceptions import (
    AlreadySubmitted,
    InvalidProof,
    InvalidState,
    WindowExpired,
)
from villa_booking.domain.date_range import DateRange
from villa_booking.domain.lifecycle import BookingStatus, PaymentMethod
from villa_booking.schemas.booking import CustomerInfo
from villa_booking.services import booking_service, payment_window
from villa_booking.services.payment_slip_service import validate_proof_ref

STAY = DateRange(JUNE_1, JUNE_5)
DEADLINE = NOW + timedelta(hours=24)


async def awaiting_payment(db, caller):
    booking = await booking_service.create_booking(db, caller, STAY, 2, 1196, now=NOW)
    await booking_service.attach_customer_info(db, booking.id, caller, CustomerInfo(**CUSTOMER), now=NOW)
    await booking_service.select_payment_method(db, booking.id, caller, PaymentMethod.QR_TRANSFER, now=NOW)
    await db.commit()
    return booking


class TestProofReference:
    @pytest.mark.parametrize(
        "ref",
        [
            "https://storage.example.com/slips/abc.jpg",
            "slips/2024/06/abc123.jpg",
            "  slip-42.png  ",
        ],
    )
    def test_accepted(self, ref):
        assert validate_proof_ref(ref) == ref.strip()

    @pytest.mark.parametrize(
        "ref",
        [
            "",
            "   ",
            None,
            "http://storage.example.com/slip.jpg",
            "ftp://storage.example.com/slip.jpg",
            "https:///no-host.jpg",
            "slips/../../etc/passwd",
            "/absolute/path.jpg",
            "slip with spaces.jpg",
            "a" * 2049,
        ],
    )
    def test_rejected(self, ref):
        with pytest.raises(InvalidProof):
            validate_proof_ref(ref)

    def test_invalid_proof_is_invalid_input(self):
        assert InvalidProof("x").kind == "invalid_proof"
        assert InvalidProof("x").status_code == 400


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_moves_to_pending_review(self, db_session, guest):
        booking = await awaiting_payment(db_session, guest)
        booking = await booking_service.submit_payment_proof(
            db_session, booking.id, guest, "slips/a.jpg", now=DEADLINE
        )
        assert booking.status == BookingStatus.PENDING_REVIEW.value
        assert booking.payment_submitted_at == DEADLINE

    @pytest.mark.asyncio
    async def test_second_submission_rejected(self, db_session, guest):
        booking = await awaiting_payment(db_session, guest)
        await booking_service.submit_payment_proof(db_session, booking.id, guest, "slips/a.jpg", now=NOW)

        with pytest.raises(AlreadySubmitted):
            await booking_service.submit_payment_proof(
                db_session, booking.id, guest, "slips/b.jpg", now=NOW
            )
        assert booking.payment_proof_ref == "slips/a.jpg"

    @pytest.mark.asyncio
    async def test_submit_before_payment_method(self, db_session, guest):
        booking = await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)
        with pytest.raises(InvalidState):
            await booking_service.submit_payment_proof(
                db_session, booking.id, guest, "slips/a.jpg", now=NOW
            )

    @pytest.mark.asyncio
    async def test_bad_reference_leaves_booking_unchanged(self, db_session, guest):
        booking = await awaiting_payment(db_session, guest)
        with pytest.raises(InvalidProof):
            await booking_service.submit_payment_proof(
                db_session, booking.id, guest, "http://insecure.example.com/a.jpg", now=NOW
            )
        assert booking.status == BookingStatus.AWAITING_PAYMENT.value
        assert booking.payment_proof_ref is None


class TestExpiry:
    @pytest.mark.asyncio
    async def test_late_submission_expires_booking(self, session_factory, guest):
        async with session_factory() as db:
            booking = await awaiting_payment(db, guest)
            late = DEADLINE + timedelta(minutes=1)

            with pytest.raises(WindowExpired):
                await booking_service.submit_payment_proof(db, booking.id, guest, "slips/a.jpg", now=late)
            await db.rollback()

        # The expiry was committed even though the request failed
        async with session_factory() as db:
            stored = await booking_service.get_booking(db, booking.id, guest, now=late)
            assert stored.status == BookingStatus.EXPIRED.value
            assert stored.expired_at == late
            assert stored.payment_proof_ref is None

    @pytest.mark.asyncio
    async def test_submit_on_expired_booking(self, db_session, guest):
        booking = await awaiting_payment(db_session, guest)
        late = DEADLINE + timedelta(hours=1)
        await booking_service.get_booking(db_session, booking.id, guest, now=late)
        assert booking.status == BookingStatus.EXPIRED.value

        with pytest.raises(WindowExpired):
            await booking_service.submit_payment_proof(db_session, booking.id, guest, "slips/a.jpg", now=late)

    @pytest.mark.asyncio
    async def test_other_mutations_on_lapsed_booking(self, db_session, guest):
        booking = await booking_service.create_booking(db_session, guest, STAY, 2, 1196, now=NOW)
        await db_session.commit()
        late = DEADLINE + timedelta(seconds=1)

        with pytest.raises(WindowExpired):
            await booking_service.attach_customer_info(
                db_session, booking.id, guest, CustomerInfo(**CUSTOMER), now=late
            )
        with pytest.raises(InvalidState):
            await booking_service.cancel_booking(db_session, booking.id, guest, now=late)

    @pytest.mark.asyncio
    async def test_expired_booking_releases_dates(self, db_session, guest, other_guest):
        await awaiting_payment(db_session, guest)
        late = DEADLINE + timedelta(minutes=1)

        replacement = await booking_service.create_booking(
            db_session, other_guest, STAY, 2, 1196, now=late
        )
        assert replacement.status == BookingStatus.DRAFT.value

    @pytest.mark.asyncio
    async def test_window_status(self, db_session, guest):
        booking = await awaiting_payment(db_session, guest)

        status = await booking_service.payment_window_status(db_session, booking.id, guest, now=NOW)
        assert status["deadline"] == DEADLINE
        assert status["expired"] is False
        assert status["seconds_remaining"] == 24 * 3600

        status = await booking_service.payment_window_status(
            db_session, booking.id, guest, now=DEADLINE + timedelta(seconds=1)
        )
        assert status["expired"] is True
        assert status["seconds_remaining"] == 0

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, db_session, guest):
        booking = await awaiting_payment(db_session, guest)
        assert payment_window.start(booking, NOW + timedelta(hours=5)) == DEADLINE
        assert payment_window.start(booking, NOW + timedelta(hours=10)) == DEADLINE
