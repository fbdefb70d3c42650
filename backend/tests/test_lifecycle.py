"""
Tests for the booking state machine, payment window arithmetic and pricing.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from villa_booking.core.exceptions import InvalidState
from villa_booking.domain import pricing
from villa_booking.domain.date_range import DateRange
from villa_booking.domain.lifecycle import (
    BookingStatus,
    TERMINAL_STATUSES,
    assert_in,
    assert_transition,
    can_transition,
    is_terminal,
)
from villa_booking.domain.payment_window import (
    compute_deadline,
    seconds_remaining,
    should_expire,
)

S = BookingStatus
NOW = datetime(2024, 5, 20, 9, 0, tzinfo=timezone.utc)


class TestTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            (S.DRAFT, S.AWAITING_CUSTOMER_INFO),
            (S.AWAITING_CUSTOMER_INFO, S.AWAITING_PAYMENT),
            (S.AWAITING_PAYMENT, S.PENDING_REVIEW),
            (S.PENDING_REVIEW, S.CONFIRMED),
        ],
    )
    def test_forward_path(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current",
        [S.DRAFT, S.AWAITING_CUSTOMER_INFO, S.AWAITING_PAYMENT, S.PENDING_REVIEW],
    )
    def test_cancel_and_expire_from_any_live_state(self, current):
        assert can_transition(current, S.CANCELLED)
        assert can_transition(current, S.EXPIRED)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_states_have_no_exits(self, terminal):
        assert is_terminal(terminal)
        for target in S:
            assert not can_transition(terminal, target)

    def test_no_skipping_steps(self):
        assert not can_transition(S.DRAFT, S.AWAITING_PAYMENT)
        assert not can_transition(S.AWAITING_PAYMENT, S.CONFIRMED)
        assert not can_transition(S.PENDING_REVIEW, S.AWAITING_PAYMENT)

    def test_assert_transition_raises_invalid_state(self):
        with pytest.raises(InvalidState):
            assert_transition(S.CONFIRMED, S.CANCELLED)

    def test_accepts_raw_status_strings(self):
        assert_transition("draft", "awaiting_customer_info")

    def test_assert_in(self):
        assert_in("awaiting_payment", {S.AWAITING_PAYMENT}, "submit payment proof")
        with pytest.raises(InvalidState, match="submit payment proof"):
            assert_in("draft", {S.AWAITING_PAYMENT}, "submit payment proof")


class TestPaymentWindow:
    def test_deadline_is_window_after_start(self):
        assert compute_deadline(NOW, 24) == NOW + timedelta(hours=24)

    def test_only_windowed_statuses_expire(self):
        past = NOW - timedelta(minutes=1)
        assert should_expire(S.DRAFT, past, NOW)
        assert should_expire(S.AWAITING_PAYMENT, past, NOW)
        assert not should_expire(S.PENDING_REVIEW, past, NOW)
        assert not should_expire(S.CONFIRMED, past, NOW)
        assert not should_expire(S.CANCELLED, past, NOW)

    def test_deadline_instant_itself_is_still_open(self):
        assert not should_expire(S.AWAITING_PAYMENT, NOW, NOW)
        assert should_expire(S.AWAITING_PAYMENT, NOW, NOW + timedelta(microseconds=1))

    def test_no_deadline_never_expires(self):
        assert not should_expire(S.DRAFT, None, NOW)

    def test_seconds_remaining(self):
        assert seconds_remaining(NOW + timedelta(hours=1), NOW) == 3600
        assert seconds_remaining(NOW - timedelta(hours=1), NOW) == 0
        assert seconds_remaining(None, NOW) is None


class TestPricing:
    def test_four_nights_at_nightly_rate(self):
        rng = DateRange(datetime(2024, 6, 1, tzinfo=timezone.utc), datetime(2024, 6, 5, tzinfo=timezone.utc))
        quote = pricing.quote(rng, Decimal("299"), Decimal("0"), "THB")
        assert quote.nights == 4
        assert quote.subtotal == Decimal("1196.00")
        assert quote.tax == Decimal("0.00")
        assert quote.total == Decimal("1196.00")

    def test_tax_rounded_to_cents(self):
        rng = DateRange(datetime(2024, 6, 1, tzinfo=timezone.utc), datetime(2024, 6, 2, tzinfo=timezone.utc))
        quote = pricing.quote(rng, Decimal("299"), Decimal("0.07"), "THB")
        assert quote.tax == Decimal("20.93")
        assert quote.total == Decimal("319.93")
