"""Tests for cent arithmetic, date resolution and cache status derivation."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from travel_backoffice.enums import ExpectedPaymentStatus
from travel_backoffice.payment_schedules.calculations import (
    as_date, derive_payment_status, net_paid_cents, percentage_of_cents,
    reconcile_rounding_error, resolve_relative_date
)
from travel_backoffice.payment_schedules.schemas import ExpectedPaymentItemCreate


def _item(amount, sequence):
    return ExpectedPaymentItemCreate(
        payment_name=f"Payment {sequence}", expected_amount_cents=amount, sequence_order=sequence
    )


def _txn(transaction_type, amount_cents):
    return SimpleNamespace(transaction_type=transaction_type, amount_cents=amount_cents)


class TestPercentageOfCents:

    def test_sixty_forty_split_of_odd_total(self):
        assert percentage_of_cents(10001, 60) == 6001
        assert percentage_of_cents(10001, 40) == 4000

    def test_rounds_half_up(self):
        # 2.5 and 0.5 cents round up, unlike banker's rounding
        assert percentage_of_cents(5, 50) == 3
        assert percentage_of_cents(1, 50) == 1
        assert percentage_of_cents(3, 50) == 2

    def test_accepts_decimal_percentages(self):
        assert percentage_of_cents(10001, Decimal("33.33")) == 3333
        assert percentage_of_cents(100000, Decimal("12.5")) == 12500

    def test_zero_and_full(self):
        assert percentage_of_cents(98765, 0) == 0
        assert percentage_of_cents(98765, 100) == 98765


class TestResolveRelativeDate:

    def test_before_departure(self):
        assert resolve_relative_date(date(2025, 6, 1), 45, "before") == "2025-04-17"

    def test_after_booking_crosses_month(self):
        assert resolve_relative_date(date(2025, 1, 31), 1, "after") == "2025-02-01"

    def test_zero_offset(self):
        assert resolve_relative_date(date(2024, 2, 29), 0, "after") == "2024-02-29"

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            resolve_relative_date(date(2025, 1, 1), 3, "sideways")


class TestReconcileRoundingError:

    def test_remainder_goes_to_last_item(self):
        items = [
            _item(percentage_of_cents(10001, Decimal("33.33")), 1),
            _item(percentage_of_cents(10001, Decimal("33.33")), 2),
            _item(percentage_of_cents(10001, Decimal("33.34")), 3),
        ]

        difference = reconcile_rounding_error(items, 10001)

        assert difference == 1
        assert [i.expected_amount_cents for i in items] == [3333, 3333, 3335]
        assert sum(i.expected_amount_cents for i in items) == 10001

    def test_last_by_sequence_not_position(self):
        items = [_item(40, 3), _item(30, 1), _item(29, 2)]

        reconcile_rounding_error(items, 100)

        assert items[0].expected_amount_cents == 41

    def test_negative_difference(self):
        items = [_item(5001, 1), _item(5001, 2)]

        assert reconcile_rounding_error(items, 10001) == -1
        assert items[1].expected_amount_cents == 5000

    def test_exact_sum_untouched(self):
        items = [_item(6001, 1), _item(4000, 2)]

        assert reconcile_rounding_error(items, 10001) == 0
        assert [i.expected_amount_cents for i in items] == [6001, 4000]

    def test_empty(self):
        assert reconcile_rounding_error([], 500) == 0


class TestNetPaidCents:

    def test_refund_subtracts_and_adjustment_adds(self):
        transactions = [_txn("payment", 30000), _txn("refund", 5000), _txn("adjustment", 1000)]
        assert net_paid_cents(transactions) == 26000

    def test_clamped_at_zero(self):
        assert net_paid_cents([_txn("payment", 100), _txn("refund", 500)]) == 0

    def test_order_independent(self):
        forward = [_txn("refund", 50000), _txn("payment", 25000), _txn("payment", 25000)]
        assert net_paid_cents(forward) == net_paid_cents(list(reversed(forward)))


class TestDerivePaymentStatus:

    def test_paid_when_covered(self):
        assert derive_payment_status(50000, 50000) == ExpectedPaymentStatus.PAID
        assert derive_payment_status(60000, 50000) == ExpectedPaymentStatus.PAID

    def test_partial(self):
        assert derive_payment_status(1, 50000) == ExpectedPaymentStatus.PARTIAL

    def test_overdue_only_when_strictly_past(self):
        today = date(2025, 3, 10)
        assert derive_payment_status(0, 500, date(2025, 3, 9), today) == ExpectedPaymentStatus.OVERDUE
        assert derive_payment_status(0, 500, date(2025, 3, 10), today) == ExpectedPaymentStatus.PENDING

    def test_pending_without_due_date(self):
        assert derive_payment_status(0, 500, None, date(2025, 3, 10)) == ExpectedPaymentStatus.PENDING

    def test_zero_expected_is_paid(self):
        assert derive_payment_status(0, 0) == ExpectedPaymentStatus.PAID


def test_as_date_accepts_strings():
    assert as_date("2025-04-16") == date(2025, 4, 16)
    assert as_date(date(2025, 4, 16)) == date(2025, 4, 16)
    assert as_date(None) is None
