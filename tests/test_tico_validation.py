"""Tests for the payment schedule compliance rules."""

from datetime import date

from travel_backoffice.payment_schedules.schemas import ExpectedPaymentItemCreate
from travel_backoffice.payment_schedules.validation import (
    MAX_INSTALLMENTS, MIN_DAYS_BEFORE_DEPARTURE, MIN_PAYMENT_CENTS, validate_payment_schedule
)

DEPARTURE = date(2025, 6, 1)
TODAY = date(2024, 12, 1)


def _item(amount, sequence, due=None, name=None):
    return ExpectedPaymentItemCreate(
        payment_name=name or f"Payment {sequence}",
        expected_amount_cents=amount,
        due_date=due,
        sequence_order=sequence
    )


def _codes(issues):
    return [issue.code for issue in issues]


class TestValidSchedule:

    def test_clean_schedule(self):
        items = [_item(20000, 1, date(2025, 1, 1)), _item(80000, 2, date(2025, 4, 16))]

        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_empty_schedule_with_zero_total(self):
        result = validate_payment_schedule([], 0, DEPARTURE, today=TODAY)
        assert result.is_valid

    def test_accepts_iso_string_dates(self):
        items = [_item(20000, 1, "2025-01-01"), _item(80000, 2, "2025-04-16")]
        result = validate_payment_schedule(items, 100000, "2025-06-01", today=TODAY)
        assert result.is_valid


class TestSumMismatch:

    def test_reports_signed_difference(self):
        items = [_item(20000, 1), _item(80000, 2)]

        result = validate_payment_schedule(items, 100500, DEPARTURE, today=TODAY)

        assert not result.is_valid
        error = result.errors[0]
        assert error.code == "SUM_MISMATCH"
        assert error.model_dump()["difference"] == 500

    def test_overshoot_is_negative(self):
        result = validate_payment_schedule([_item(10100, 1)], 10000, DEPARTURE, today=TODAY)
        assert result.errors[0].model_dump()["difference"] == -100


class TestFinalPaymentTiming:

    def test_46_days_is_allowed(self):
        items = [_item(20000, 1), _item(80000, 2, date(2025, 4, 16))]

        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)

        assert "FINAL_PAYMENT_TOO_LATE" not in _codes(result.errors)

    def test_45_days_is_allowed(self):
        items = [_item(20000, 1), _item(80000, 2, date(2025, 4, 17))]
        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)
        assert result.is_valid

    def test_44_days_is_rejected(self):
        items = [_item(20000, 1), _item(80000, 2, date(2025, 4, 18))]

        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)

        assert not result.is_valid
        error = result.errors[0].model_dump()
        assert error["code"] == "FINAL_PAYMENT_TOO_LATE"
        assert error["daysBeforeDeparture"] == 44
        assert error["required"] == MIN_DAYS_BEFORE_DEPARTURE

    def test_uses_highest_sequence_not_list_order(self):
        items = [_item(80000, 2, date(2025, 4, 1)), _item(20000, 1, date(2025, 5, 30))]

        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)

        assert "FINAL_PAYMENT_TOO_LATE" not in _codes(result.errors)

    def test_final_item_without_due_date_is_not_checked(self):
        items = [_item(20000, 1, date(2025, 5, 30)), _item(80000, 2)]
        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)
        assert result.is_valid


class TestPaymentSize:

    def test_99_cents_rejected(self):
        items = [_item(99, 1, name="Tiny"), _item(99901, 2)]

        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)

        error = result.errors[0].model_dump()
        assert error["code"] == "PAYMENT_TOO_SMALL"
        assert error["paymentName"] == "Tiny"
        assert error["amountCents"] == 99
        assert error["minimumCents"] == MIN_PAYMENT_CENTS

    def test_100_cents_allowed(self):
        items = [_item(100, 1), _item(99900, 2)]
        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)
        assert "PAYMENT_TOO_SMALL" not in _codes(result.errors)

    def test_every_small_item_is_reported(self):
        items = [_item(50, 1), _item(60, 2), _item(990, 3)]
        result = validate_payment_schedule(items, 1100, DEPARTURE, today=TODAY)
        assert _codes(result.errors).count("PAYMENT_TOO_SMALL") == 2


class TestInstallmentCount:

    def test_thirteen_rejected(self):
        items = [_item(1000, n) for n in range(1, 14)]

        result = validate_payment_schedule(items, 13000, DEPARTURE, today=TODAY)

        error = result.errors[0].model_dump()
        assert error["code"] == "TOO_MANY_INSTALLMENTS"
        assert error["count"] == 13
        assert error["maximum"] == MAX_INSTALLMENTS

    def test_twelve_allowed(self):
        items = [_item(1000, n) for n in range(1, 13)]
        result = validate_payment_schedule(items, 12000, DEPARTURE, today=TODAY)
        assert result.is_valid


class TestWarnings:

    def test_high_deposit_warns_but_passes(self):
        items = [_item(60000, 1), _item(40000, 2)]

        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)

        assert result.is_valid
        assert _codes(result.warnings) == ["HIGH_DEPOSIT"]

    def test_half_deposit_does_not_warn(self):
        items = [_item(50000, 1), _item(50000, 2)]
        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)
        assert result.warnings == []

    def test_past_due_date_warns(self):
        items = [_item(20000, 1, date(2024, 11, 30)), _item(80000, 2, date(2025, 4, 1))]

        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)

        assert result.is_valid
        assert _codes(result.warnings) == ["PAST_DUE_DATE"]

    def test_due_today_is_not_past(self):
        items = [_item(20000, 1, TODAY), _item(80000, 2, date(2025, 4, 1))]
        result = validate_payment_schedule(items, 100000, DEPARTURE, today=TODAY)
        assert result.warnings == []

    def test_errors_and_warnings_together(self):
        items = [_item(90000, 1, date(2024, 1, 1)), _item(50, 2, date(2025, 5, 20))]

        result = validate_payment_schedule(items, 90050, DEPARTURE, today=TODAY)

        assert set(_codes(result.errors)) == {"FINAL_PAYMENT_TOO_LATE", "PAYMENT_TOO_SMALL"}
        assert set(_codes(result.warnings)) == {"HIGH_DEPOSIT", "PAST_DUE_DATE"}
