from typing import List, Optional
from datetime import date

from travel_backoffice.payment_schedules.calculations import as_date
from travel_backoffice.payment_schedules.schemas import (
    ScheduleValidationIssue, ScheduleValidationResult
)

# Regulatory limits for consumer travel payments
MIN_DAYS_BEFORE_DEPARTURE = 45
MAX_INSTALLMENTS = 12
MIN_PAYMENT_CENTS = 100
HIGH_DEPOSIT_PERCENTAGE = 50


def validate_payment_schedule(
    items: List,
    total_cents: int,
    departure_date,
    booking_date: Optional[date] = None,
    today: Optional[date] = None
) -> ScheduleValidationResult:
    """
    Check a resolved payment schedule against the compliance rules.

    Items need `payment_name`, `expected_amount_cents`, `due_date` and
    `sequence_order`. Errors block persistence; warnings never do.
    `booking_date` is accepted for symmetry with template resolution and
    does not currently drive any rule.
    """
    errors: List[ScheduleValidationIssue] = []
    warnings: List[ScheduleValidationIssue] = []
    today = today or date.today()
    departure = as_date(departure_date)

    # Sum must reconcile to the cent
    items_sum = sum(item.expected_amount_cents for item in items)
    if items_sum != total_cents:
        difference = total_cents - items_sum
        errors.append(ScheduleValidationIssue(
            code="SUM_MISMATCH",
            message=(
                f"Payment items total {items_sum} cents but the booking total is "
                f"{total_cents} cents (difference {difference})"
            ),
            difference=difference,
            itemsSumCents=items_sum,
            totalCents=total_cents
        ))

    if items:
        ordered = sorted(items, key=lambda item: item.sequence_order)

        # Final payment must land at least 45 days before departure
        final_item = ordered[-1]
        final_due = as_date(final_item.due_date)
        if final_due is not None and departure is not None:
            days_before = (departure - final_due).days
            if days_before < MIN_DAYS_BEFORE_DEPARTURE:
                errors.append(ScheduleValidationIssue(
                    code="FINAL_PAYMENT_TOO_LATE",
                    message=(
                        f"Final payment is due {days_before} days before departure; "
                        f"at least {MIN_DAYS_BEFORE_DEPARTURE} days are required"
                    ),
                    daysBeforeDeparture=days_before,
                    required=MIN_DAYS_BEFORE_DEPARTURE
                ))

        # Deposit size
        deposit = ordered[0]
        if total_cents > 0:
            deposit_percent = deposit.expected_amount_cents * 100 / total_cents
            if deposit_percent > HIGH_DEPOSIT_PERCENTAGE:
                warnings.append(ScheduleValidationIssue(
                    code="HIGH_DEPOSIT",
                    message=(
                        f"Deposit is {deposit_percent:.1f}% of the total, above the "
                        f"usual {HIGH_DEPOSIT_PERCENTAGE}%"
                    ),
                    depositPercentage=round(deposit_percent, 2),
                    threshold=HIGH_DEPOSIT_PERCENTAGE
                ))

    for item in items:
        if item.expected_amount_cents < MIN_PAYMENT_CENTS:
            errors.append(ScheduleValidationIssue(
                code="PAYMENT_TOO_SMALL",
                message=(
                    f"Payment '{item.payment_name}' of {item.expected_amount_cents} cents "
                    f"is below the minimum of {MIN_PAYMENT_CENTS} cents"
                ),
                paymentName=item.payment_name,
                amountCents=item.expected_amount_cents,
                minimumCents=MIN_PAYMENT_CENTS
            ))

        due = as_date(item.due_date)
        if due is not None and due < today:
            warnings.append(ScheduleValidationIssue(
                code="PAST_DUE_DATE",
                message=f"Payment '{item.payment_name}' is due in the past ({due.isoformat()})",
                paymentName=item.payment_name,
                dueDate=due.isoformat()
            ))

    if len(items) > MAX_INSTALLMENTS:
        errors.append(ScheduleValidationIssue(
            code="TOO_MANY_INSTALLMENTS",
            message=f"Schedule has {len(items)} payments; at most {MAX_INSTALLMENTS} are allowed",
            count=len(items),
            maximum=MAX_INSTALLMENTS
        ))

    return ScheduleValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings
    )
