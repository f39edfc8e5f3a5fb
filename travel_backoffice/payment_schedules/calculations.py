"""
Cent arithmetic and date resolution for payment schedules.

All money is integer cents. Percentages are converted through Decimal and
rounded half-up to the nearest cent.
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from travel_backoffice.enums import ExpectedPaymentStatus, TransactionType

CENT = Decimal("1")


def percentage_of_cents(total_cents: int, percentage: Union[Decimal, float, int, str]) -> int:
    """Return `percentage` % of `total_cents`, rounded half-up to a whole cent"""
    amount = Decimal(total_cents) * Decimal(str(percentage)) / Decimal("100")
    return int(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def resolve_relative_date(anchor: date, offset_days: int, direction: str) -> str:
    """Move `anchor` by whole days ('after' or 'before') and return YYYY-MM-DD"""
    if direction == "after":
        resolved = anchor + timedelta(days=offset_days)
    elif direction == "before":
        resolved = anchor - timedelta(days=offset_days)
    else:
        raise ValueError(f"direction must be 'after' or 'before', got {direction!r}")
    return resolved.isoformat()


def reconcile_rounding_error(items: List, target_total_cents: int) -> int:
    """
    Push any rounding remainder onto the item with the highest sequence order.

    Items are mutated in place; the applied difference (possibly 0) is returned.
    """
    if not items:
        return 0

    current_sum = sum(item.expected_amount_cents for item in items)
    difference = target_total_cents - current_sum
    if difference != 0:
        last_item = max(items, key=lambda item: item.sequence_order)
        last_item.expected_amount_cents += difference
    return difference


def as_date(value: Optional[Union[date, str]]) -> Optional[date]:
    """Accept a date or an ISO date string"""
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def net_paid_cents(transactions: Iterable) -> int:
    """Payments and adjustments add, refunds subtract; never below zero."""
    total = 0
    for txn in transactions:
        txn_type = TransactionType(txn.transaction_type)
        if txn_type == TransactionType.REFUND:
            total -= txn.amount_cents
        else:
            total += txn.amount_cents
    return max(0, total)


def derive_payment_status(
    paid_cents: int,
    expected_cents: int,
    due_date: Optional[Union[date, str]] = None,
    today: Optional[date] = None
) -> ExpectedPaymentStatus:
    """Status of one expected payment item from its paid amount"""
    if paid_cents >= expected_cents:
        return ExpectedPaymentStatus.PAID
    if paid_cents > 0:
        return ExpectedPaymentStatus.PARTIAL

    due = as_date(due_date)
    if due is not None and due < (today or date.today()):
        return ExpectedPaymentStatus.OVERDUE
    return ExpectedPaymentStatus.PENDING
