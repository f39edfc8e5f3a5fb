from typing import List
from decimal import Decimal

from travel_backoffice.exceptions import ValidationFailedError
from travel_backoffice.payment_templates.schemas import TemplateItemCreate

PERCENTAGE_SUM_TOLERANCE = Decimal("0.01")


def validate_template_items(items: List[TemplateItemCreate]) -> None:
    """Raise ValidationFailedError describing the first malformed item"""
    if not items:
        raise ValidationFailedError(
            "A template needs at least one payment item",
            code="EMPTY_TEMPLATE"
        )

    for position, item in enumerate(items, start=1):
        label = f"Item {position}"

        has_percentage = item.percentage is not None
        has_fixed = item.fixed_amount_cents is not None
        if has_percentage == has_fixed:
            raise ValidationFailedError(
                f"{label}: specify exactly one of percentage or fixed_amount_cents",
                code="INVALID_TEMPLATE_ITEM",
                position=position
            )

        has_from_booking = item.days_from_booking is not None
        has_before_departure = item.days_before_departure is not None
        if has_from_booking == has_before_departure:
            raise ValidationFailedError(
                f"{label}: specify exactly one of days_from_booking or days_before_departure",
                code="INVALID_TEMPLATE_ITEM",
                position=position
            )

        if has_percentage and not (0 <= item.percentage <= 100):
            raise ValidationFailedError(
                f"{label}: percentage must be between 0 and 100",
                code="INVALID_TEMPLATE_ITEM",
                position=position
            )
        if has_fixed and item.fixed_amount_cents <= 0:
            raise ValidationFailedError(
                f"{label}: fixed_amount_cents must be greater than 0",
                code="INVALID_TEMPLATE_ITEM",
                position=position
            )

        offset = item.days_from_booking if has_from_booking else item.days_before_departure
        if offset < 0:
            raise ValidationFailedError(
                f"{label}: day offsets cannot be negative",
                code="INVALID_TEMPLATE_ITEM",
                position=position
            )

    if all(item.percentage is not None for item in items):
        total = sum((Decimal(str(item.percentage)) for item in items), Decimal("0"))
        if abs(total - 100) > PERCENTAGE_SUM_TOLERANCE:
            raise ValidationFailedError(
                f"Percentages must add up to 100 (got {total})",
                code="PERCENTAGE_SUM_MISMATCH",
                percentageSum=str(total)
            )
