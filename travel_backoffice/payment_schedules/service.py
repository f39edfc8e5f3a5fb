import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from travel_backoffice.audit.schemas import AuditEntityType
from travel_backoffice.audit.service import PaymentAuditService
from travel_backoffice.database import atomic
from travel_backoffice.enums import DepositType, ExpectedPaymentStatus, ScheduleType
from travel_backoffice.exceptions import ConflictError, NotFoundError, ValidationFailedError
from travel_backoffice.models import (
    ActivityPricing, CreditCardGuarantee, ExpectedPaymentItem, PaymentScheduleConfig
)
from travel_backoffice.payment_schedules.calculations import (
    derive_payment_status, percentage_of_cents, reconcile_rounding_error, resolve_relative_date
)
from travel_backoffice.payment_schedules.schemas import (
    ApplyTemplateRequest, ApplyTemplateResponse, CreditCardGuaranteeCreate, DepositCalculation,
    ExpectedPaymentItemCreate, ExpectedPaymentItemResponse, ExpectedPaymentItemUpdate,
    PaymentScheduleCreate, PaymentScheduleResponse, PaymentScheduleUpdate,
    ScheduleValidationResult
)
from travel_backoffice.payment_schedules.validation import validate_payment_schedule
from travel_backoffice.payment_templates.schemas import (
    DaysFromBooking, PercentageAmount, TemplateItemResponse
)
from travel_backoffice.payment_templates.service import PaymentTemplateService

logger = logging.getLogger(__name__)

MIN_UNLOCK_REASON_LENGTH = 10


class PaymentScheduleService:
    """Service for concrete payment schedules of priced activities"""

    def __init__(
        self,
        db: Session,
        audit_service: Optional[PaymentAuditService] = None,
        template_service: Optional[PaymentTemplateService] = None
    ):
        self.db = db
        self.audit_service = audit_service or PaymentAuditService(db)
        self.template_service = template_service or PaymentTemplateService(db, self.audit_service)

    # Reads
    def get_schedule(
        self,
        activity_pricing_id: str,
        agency_id: Optional[str] = None
    ) -> Optional[PaymentScheduleResponse]:
        """Schedule of one priced activity, or None"""
        config = self._get_config_row(activity_pricing_id)
        if not config:
            return None
        if agency_id and config.activity_pricing.agency_id != agency_id:
            return None
        return PaymentScheduleResponse.model_validate(config)

    def get_schedule_or_raise(
        self,
        activity_pricing_id: str,
        agency_id: Optional[str] = None
    ) -> PaymentScheduleResponse:
        schedule = self.get_schedule(activity_pricing_id, agency_id)
        if not schedule:
            raise NotFoundError(f"No payment schedule for activity pricing {activity_pricing_id}")
        return schedule

    # Writes
    def create_schedule(
        self,
        data: PaymentScheduleCreate,
        actor: str = "system",
        agency_id: Optional[str] = None
    ) -> PaymentScheduleResponse:
        """Create the one schedule of an activity; a second create is a conflict"""
        pricing = self._get_pricing_or_raise(data.activity_pricing_id, agency_id)
        total_cents = self._require_total(pricing)

        if self._get_config_row(pricing.id):
            raise ConflictError(
                f"A payment schedule already exists for activity pricing {pricing.id}; update it instead"
            )

        self._validate_deposit(
            data.schedule_type, data.deposit_type,
            data.deposit_percentage, data.deposit_amount_cents, total_cents
        )
        if data.schedule_type == ScheduleType.GUARANTEE and not data.credit_card_guarantee:
            raise ValidationFailedError(
                "Credit card guarantee details are required for a guarantee schedule",
                code="GUARANTEE_REQUIRED"
            )
        if data.expected_payment_items is not None:
            self._validate_item_amounts(data.expected_payment_items, total_cents)

        try:
            with atomic(self.db):
                config = PaymentScheduleConfig(
                    activity_pricing_id=pricing.id,
                    schedule_type=data.schedule_type.value,
                    allow_partial_payments=data.allow_partial_payments,
                    deposit_type=data.deposit_type.value if data.deposit_type else None,
                    deposit_percentage=data.deposit_percentage,
                    deposit_amount_cents=data.deposit_amount_cents
                )
                self.db.add(config)
                self.db.flush()

                for item in data.expected_payment_items or []:
                    config.expected_payment_items.append(self._build_item(item, pricing.agency_id))
                if data.credit_card_guarantee:
                    config.credit_card_guarantee = self._build_guarantee(data.credit_card_guarantee)
        except IntegrityError as e:
            raise ConflictError(
                f"A payment schedule already exists for activity pricing {pricing.id}"
            ) from e

        result = PaymentScheduleResponse.model_validate(config)
        self.audit_service.log_created(
            AuditEntityType.CONFIG, result.id, pricing.agency_id, actor, self._snapshot(result)
        )
        logger.info(
            "Created %s payment schedule %s with %d items",
            result.schedule_type.value, result.id, len(result.expected_payment_items)
        )
        return result

    def update_schedule(
        self,
        activity_pricing_id: str,
        data: PaymentScheduleUpdate,
        actor: str = "system",
        agency_id: Optional[str] = None
    ) -> PaymentScheduleResponse:
        """Update a schedule; supplied items replace the existing ones wholesale"""
        config = self._get_config_row(activity_pricing_id)
        if not config or (agency_id and config.activity_pricing.agency_id != agency_id):
            raise NotFoundError(f"No payment schedule for activity pricing {activity_pricing_id}")

        pricing = config.activity_pricing
        total_cents = self._require_total(pricing)

        schedule_type = data.schedule_type or ScheduleType(config.schedule_type)
        deposit_type = data.deposit_type or (
            DepositType(config.deposit_type) if config.deposit_type else None
        )
        deposit_percentage = (
            data.deposit_percentage if data.deposit_percentage is not None else config.deposit_percentage
        )
        deposit_amount_cents = (
            data.deposit_amount_cents if data.deposit_amount_cents is not None else config.deposit_amount_cents
        )
        self._validate_deposit(
            schedule_type, deposit_type, deposit_percentage, deposit_amount_cents, total_cents
        )

        if schedule_type == ScheduleType.GUARANTEE:
            if not data.credit_card_guarantee and not config.credit_card_guarantee:
                raise ValidationFailedError(
                    "Credit card guarantee details are required for a guarantee schedule",
                    code="GUARANTEE_REQUIRED"
                )
        guarantee_changes = (
            data.credit_card_guarantee.model_dump(exclude_unset=True)
            if data.credit_card_guarantee else None
        )
        if guarantee_changes is not None and not config.credit_card_guarantee:
            try:
                new_guarantee = CreditCardGuaranteeCreate(**guarantee_changes)
            except ValueError as e:
                raise ValidationFailedError(
                    "Complete card guarantee details are required to add a guarantee",
                    code="GUARANTEE_REQUIRED"
                ) from e
        else:
            new_guarantee = None

        if data.expected_payment_items is not None:
            self._validate_item_amounts(data.expected_payment_items, total_cents)

        old_snapshot = self._snapshot(PaymentScheduleResponse.model_validate(config))

        with atomic(self.db):
            config.schedule_type = schedule_type.value
            if data.allow_partial_payments is not None:
                config.allow_partial_payments = data.allow_partial_payments
            config.deposit_type = deposit_type.value if deposit_type else None
            config.deposit_percentage = deposit_percentage
            config.deposit_amount_cents = deposit_amount_cents

            if data.expected_payment_items is not None:
                # Replacing the plan discards accrued paid amounts and locks
                config.expected_payment_items.clear()
                self.db.flush()
                for item in data.expected_payment_items:
                    config.expected_payment_items.append(self._build_item(item, pricing.agency_id))

            if new_guarantee is not None:
                config.credit_card_guarantee = self._build_guarantee(new_guarantee)
            elif guarantee_changes:
                for field, value in guarantee_changes.items():
                    if value is not None:
                        setattr(config.credit_card_guarantee, field, value)

        result = PaymentScheduleResponse.model_validate(config)
        self.audit_service.log_updated(
            AuditEntityType.CONFIG, result.id, pricing.agency_id, actor,
            old_snapshot, self._snapshot(result)
        )
        logger.info("Updated payment schedule %s", result.id)
        return result

    def delete_schedule(
        self,
        activity_pricing_id: str,
        actor: str = "system",
        agency_id: Optional[str] = None
    ) -> None:
        """Delete a schedule with its items, their transactions and the guarantee"""
        config = self._get_config_row(activity_pricing_id)
        if not config or (agency_id and config.activity_pricing.agency_id != agency_id):
            raise NotFoundError(f"No payment schedule for activity pricing {activity_pricing_id}")

        config_id = config.id
        owner_agency_id = config.activity_pricing.agency_id
        old_snapshot = self._snapshot(PaymentScheduleResponse.model_validate(config))

        with atomic(self.db):
            self.db.delete(config)

        self.audit_service.log_deleted(
            AuditEntityType.CONFIG, config_id, owner_agency_id, actor, old_snapshot
        )
        logger.info("Deleted payment schedule %s", config_id)

    def update_expected_payment_item(
        self,
        item_id: str,
        data: ExpectedPaymentItemUpdate,
        actor: str = "system",
        agency_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> ExpectedPaymentItemResponse:
        """Patch one item; the config must still sum to the activity total"""
        item = self._get_item_or_raise(item_id, agency_id)
        if item.is_locked:
            raise ValidationFailedError(
                f"Payment item '{item.payment_name}' is locked; unlock it before editing",
                code="ITEM_LOCKED"
            )

        changes = data.model_dump(exclude_unset=True)

        if changes.get("expected_amount_cents") is not None:
            new_amount = changes["expected_amount_cents"]
            if new_amount < 0:
                raise ValidationFailedError(
                    "Expected amount cannot be negative",
                    code="NEGATIVE_AMOUNT"
                )
            total_cents = self._require_total(item.config.activity_pricing)
            new_sum = sum(
                new_amount if sibling.id == item.id else sibling.expected_amount_cents
                for sibling in item.config.expected_payment_items
            )
            if new_sum != total_cents:
                difference = total_cents - new_sum
                raise ValidationFailedError(
                    f"Payment items would total {new_sum} cents but the activity total is {total_cents} cents",
                    code="SUM_MISMATCH",
                    difference=difference
                )

        old_values = self._item_snapshot(ExpectedPaymentItemResponse.model_validate(item))
        old_status = item.status

        with atomic(self.db):
            for field in ("payment_name", "expected_amount_cents", "sequence_order"):
                if changes.get(field) is not None:
                    setattr(item, field, changes[field])
            if "due_date" in changes:
                item.due_date = changes["due_date"]

            if changes.get("status") is not None:
                item.status = changes["status"].value
            else:
                item.status = derive_payment_status(
                    item.paid_amount_cents, item.expected_amount_cents, item.due_date, today
                ).value

        result = ExpectedPaymentItemResponse.model_validate(item)
        self.audit_service.log_updated(
            AuditEntityType.ITEM, result.id, result.agency_id, actor,
            old_values, self._item_snapshot(result)
        )
        if result.status.value != old_status:
            self.audit_service.log_status_changed(
                AuditEntityType.ITEM, result.id, result.agency_id, actor,
                old_status, result.status.value
            )
        return result

    def unlock_item(
        self,
        item_id: str,
        actor: str,
        reason: str,
        agency_id: Optional[str] = None
    ) -> ExpectedPaymentItemResponse:
        """Unlock a paid item so it can be edited again"""
        if not reason or len(reason.strip()) < MIN_UNLOCK_REASON_LENGTH:
            logger.warning("Rejected unlock of payment item %s: reason too short", item_id)
            raise ValidationFailedError(
                f"An unlock reason of at least {MIN_UNLOCK_REASON_LENGTH} characters is required",
                code="UNLOCK_REASON_REQUIRED"
            )

        item = self._get_item_or_raise(item_id, agency_id)
        if not item.is_locked:
            return ExpectedPaymentItemResponse.model_validate(item)

        with atomic(self.db):
            item.is_locked = False
            item.locked_at = None
            item.locked_by = None

        result = ExpectedPaymentItemResponse.model_validate(item)
        self.audit_service.log_unlocked(result.id, result.agency_id, actor, reason.strip())
        logger.info("Unlocked payment item %s", result.id)
        return result

    def apply_template(
        self,
        activity_pricing_id: str,
        agency_id: str,
        actor: str,
        data: ApplyTemplateRequest,
        today: Optional[date] = None
    ) -> ApplyTemplateResponse:
        """
        Resolve a template against an activity and persist the resulting schedule.

        Amounts and due dates are resolved first, the rounding remainder goes
        to the final item, and the compliance check runs on the resolved
        schedule before anything is written. Existing items are replaced.
        """
        pricing = self._get_pricing_or_raise(activity_pricing_id, agency_id)
        template = self.template_service.get_template_or_raise(data.template_id, agency_id)
        if not template.items:
            raise ValidationFailedError(
                f"Payment template '{template.name}' has no items",
                code="EMPTY_TEMPLATE"
            )

        total_cents = data.total_amount_cents
        if total_cents is None:
            total_cents = self._require_total(pricing)
        elif pricing.total_price_cents is not None and total_cents != pricing.total_price_cents:
            raise ValidationFailedError(
                f"Requested total {total_cents} does not match the activity total {pricing.total_price_cents}",
                code="TOTAL_MISMATCH",
                difference=pricing.total_price_cents - total_cents
            )

        today = today or date.today()
        booking_date = data.booking_date or today
        resolved = self._resolve_template_items(
            template.items, total_cents, booking_date, data.departure_date
        )

        difference = reconcile_rounding_error(resolved, total_cents)
        if difference:
            logger.debug("Moved %d cents of rounding onto the final payment", difference)

        validation = validate_payment_schedule(
            resolved, total_cents, data.departure_date, booking_date, today=today
        )
        if not validation.is_valid:
            raise ValidationFailedError(
                "Payment schedule failed TICO compliance validation",
                code="TICO_VALIDATION_FAILED",
                errors=[issue.model_dump() for issue in validation.errors],
                warnings=[issue.model_dump() for issue in validation.warnings]
            )
        for warning in validation.warnings:
            logger.warning("Template '%s' applied with warning %s: %s", template.name, warning.code, warning.message)

        schedule_type = template.schedule_type.value
        try:
            with atomic(self.db):
                config = self._get_config_row(pricing.id)
                if config:
                    config.schedule_type = schedule_type
                    config.expected_payment_items.clear()
                    self.db.flush()
                else:
                    config = PaymentScheduleConfig(
                        activity_pricing_id=pricing.id,
                        schedule_type=schedule_type,
                        allow_partial_payments=False
                    )
                    self.db.add(config)
                    self.db.flush()

                for item in resolved:
                    config.expected_payment_items.append(self._build_item(item, pricing.agency_id))
        except IntegrityError as e:
            raise ConflictError(
                f"A payment schedule was created concurrently for activity pricing {pricing.id}"
            ) from e

        result = PaymentScheduleResponse.model_validate(config)
        self.audit_service.log_template_applied(
            result.id, pricing.agency_id, actor, template.id, template.version
        )
        logger.info(
            "Applied payment template '%s' v%d to activity pricing %s",
            template.name, template.version, pricing.id
        )
        return ApplyTemplateResponse(
            config=result,
            template_id=template.id,
            template_version=template.version,
            warnings=validation.warnings
        )

    # Pure helpers
    def validate_schedule(
        self,
        items: List[ExpectedPaymentItemCreate],
        total_cents: int,
        departure_date: date,
        booking_date: Optional[date] = None
    ) -> ScheduleValidationResult:
        """Dry-run the compliance check without persisting anything"""
        return validate_payment_schedule(items, total_cents, departure_date, booking_date)

    @staticmethod
    def calculate_deposit(
        total_price_cents: int,
        deposit_type: DepositType,
        deposit_value
    ) -> DepositCalculation:
        if deposit_type == DepositType.PERCENTAGE:
            if not (0 <= Decimal(str(deposit_value)) <= 100):
                raise ValidationFailedError(
                    "Deposit percentage must be between 0 and 100",
                    code="INVALID_DEPOSIT"
                )
            deposit_cents = percentage_of_cents(total_price_cents, deposit_value)
        else:
            deposit_cents = int(deposit_value)

        if deposit_cents > total_price_cents:
            raise ValidationFailedError(
                "Deposit cannot exceed the total price",
                code="INVALID_DEPOSIT",
                depositAmountCents=deposit_cents,
                totalCents=total_price_cents
            )

        return DepositCalculation(
            deposit_amount_cents=deposit_cents,
            remaining_amount_cents=total_price_cents - deposit_cents,
            total_amount_cents=total_price_cents
        )

    def generate_deposit_schedule(
        self,
        total_price_cents: int,
        deposit_type: DepositType,
        deposit_value,
        deposit_due_date: Optional[date] = None,
        final_due_date: Optional[date] = None
    ) -> List[ExpectedPaymentItemCreate]:
        """Two-item Deposit / Final Balance plan"""
        calculation = self.calculate_deposit(total_price_cents, deposit_type, deposit_value)
        return [
            ExpectedPaymentItemCreate(
                payment_name="Deposit",
                expected_amount_cents=calculation.deposit_amount_cents,
                due_date=deposit_due_date,
                sequence_order=1
            ),
            ExpectedPaymentItemCreate(
                payment_name="Final Balance",
                expected_amount_cents=calculation.remaining_amount_cents,
                due_date=final_due_date,
                sequence_order=2
            ),
        ]

    # Internal helpers
    def _get_config_row(self, activity_pricing_id: str) -> Optional[PaymentScheduleConfig]:
        return self.db.query(PaymentScheduleConfig).filter(
            PaymentScheduleConfig.activity_pricing_id == activity_pricing_id
        ).first()

    def _get_pricing_or_raise(self, activity_pricing_id: str, agency_id: Optional[str]) -> ActivityPricing:
        pricing = self.db.get(ActivityPricing, activity_pricing_id)
        if not pricing or (agency_id and pricing.agency_id != agency_id):
            raise NotFoundError(f"Activity pricing {activity_pricing_id} not found")
        return pricing

    def _get_item_or_raise(self, item_id: str, agency_id: Optional[str]) -> ExpectedPaymentItem:
        item = self.db.get(ExpectedPaymentItem, item_id)
        if not item or (agency_id and item.agency_id != agency_id):
            raise NotFoundError(f"Expected payment item {item_id} not found")
        return item

    @staticmethod
    def _require_total(pricing: ActivityPricing) -> int:
        if pricing.total_price_cents is None:
            raise ValidationFailedError(
                "Activity has no total price; set pricing before creating a payment schedule",
                code="MISSING_TOTAL_PRICE"
            )
        return pricing.total_price_cents

    @staticmethod
    def _validate_deposit(
        schedule_type: ScheduleType,
        deposit_type: Optional[DepositType],
        deposit_percentage,
        deposit_amount_cents: Optional[int],
        total_cents: int
    ) -> None:
        if schedule_type != ScheduleType.DEPOSIT:
            return

        if not deposit_type:
            raise ValidationFailedError(
                "Deposit type is required for a deposit schedule",
                code="INVALID_DEPOSIT"
            )
        if deposit_type == DepositType.PERCENTAGE:
            if deposit_percentage is None or not (0 <= Decimal(str(deposit_percentage)) <= 100):
                raise ValidationFailedError(
                    "Deposit percentage must be between 0 and 100",
                    code="INVALID_DEPOSIT"
                )
        elif deposit_amount_cents is None or not (0 <= deposit_amount_cents <= total_cents):
            raise ValidationFailedError(
                f"Deposit amount must be between 0 and {total_cents} cents",
                code="INVALID_DEPOSIT"
            )

    @staticmethod
    def _validate_item_amounts(items: List[ExpectedPaymentItemCreate], total_cents: int) -> None:
        for item in items:
            if item.expected_amount_cents < 0:
                raise ValidationFailedError(
                    f"Payment '{item.payment_name}' has a negative amount",
                    code="NEGATIVE_AMOUNT"
                )

        items_sum = sum(item.expected_amount_cents for item in items)
        if items_sum != total_cents:
            difference = total_cents - items_sum
            raise ValidationFailedError(
                f"Payment items total {items_sum} cents but the activity total is {total_cents} cents",
                code="SUM_MISMATCH",
                difference=difference
            )

    @staticmethod
    def _resolve_template_items(
        template_items: List[TemplateItemResponse],
        total_cents: int,
        booking_date: date,
        departure_date: date
    ) -> List[ExpectedPaymentItemCreate]:
        resolved = []
        for template_item in sorted(template_items, key=lambda i: i.sequence_order):
            amount = template_item.amount_spec()
            if isinstance(amount, PercentageAmount):
                amount_cents = percentage_of_cents(total_cents, amount.percentage)
            else:
                amount_cents = amount.amount_cents

            timing = template_item.timing_spec()
            if isinstance(timing, DaysFromBooking):
                due_date = resolve_relative_date(booking_date, timing.days, "after")
            else:
                due_date = resolve_relative_date(departure_date, timing.days, "before")

            resolved.append(ExpectedPaymentItemCreate(
                payment_name=template_item.payment_name,
                expected_amount_cents=amount_cents,
                due_date=due_date,
                sequence_order=template_item.sequence_order
            ))
        return resolved

    @staticmethod
    def _build_item(item: ExpectedPaymentItemCreate, agency_id: str) -> ExpectedPaymentItem:
        return ExpectedPaymentItem(
            agency_id=agency_id,
            payment_name=item.payment_name,
            expected_amount_cents=item.expected_amount_cents,
            due_date=item.due_date,
            sequence_order=item.sequence_order,
            status=ExpectedPaymentStatus.PENDING.value,
            paid_amount_cents=0,
            is_locked=False
        )

    @staticmethod
    def _build_guarantee(data: CreditCardGuaranteeCreate) -> CreditCardGuarantee:
        return CreditCardGuarantee(
            card_holder_name=data.card_holder_name,
            card_last4=data.card_last4,
            authorization_code=data.authorization_code,
            authorization_date=data.authorization_date,
            authorization_amount_cents=data.authorization_amount_cents
        )

    @staticmethod
    def _snapshot(schedule: PaymentScheduleResponse) -> Dict[str, Any]:
        return schedule.model_dump(
            mode="json",
            exclude={
                "created_at": True,
                "updated_at": True,
                "credit_card_guarantee": {"created_at", "updated_at"},
                "expected_payment_items": {"__all__": {"created_at", "updated_at"}},
            }
        )

    @staticmethod
    def _item_snapshot(item: ExpectedPaymentItemResponse) -> Dict[str, Any]:
        return item.model_dump(mode="json", exclude={"created_at", "updated_at"})
