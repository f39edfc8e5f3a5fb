"""
Ledger of payments, refunds and adjustments against expected payment items.

Every write recomputes the item's cached paid amount and status inside the
same database transaction as the write itself.
"""

import logging
from datetime import date, datetime, timezone
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from travel_backoffice.audit.schemas import AuditEntityType
from travel_backoffice.audit.service import PaymentAuditService
from travel_backoffice.database import atomic
from travel_backoffice.enums import TransactionType
from travel_backoffice.exceptions import NotFoundError, ValidationFailedError
from travel_backoffice.models import ExpectedPaymentItem, PaymentTransaction
from travel_backoffice.payment_schedules.calculations import derive_payment_status, net_paid_cents
from travel_backoffice.payment_schedules.schemas import (
    ExpectedPaymentItemResponse, ItemPaymentSummary, PaymentTransactionCreate,
    PaymentTransactionListResponse, PaymentTransactionResponse
)

logger = logging.getLogger(__name__)


class ParentInfo(NamedTuple):
    agency_id: Optional[str]
    currency: Optional[str]


class PaymentTransactionService:
    """Service for recording money movements and keeping item caches in sync"""

    def __init__(self, db: Session, audit_service: Optional[PaymentAuditService] = None):
        self.db = db
        self.audit_service = audit_service or PaymentAuditService(db)

    def create_transaction(
        self,
        data: PaymentTransactionCreate,
        actor: str = "system",
        agency_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> PaymentTransactionResponse:
        """Insert a transaction and resync its item in one atomic step"""
        item = self._get_item_or_raise(data.expected_payment_item_id, agency_id)

        if data.amount_cents < 0:
            raise ValidationFailedError(
                "Transaction amount cannot be negative; use a refund instead",
                code="NEGATIVE_AMOUNT"
            )

        parent = self._get_parent_info(item)
        if not parent.agency_id:
            raise ValidationFailedError(
                f"Cannot determine the agency of payment item {item.id}",
                code="AGENCY_UNKNOWN"
            )
        if parent.currency and data.currency != parent.currency:
            raise ValidationFailedError(
                f"Transaction currency {data.currency} does not match the activity currency {parent.currency}",
                code="CURRENCY_MISMATCH",
                expectedCurrency=parent.currency,
                currency=data.currency
            )

        old_status = item.status
        was_locked = item.is_locked
        locks_item = data.transaction_type == TransactionType.PAYMENT and not was_locked

        with atomic(self.db):
            transaction = PaymentTransaction(
                expected_payment_item_id=item.id,
                agency_id=parent.agency_id,
                transaction_type=data.transaction_type.value,
                amount_cents=data.amount_cents,
                currency=data.currency,
                payment_method=data.payment_method.value if data.payment_method else None,
                reference_number=data.reference_number,
                transaction_date=data.transaction_date,
                notes=data.notes,
                created_by=actor
            )
            self.db.add(transaction)
            self.db.flush()

            self._sync_item(item, today)

            if locks_item:
                item.is_locked = True
                item.locked_at = datetime.now(timezone.utc)
                item.locked_by = actor

        result = PaymentTransactionResponse.model_validate(transaction)
        new_status = item.status

        self.audit_service.log_created(
            AuditEntityType.TRANSACTION, result.id, parent.agency_id, actor,
            result.model_dump(mode="json", exclude={"created_at"})
        )
        if new_status != old_status:
            self.audit_service.log_status_changed(
                AuditEntityType.ITEM, item.id, parent.agency_id, actor, old_status, new_status
            )
        if locks_item:
            self.audit_service.log_locked(item.id, parent.agency_id, actor)

        logger.info(
            "Recorded %s of %d %s against payment item %s",
            result.transaction_type.value, result.amount_cents, result.currency, result.expected_payment_item_id
        )
        return result

    def delete_transaction(
        self,
        transaction_id: str,
        actor: str = "system",
        agency_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> None:
        """Delete a transaction and recompute its former item"""
        transaction = self.db.get(PaymentTransaction, transaction_id)
        if not transaction or (agency_id and transaction.agency_id != agency_id):
            raise NotFoundError(f"Payment transaction {transaction_id} not found")

        snapshot = PaymentTransactionResponse.model_validate(transaction).model_dump(
            mode="json", exclude={"created_at"}
        )
        item_id = transaction.expected_payment_item_id
        owner_agency_id = transaction.agency_id

        item = self.db.get(ExpectedPaymentItem, item_id)
        old_status = item.status if item else None

        with atomic(self.db):
            self.db.delete(transaction)
            self.db.flush()
            if item:
                self._sync_item(item, today)

        self.audit_service.log_deleted(
            AuditEntityType.TRANSACTION, transaction_id, owner_agency_id, actor, snapshot
        )
        if item and item.status != old_status:
            self.audit_service.log_status_changed(
                AuditEntityType.ITEM, item_id, owner_agency_id, actor, old_status, item.status
            )
        logger.info("Deleted payment transaction %s from payment item %s", transaction_id, item_id)

    def list_transactions(
        self,
        item_id: str,
        agency_id: Optional[str] = None
    ) -> PaymentTransactionListResponse:
        """Transactions of one item in date order, with the item's payment summary"""
        item = self._get_item_or_raise(item_id, agency_id)
        transactions = self.db.query(PaymentTransaction).filter(
            PaymentTransaction.expected_payment_item_id == item.id
        ).order_by(
            PaymentTransaction.transaction_date, PaymentTransaction.created_at
        ).all()

        return PaymentTransactionListResponse(
            transactions=[PaymentTransactionResponse.model_validate(t) for t in transactions],
            expected_payment_item=ItemPaymentSummary.model_validate(item)
        )

    def sync_paid_amount(self, item_id: str, today: Optional[date] = None) -> ExpectedPaymentItemResponse:
        """Recompute an item's cache from its full transaction set"""
        item = self.db.get(ExpectedPaymentItem, item_id)
        if not item:
            raise NotFoundError(f"Expected payment item {item_id} not found")

        with atomic(self.db):
            self._sync_item(item, today)
        return ExpectedPaymentItemResponse.model_validate(item)

    # Helpers
    def _sync_item(self, item: ExpectedPaymentItem, today: Optional[date] = None) -> None:
        """Write paid amount and status; runs inside the caller's transaction"""
        transactions = self.db.query(PaymentTransaction).filter(
            PaymentTransaction.expected_payment_item_id == item.id
        ).all()

        paid_cents = net_paid_cents(transactions)
        status = derive_payment_status(paid_cents, item.expected_amount_cents, item.due_date, today)

        item.paid_amount_cents = paid_cents
        item.status = status.value

    def _get_item_or_raise(self, item_id: str, agency_id: Optional[str]) -> ExpectedPaymentItem:
        item = self.db.get(ExpectedPaymentItem, item_id)
        if not item or (agency_id and item.agency_id != agency_id):
            raise NotFoundError(f"Expected payment item {item_id} not found")
        return item

    @staticmethod
    def _get_parent_info(item: ExpectedPaymentItem) -> ParentInfo:
        """Walk item -> config -> activity pricing; a broken link leaves the agency unknown"""
        config = item.config
        if not config:
            logger.warning("Payment item %s has no schedule config", item.id)
            return ParentInfo(agency_id=None, currency=None)

        pricing = config.activity_pricing
        if not pricing:
            logger.warning("Payment schedule %s has no activity pricing", config.id)
            return ParentInfo(agency_id=None, currency=None)

        if not pricing.agency_id:
            logger.warning("Activity pricing %s has no agency", pricing.id)
        return ParentInfo(agency_id=pricing.agency_id, currency=pricing.currency)
