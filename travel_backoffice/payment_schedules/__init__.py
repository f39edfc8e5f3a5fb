"""
Payment Schedules & Transactions

Concrete payment plans for priced activities and the ledger of money moved
against them.

Key Components:
- calculations.py: Cent arithmetic, relative date resolution, cache status derivation
- validation.py: Compliance rules (final payment timing, minimum size, installment count)
- service.py: Schedule create/update/delete, item edits and locks, template application
- transaction_service.py: Payments, refunds and adjustments with paid-amount caching
- router.py: FastAPI endpoints for schedules and transactions
- schemas.py: Pydantic models for schedules, items, guarantees and transactions

Invariants:
- A schedule's items always sum to the activity total, to the cent
- An item's paid amount is recomputed from all of its transactions after every write
- Template application validates resolved dates before anything is persisted
"""

from .router import router, transactions_router
from .service import PaymentScheduleService
from .transaction_service import PaymentTransactionService
from .validation import validate_payment_schedule
from .calculations import (
    percentage_of_cents, resolve_relative_date, reconcile_rounding_error,
    net_paid_cents, derive_payment_status
)
from .schemas import (
    PaymentScheduleCreate, PaymentScheduleUpdate, PaymentScheduleResponse,
    ExpectedPaymentItemCreate, ExpectedPaymentItemUpdate, ExpectedPaymentItemResponse,
    CreditCardGuaranteeCreate, CreditCardGuaranteeUpdate, ApplyTemplateRequest, ApplyTemplateResponse,
    ScheduleValidationResult, PaymentTransactionCreate, PaymentTransactionResponse
)

__all__ = [
    "router",
    "transactions_router",
    "PaymentScheduleService",
    "PaymentTransactionService",
    "validate_payment_schedule",
    "percentage_of_cents",
    "resolve_relative_date",
    "reconcile_rounding_error",
    "net_paid_cents",
    "derive_payment_status",
    "PaymentScheduleCreate",
    "PaymentScheduleUpdate",
    "PaymentScheduleResponse",
    "ExpectedPaymentItemCreate",
    "ExpectedPaymentItemUpdate",
    "ExpectedPaymentItemResponse",
    "CreditCardGuaranteeCreate",
    "CreditCardGuaranteeUpdate",
    "ApplyTemplateRequest",
    "ApplyTemplateResponse",
    "ScheduleValidationResult",
    "PaymentTransactionCreate",
    "PaymentTransactionResponse",
]
