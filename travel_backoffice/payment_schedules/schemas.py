from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal

from travel_backoffice.enums import (
    ScheduleType, DepositType, ExpectedPaymentStatus, TransactionType, PaymentMethod
)

# Expected Payment Items
class ExpectedPaymentItemCreate(BaseModel):
    """One expected installment supplied by the caller or resolved from a template"""
    payment_name: str = Field(..., min_length=1, max_length=255)
    expected_amount_cents: int
    due_date: Optional[date] = None
    sequence_order: int = 0

class ExpectedPaymentItemUpdate(BaseModel):
    """Partial update of a single expected payment item"""
    payment_name: Optional[str] = Field(None, min_length=1, max_length=255)
    expected_amount_cents: Optional[int] = None
    due_date: Optional[date] = None
    sequence_order: Optional[int] = None
    status: Optional[ExpectedPaymentStatus] = None

class ExpectedPaymentItemResponse(BaseModel):
    """Stored expected payment item"""
    id: str
    payment_schedule_config_id: str
    agency_id: str
    payment_name: str
    expected_amount_cents: int
    due_date: Optional[date] = None
    sequence_order: int
    status: ExpectedPaymentStatus
    paid_amount_cents: int
    is_locked: bool
    locked_at: Optional[datetime] = None
    locked_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UnlockItemRequest(BaseModel):
    reason: str

# Credit Card Guarantee
class CreditCardGuaranteeCreate(BaseModel):
    """Card authorization held against a guarantee schedule"""
    card_holder_name: str = Field(..., min_length=1, max_length=255)
    card_last4: str
    authorization_code: str = Field(..., min_length=1, max_length=50)
    authorization_date: datetime
    authorization_amount_cents: int

    @validator('card_last4')
    def validate_card_last4(cls, v):
        if len(v) != 4 or not v.isdigit():
            raise ValueError('card_last4 must be exactly 4 digits')
        return v

    @validator('authorization_amount_cents')
    def validate_authorization_amount(cls, v):
        if v <= 0:
            raise ValueError('authorization_amount_cents must be positive')
        return v

class CreditCardGuaranteeUpdate(BaseModel):
    card_holder_name: Optional[str] = Field(None, min_length=1, max_length=255)
    card_last4: Optional[str] = None
    authorization_code: Optional[str] = Field(None, min_length=1, max_length=50)
    authorization_date: Optional[datetime] = None
    authorization_amount_cents: Optional[int] = None

    @validator('card_last4')
    def validate_card_last4(cls, v):
        if v is not None and (len(v) != 4 or not v.isdigit()):
            raise ValueError('card_last4 must be exactly 4 digits')
        return v

    @validator('authorization_amount_cents')
    def validate_authorization_amount(cls, v):
        if v is not None and v <= 0:
            raise ValueError('authorization_amount_cents must be positive')
        return v

class CreditCardGuaranteeResponse(BaseModel):
    id: str
    payment_schedule_config_id: str
    card_holder_name: str
    card_last4: str
    authorization_code: str
    authorization_date: datetime
    authorization_amount_cents: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Payment Schedule Config
class PaymentScheduleCreate(BaseModel):
    """Create the payment schedule of one priced activity"""
    activity_pricing_id: str
    schedule_type: ScheduleType
    allow_partial_payments: bool = False
    deposit_type: Optional[DepositType] = None
    deposit_percentage: Optional[Decimal] = None
    deposit_amount_cents: Optional[int] = None
    expected_payment_items: Optional[List[ExpectedPaymentItemCreate]] = None
    credit_card_guarantee: Optional[CreditCardGuaranteeCreate] = None

class PaymentScheduleUpdate(BaseModel):
    """Partial update; supplying expected_payment_items replaces all items"""
    schedule_type: Optional[ScheduleType] = None
    allow_partial_payments: Optional[bool] = None
    deposit_type: Optional[DepositType] = None
    deposit_percentage: Optional[Decimal] = None
    deposit_amount_cents: Optional[int] = None
    expected_payment_items: Optional[List[ExpectedPaymentItemCreate]] = None
    credit_card_guarantee: Optional[CreditCardGuaranteeUpdate] = None

class PaymentScheduleResponse(BaseModel):
    """Payment schedule with its items and optional card guarantee"""
    id: str
    activity_pricing_id: str
    schedule_type: ScheduleType
    allow_partial_payments: bool
    deposit_type: Optional[DepositType] = None
    deposit_percentage: Optional[Decimal] = None
    deposit_amount_cents: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    expected_payment_items: List[ExpectedPaymentItemResponse] = []
    credit_card_guarantee: Optional[CreditCardGuaranteeResponse] = None

    class Config:
        from_attributes = True

# Schedule validation
class ScheduleValidationIssue(BaseModel):
    """A compliance error or warning; rule-specific details ride along as extra fields"""
    code: str
    message: str

    class Config:
        extra = "allow"

class ScheduleValidationResult(BaseModel):
    is_valid: bool
    errors: List[ScheduleValidationIssue] = []
    warnings: List[ScheduleValidationIssue] = []

class ScheduleValidationRequest(BaseModel):
    """Dry-run compliance check of a candidate schedule"""
    items: List[ExpectedPaymentItemCreate]
    total_cents: int = Field(..., ge=0)
    departure_date: date
    booking_date: Optional[date] = None

# Template application
class ApplyTemplateRequest(BaseModel):
    template_id: str
    departure_date: date
    booking_date: Optional[date] = None
    total_amount_cents: Optional[int] = Field(None, ge=0)

class ApplyTemplateResponse(BaseModel):
    """Schedule produced by applying a template, with any compliance warnings"""
    config: PaymentScheduleResponse
    template_id: str
    template_version: int
    warnings: List[ScheduleValidationIssue] = []

# Deposits
class DepositCalculationRequest(BaseModel):
    total_price_cents: int = Field(..., ge=0)
    deposit_type: DepositType
    deposit_value: Decimal = Field(..., ge=0)
    deposit_due_date: Optional[date] = None
    final_due_date: Optional[date] = None

class DepositCalculation(BaseModel):
    deposit_amount_cents: int
    remaining_amount_cents: int
    total_amount_cents: int

class DepositScheduleResponse(BaseModel):
    calculation: DepositCalculation
    items: List[ExpectedPaymentItemCreate]

# Payment Transactions
class PaymentTransactionCreate(BaseModel):
    """Record a payment, refund or adjustment against an expected item"""
    expected_payment_item_id: str
    transaction_type: TransactionType
    amount_cents: int
    currency: str = Field(..., min_length=3, max_length=3)
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    transaction_date: datetime
    notes: Optional[str] = None

    @validator('currency')
    def normalize_currency(cls, v):
        return v.upper()

class PaymentTransactionResponse(BaseModel):
    id: str
    expected_payment_item_id: str
    agency_id: str
    transaction_type: TransactionType
    amount_cents: int
    currency: str
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = None
    transaction_date: datetime
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ItemPaymentSummary(BaseModel):
    """Cached payment state of one expected item"""
    id: str
    payment_name: str
    expected_amount_cents: int
    paid_amount_cents: int
    status: ExpectedPaymentStatus

    class Config:
        from_attributes = True

class PaymentTransactionListResponse(BaseModel):
    transactions: List[PaymentTransactionResponse]
    expected_payment_item: ItemPaymentSummary
