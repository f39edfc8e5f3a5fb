from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime, date

from travel_backoffice.enums import (
    CommissionStatus, ExpectedPaymentStatus, PaymentMethod, TransactionType
)

class ActivityBookingStatus(BaseModel):
    """Payment rollup of one activity"""
    activity_id: str
    payment_status: Optional[ExpectedPaymentStatus] = None
    payment_paid_cents: int = 0
    payment_total_cents: int = 0
    payment_remaining_cents: int = 0
    commission_status: Optional[CommissionStatus] = None
    commission_total_cents: int = 0
    has_payment_schedule: bool = False
    next_due_date: Optional[date] = None

class BookingStatusSummary(BaseModel):
    total_activities: int = 0
    activities_with_payment_schedule: int = 0
    total_expected_cents: int = 0
    total_paid_cents: int = 0
    total_remaining_cents: int = 0
    overdue_count: int = 0
    upcoming_due_count: int = 0

class TripBookingStatusResponse(BaseModel):
    """Booking and payment status of every activity in a trip, keyed by activity id"""
    trip_id: str
    activities: Dict[str, ActivityBookingStatus] = {}
    summary: BookingStatusSummary

class TripExpectedPayment(BaseModel):
    """Expected payment item with its activity context"""
    id: str
    payment_schedule_config_id: str
    payment_name: str
    expected_amount_cents: int
    paid_amount_cents: int
    remaining_cents: int
    due_date: Optional[date] = None
    status: ExpectedPaymentStatus
    sequence_order: int
    is_locked: bool
    activity_pricing_id: str
    activity_id: str
    activity_name: str
    activity_type: str
    currency: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class TripPaymentTransaction(BaseModel):
    """Payment transaction with its item and activity context"""
    id: str
    expected_payment_item_id: str
    payment_name: str
    transaction_type: TransactionType
    amount_cents: int
    currency: str
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = None
    transaction_date: datetime
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    activity_id: str
    activity_name: str
