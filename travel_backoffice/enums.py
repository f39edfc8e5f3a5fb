from enum import Enum

class ScheduleType(str, Enum):
    """Payment schedule type enumeration"""
    FULL = "full"
    DEPOSIT = "deposit"
    INSTALLMENTS = "installments"
    GUARANTEE = "guarantee"

class DepositType(str, Enum):
    """How a deposit amount is expressed"""
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"

class ExpectedPaymentStatus(str, Enum):
    """Expected payment item status enumeration"""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"

class TransactionType(str, Enum):
    """Direction of a money movement"""
    PAYMENT = "payment"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"

class PaymentMethod(str, Enum):
    """Payment method enumeration"""
    CASH = "cash"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    STRIPE = "stripe"
    OTHER = "other"

class CommissionStatus(str, Enum):
    """Supplier commission status enumeration"""
    PENDING = "pending"
    RECEIVED = "received"
    CANCELLED = "cancelled"
