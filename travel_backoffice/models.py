import uuid

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, JSON,
    CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from travel_backoffice.config import settings
from travel_backoffice.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())

# ================================
# Trips / Itineraries / Activities
# ================================
class Trip(Base):
    __tablename__ = "trips"

    id = Column(String(36), primary_key=True, default=_uuid)
    agency_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    itineraries = relationship("Itinerary", back_populates="trip", cascade="all, delete-orphan")

class Itinerary(Base):
    __tablename__ = "itineraries"

    id = Column(String(36), primary_key=True, default=_uuid)
    trip_id = Column(String(36), ForeignKey("trips.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    trip = relationship("Trip", back_populates="itineraries")
    days = relationship("ItineraryDay", back_populates="itinerary", cascade="all, delete-orphan")

class ItineraryDay(Base):
    __tablename__ = "itinerary_days"

    id = Column(String(36), primary_key=True, default=_uuid)
    itinerary_id = Column(String(36), ForeignKey("itineraries.id"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    date = Column(Date)

    # Relationships
    itinerary = relationship("Itinerary", back_populates="days")
    activities = relationship("ItineraryActivity", back_populates="day", cascade="all, delete-orphan")

class ItineraryActivity(Base):
    __tablename__ = "itinerary_activities"

    id = Column(String(36), primary_key=True, default=_uuid)
    itinerary_day_id = Column(String(36), ForeignKey("itinerary_days.id"), nullable=False, index=True)
    agency_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    activity_type = Column(String(50), nullable=False)  # flight, lodging, dining, cruise, package, tour...
    sequence_order = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    day = relationship("ItineraryDay", back_populates="activities")
    pricing = relationship("ActivityPricing", back_populates="activity", uselist=False)

class ActivityPricing(Base):
    __tablename__ = "activity_pricing"

    id = Column(String(36), primary_key=True, default=_uuid)
    activity_id = Column(String(36), ForeignKey("itinerary_activities.id"), unique=True, index=True)
    agency_id = Column(String(36), nullable=False, index=True)
    total_price_cents = Column(Integer)
    currency = Column(String(3), nullable=False, default=settings.DEFAULT_CURRENCY)
    commission_total_cents = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    activity = relationship("ItineraryActivity", back_populates="pricing")
    payment_schedule = relationship("PaymentScheduleConfig", back_populates="activity_pricing", uselist=False)

# ================================
# Payment Schedule Templates
# ================================
class PaymentScheduleTemplate(Base):
    __tablename__ = "payment_schedule_templates"

    id = Column(String(36), primary_key=True, default=_uuid)
    agency_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    schedule_type = Column(String(20), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    version = Column(Integer, default=1, nullable=False)
    created_by = Column(String(36))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    items = relationship(
        "PaymentScheduleTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="PaymentScheduleTemplateItem.sequence_order"
    )

class PaymentScheduleTemplateItem(Base):
    __tablename__ = "payment_schedule_template_items"
    __table_args__ = (
        CheckConstraint(
            "(percentage IS NULL) <> (fixed_amount_cents IS NULL)",
            name="ck_template_item_one_amount"
        ),
        CheckConstraint(
            "(days_from_booking IS NULL) <> (days_before_departure IS NULL)",
            name="ck_template_item_one_timing"
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    template_id = Column(String(36), ForeignKey("payment_schedule_templates.id"), nullable=False, index=True)
    sequence_order = Column(Integer, nullable=False)
    payment_name = Column(String(255), nullable=False)
    percentage = Column(Numeric(5, 2))
    fixed_amount_cents = Column(Integer)
    days_from_booking = Column(Integer)
    days_before_departure = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    template = relationship("PaymentScheduleTemplate", back_populates="items")

# ================================
# Concrete Payment Schedules
# ================================
class PaymentScheduleConfig(Base):
    __tablename__ = "payment_schedule_config"

    id = Column(String(36), primary_key=True, default=_uuid)
    activity_pricing_id = Column(String(36), ForeignKey("activity_pricing.id"), nullable=False, unique=True, index=True)
    schedule_type = Column(String(20), nullable=False)
    allow_partial_payments = Column(Boolean, default=False, nullable=False)
    deposit_type = Column(String(20))
    deposit_percentage = Column(Numeric(5, 2))
    deposit_amount_cents = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    activity_pricing = relationship("ActivityPricing", back_populates="payment_schedule")
    expected_payment_items = relationship(
        "ExpectedPaymentItem",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="ExpectedPaymentItem.sequence_order"
    )
    credit_card_guarantee = relationship(
        "CreditCardGuarantee",
        back_populates="config",
        uselist=False,
        cascade="all, delete-orphan"
    )

class ExpectedPaymentItem(Base):
    __tablename__ = "expected_payment_items"
    __table_args__ = (
        CheckConstraint("expected_amount_cents >= 0", name="ck_expected_amount_non_negative"),
        CheckConstraint("paid_amount_cents >= 0", name="ck_paid_amount_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    payment_schedule_config_id = Column(String(36), ForeignKey("payment_schedule_config.id"), nullable=False, index=True)
    agency_id = Column(String(36), nullable=False, index=True)
    payment_name = Column(String(255), nullable=False)
    expected_amount_cents = Column(Integer, nullable=False)
    due_date = Column(Date)
    sequence_order = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    paid_amount_cents = Column(Integer, nullable=False, default=0)
    is_locked = Column(Boolean, nullable=False, default=False)
    locked_at = Column(DateTime(timezone=True))
    locked_by = Column(String(36))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    config = relationship("PaymentScheduleConfig", back_populates="expected_payment_items")
    transactions = relationship(
        "PaymentTransaction",
        back_populates="expected_payment_item",
        cascade="all, delete-orphan"
    )

class CreditCardGuarantee(Base):
    __tablename__ = "credit_card_guarantee"

    id = Column(String(36), primary_key=True, default=_uuid)
    payment_schedule_config_id = Column(String(36), ForeignKey("payment_schedule_config.id"), nullable=False, unique=True)
    card_holder_name = Column(String(255), nullable=False)
    card_last4 = Column(String(4), nullable=False)
    authorization_code = Column(String(50), nullable=False)
    authorization_date = Column(DateTime(timezone=True), nullable=False)
    authorization_amount_cents = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    config = relationship("PaymentScheduleConfig", back_populates="credit_card_guarantee")

# ================================
# Payment Transactions
# ================================
class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"
    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_transaction_amount_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    expected_payment_item_id = Column(String(36), ForeignKey("expected_payment_items.id"), nullable=False, index=True)
    agency_id = Column(String(36), nullable=False, index=True)
    transaction_type = Column(String(20), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    payment_method = Column(String(30))
    reference_number = Column(String(100))
    transaction_date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text)
    created_by = Column(String(36))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    expected_payment_item = relationship("ExpectedPaymentItem", back_populates="transactions")

# ================================
# Audit Log (append-only)
# ================================
class PaymentScheduleAuditLog(Base):
    __tablename__ = "payment_schedule_audit_log"

    id = Column(String(36), primary_key=True, default=_uuid)
    entity_type = Column(String(20), nullable=False, index=True)
    entity_id = Column(String(36), nullable=False, index=True)
    agency_id = Column(String(36), nullable=False, index=True)
    action = Column(String(30), nullable=False, index=True)
    old_values = Column(JSON)
    new_values = Column(JSON)
    performed_by = Column(String(36), nullable=False)
    performed_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    ip_address = Column(String(45))
    user_agent = Column(Text)
