from pydantic import BaseModel, Field
from typing import List, Optional, Union, Literal
from datetime import datetime
from decimal import Decimal

from travel_backoffice.enums import ScheduleType

# Resolved item variants
class PercentageAmount(BaseModel):
    kind: Literal["percentage"] = "percentage"
    percentage: Decimal

class FixedAmount(BaseModel):
    kind: Literal["fixed"] = "fixed"
    amount_cents: int

class DaysFromBooking(BaseModel):
    kind: Literal["from_booking"] = "from_booking"
    days: int

class DaysBeforeDeparture(BaseModel):
    kind: Literal["before_departure"] = "before_departure"
    days: int

AmountSpec = Union[PercentageAmount, FixedAmount]
TimingSpec = Union[DaysFromBooking, DaysBeforeDeparture]

class TemplateItemFields(BaseModel):
    """Template item as stored: one amount field and one timing field are set"""
    sequence_order: int
    payment_name: str = Field(..., min_length=1, max_length=255)
    percentage: Optional[Decimal] = None
    fixed_amount_cents: Optional[int] = None
    days_from_booking: Optional[int] = None
    days_before_departure: Optional[int] = None

    def amount_spec(self) -> AmountSpec:
        if self.percentage is not None:
            return PercentageAmount(percentage=self.percentage)
        if self.fixed_amount_cents is not None:
            return FixedAmount(amount_cents=self.fixed_amount_cents)
        raise ValueError(f"Template item '{self.payment_name}' has no amount")

    def timing_spec(self) -> TimingSpec:
        if self.days_from_booking is not None:
            return DaysFromBooking(days=self.days_from_booking)
        if self.days_before_departure is not None:
            return DaysBeforeDeparture(days=self.days_before_departure)
        raise ValueError(f"Template item '{self.payment_name}' has no timing")

class TemplateItemCreate(TemplateItemFields):
    pass

class TemplateItemResponse(TemplateItemFields):
    id: str
    template_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Templates
class TemplateCreate(BaseModel):
    """New agency payment template"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    schedule_type: ScheduleType
    is_default: bool = False
    items: List[TemplateItemCreate]

class TemplateUpdate(BaseModel):
    """Template changes; supplying items replaces them and bumps the version"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    schedule_type: Optional[ScheduleType] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
    items: Optional[List[TemplateItemCreate]] = None

class TemplateResponse(BaseModel):
    id: str
    agency_id: str
    name: str
    description: Optional[str] = None
    schedule_type: ScheduleType
    is_default: bool
    is_active: bool
    version: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[TemplateItemResponse] = []

    class Config:
        from_attributes = True
