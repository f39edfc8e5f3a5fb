"""
Payment Schedule Templates

Agency-scoped blueprints for payment schedules. A template holds an ordered
list of items, each with a percentage or fixed amount and a due date relative
to either the booking date or the departure date.

Key Components:
- validation.py: Structural checks on template item sets
- service.py: Template CRUD with single-default and versioning rules
- router.py: FastAPI endpoints for templates and the audit log
- schemas.py: Pydantic models, including the resolved amount/timing variants

Rules:
- At most one active default template per agency
- Replacing items increments the template version
- Templates are never hard-deleted; deletion deactivates them
"""

from .router import router, audit_router
from .service import PaymentTemplateService
from .validation import validate_template_items
from .schemas import (
    TemplateCreate, TemplateUpdate, TemplateResponse, TemplateItemCreate, TemplateItemResponse,
    PercentageAmount, FixedAmount, DaysFromBooking, DaysBeforeDeparture
)

__all__ = [
    "router",
    "audit_router",
    "PaymentTemplateService",
    "validate_template_items",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "TemplateItemCreate",
    "TemplateItemResponse",
    "PercentageAmount",
    "FixedAmount",
    "DaysFromBooking",
    "DaysBeforeDeparture",
]
