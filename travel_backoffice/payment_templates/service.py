import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from travel_backoffice.audit.schemas import AuditEntityType
from travel_backoffice.audit.service import PaymentAuditService
from travel_backoffice.database import atomic
from travel_backoffice.exceptions import NotFoundError
from travel_backoffice.models import PaymentScheduleTemplate, PaymentScheduleTemplateItem
from travel_backoffice.payment_templates.schemas import (
    TemplateCreate, TemplateUpdate, TemplateResponse, TemplateItemCreate
)
from travel_backoffice.payment_templates.validation import validate_template_items

logger = logging.getLogger(__name__)


class PaymentTemplateService:
    """Service for agency payment schedule templates"""

    def __init__(self, db: Session, audit_service: Optional[PaymentAuditService] = None):
        self.db = db
        self.audit_service = audit_service or PaymentAuditService(db)

    def list_templates(self, agency_id: str, include_inactive: bool = False) -> List[TemplateResponse]:
        """Templates of an agency, default first then most recently updated"""
        query = self.db.query(PaymentScheduleTemplate).filter(
            PaymentScheduleTemplate.agency_id == agency_id
        )
        if not include_inactive:
            query = query.filter(PaymentScheduleTemplate.is_active.is_(True))

        templates = query.order_by(
            desc(PaymentScheduleTemplate.is_default),
            desc(PaymentScheduleTemplate.updated_at),
            PaymentScheduleTemplate.name
        ).all()
        return [TemplateResponse.model_validate(t) for t in templates]

    def get_template(self, template_id: str, agency_id: str) -> Optional[TemplateResponse]:
        template = self._get_row(template_id, agency_id)
        return TemplateResponse.model_validate(template) if template else None

    def get_template_or_raise(self, template_id: str, agency_id: str) -> TemplateResponse:
        template = self.get_template(template_id, agency_id)
        if not template:
            raise NotFoundError(f"Payment template {template_id} not found")
        return template

    def get_default_template(self, agency_id: str) -> Optional[TemplateResponse]:
        template = self.db.query(PaymentScheduleTemplate).filter(
            PaymentScheduleTemplate.agency_id == agency_id,
            PaymentScheduleTemplate.is_default.is_(True),
            PaymentScheduleTemplate.is_active.is_(True)
        ).first()
        return TemplateResponse.model_validate(template) if template else None

    def create_template(self, agency_id: str, actor: str, data: TemplateCreate) -> TemplateResponse:
        """Create a template with its items in one transaction"""
        validate_template_items(data.items)

        with atomic(self.db):
            if data.is_default:
                self._clear_default(agency_id)

            template = PaymentScheduleTemplate(
                agency_id=agency_id,
                name=data.name,
                description=data.description,
                schedule_type=data.schedule_type.value,
                is_default=data.is_default,
                is_active=True,
                version=1,
                created_by=actor
            )
            template.items = self._build_items(data.items)
            self.db.add(template)

        result = TemplateResponse.model_validate(template)
        self.audit_service.log_created(
            AuditEntityType.TEMPLATE, result.id, agency_id, actor, self._snapshot(result)
        )
        logger.info("Created payment template '%s' (%s) for agency %s", result.name, result.id, agency_id)
        return result

    def update_template(
        self,
        template_id: str,
        agency_id: str,
        actor: str,
        data: TemplateUpdate
    ) -> TemplateResponse:
        """Apply metadata changes; replacing items increments the version"""
        template = self._get_row(template_id, agency_id)
        if not template:
            raise NotFoundError(f"Payment template {template_id} not found")

        if data.items is not None:
            validate_template_items(data.items)

        old_snapshot = self._snapshot(TemplateResponse.model_validate(template))
        changes = data.model_dump(exclude_unset=True, exclude={"items"})

        will_be_active = changes.get("is_active")
        if will_be_active is None:
            will_be_active = template.is_active

        with atomic(self.db):
            # Only an active template may take the default from the others
            if changes.get("is_default") and will_be_active and not template.is_default:
                self._clear_default(agency_id, exclude_id=template.id)

            for field, value in changes.items():
                if value is None and field in ("name", "schedule_type", "is_default", "is_active"):
                    continue
                if field == "schedule_type":
                    value = value.value if hasattr(value, "value") else value
                setattr(template, field, value)

            # An inactive template cannot stay the default
            if not template.is_active:
                template.is_default = False

            if data.items is not None:
                template.items = self._build_items(data.items)
                template.version = (template.version or 1) + 1

        result = TemplateResponse.model_validate(template)
        new_values = self._snapshot(result)
        if data.items is not None:
            new_values["item_count"] = len(result.items)
        self.audit_service.log_updated(
            AuditEntityType.TEMPLATE, result.id, agency_id, actor, old_snapshot, new_values
        )
        logger.info("Updated payment template %s (version %s)", result.id, result.version)
        return result

    def delete_template(self, template_id: str, agency_id: str, actor: str) -> TemplateResponse:
        """Soft delete: deactivate and drop the default flag"""
        template = self._get_row(template_id, agency_id)
        if not template:
            raise NotFoundError(f"Payment template {template_id} not found")

        old_snapshot = self._snapshot(TemplateResponse.model_validate(template))
        with atomic(self.db):
            template.is_active = False
            template.is_default = False

        result = TemplateResponse.model_validate(template)
        self.audit_service.log_deleted(AuditEntityType.TEMPLATE, result.id, agency_id, actor, old_snapshot)
        logger.info("Deactivated payment template %s", result.id)
        return result

    # Helpers
    def _get_row(self, template_id: str, agency_id: str) -> Optional[PaymentScheduleTemplate]:
        return self.db.query(PaymentScheduleTemplate).filter(
            PaymentScheduleTemplate.id == template_id,
            PaymentScheduleTemplate.agency_id == agency_id
        ).first()

    def _clear_default(self, agency_id: str, exclude_id: Optional[str] = None) -> None:
        query = self.db.query(PaymentScheduleTemplate).filter(
            PaymentScheduleTemplate.agency_id == agency_id,
            PaymentScheduleTemplate.is_default.is_(True)
        )
        if exclude_id:
            query = query.filter(PaymentScheduleTemplate.id != exclude_id)
        for other in query.all():
            other.is_default = False

    @staticmethod
    def _build_items(items: List[TemplateItemCreate]) -> List[PaymentScheduleTemplateItem]:
        return [
            PaymentScheduleTemplateItem(
                sequence_order=item.sequence_order,
                payment_name=item.payment_name,
                percentage=item.percentage,
                fixed_amount_cents=item.fixed_amount_cents,
                days_from_booking=item.days_from_booking,
                days_before_departure=item.days_before_departure
            )
            for item in items
        ]

    @staticmethod
    def _snapshot(template: TemplateResponse) -> Dict[str, Any]:
        return template.model_dump(mode="json", exclude={"created_at", "updated_at"})
