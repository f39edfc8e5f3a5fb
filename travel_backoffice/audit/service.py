"""
Append-only audit trail for payment schedule changes.

Entries are written after the business mutation has committed, in their own
commit. A failed write is logged and swallowed: the audit trail never rolls
back or fails the operation that produced it.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from travel_backoffice.audit.schemas import (
    AuditAction, AuditContext, AuditEntityType, AuditLogEntry, AuditLogEntryCreate,
    AuditLogFilter
)
from travel_backoffice.models import PaymentScheduleAuditLog

logger = logging.getLogger(__name__)


class PaymentAuditService:
    """Writes and queries the payment schedule audit log"""

    def __init__(self, db: Session, context: Optional[AuditContext] = None):
        self.db = db
        self.context = context or AuditContext()

    def log(self, entry: AuditLogEntryCreate) -> None:
        """Append one entry. Never raises."""
        try:
            self.db.add(PaymentScheduleAuditLog(
                entity_type=entry.entity_type.value,
                entity_id=entry.entity_id,
                agency_id=entry.agency_id,
                action=entry.action.value,
                old_values=entry.old_values,
                new_values=entry.new_values,
                performed_by=entry.performed_by,
                performed_at=datetime.now(timezone.utc),
                ip_address=entry.ip_address or self.context.ip_address,
                user_agent=entry.user_agent or self.context.user_agent
            ))
            self.db.commit()
            logger.debug(
                "Audit log: %s on %s:%s by %s",
                entry.action.value, entry.entity_type.value, entry.entity_id, entry.performed_by
            )
        except Exception:
            self.db.rollback()
            logger.exception(
                "Failed to write audit log entry for %s:%s", entry.entity_type.value, entry.entity_id
            )

    def log_created(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
        agency_id: str,
        performed_by: str,
        new_values: Dict[str, Any]
    ) -> None:
        self.log(AuditLogEntryCreate(
            entity_type=entity_type,
            entity_id=entity_id,
            agency_id=agency_id,
            action=AuditAction.CREATED,
            new_values=new_values,
            performed_by=performed_by
        ))

    def log_updated(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
        agency_id: str,
        performed_by: str,
        old_values: Dict[str, Any],
        new_values: Dict[str, Any]
    ) -> None:
        self.log(AuditLogEntryCreate(
            entity_type=entity_type,
            entity_id=entity_id,
            agency_id=agency_id,
            action=AuditAction.UPDATED,
            old_values=old_values,
            new_values=new_values,
            performed_by=performed_by
        ))

    def log_deleted(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
        agency_id: str,
        performed_by: str,
        old_values: Dict[str, Any]
    ) -> None:
        self.log(AuditLogEntryCreate(
            entity_type=entity_type,
            entity_id=entity_id,
            agency_id=agency_id,
            action=AuditAction.DELETED,
            old_values=old_values,
            performed_by=performed_by
        ))

    def log_status_changed(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
        agency_id: str,
        performed_by: str,
        old_status: str,
        new_status: str
    ) -> None:
        self.log(AuditLogEntryCreate(
            entity_type=entity_type,
            entity_id=entity_id,
            agency_id=agency_id,
            action=AuditAction.STATUS_CHANGED,
            old_values={"status": old_status},
            new_values={"status": new_status},
            performed_by=performed_by
        ))

    def log_locked(self, item_id: str, agency_id: str, performed_by: str) -> None:
        self.log(AuditLogEntryCreate(
            entity_type=AuditEntityType.ITEM,
            entity_id=item_id,
            agency_id=agency_id,
            action=AuditAction.LOCKED,
            old_values={"is_locked": False},
            new_values={
                "is_locked": True,
                "locked_at": datetime.now(timezone.utc).isoformat(),
                "locked_by": performed_by
            },
            performed_by=performed_by
        ))

    def log_unlocked(self, item_id: str, agency_id: str, performed_by: str, reason: str) -> None:
        self.log(AuditLogEntryCreate(
            entity_type=AuditEntityType.ITEM,
            entity_id=item_id,
            agency_id=agency_id,
            action=AuditAction.UNLOCKED,
            old_values={"is_locked": True},
            new_values={"is_locked": False, "unlock_reason": reason},
            performed_by=performed_by
        ))

    def log_template_applied(
        self,
        config_id: str,
        agency_id: str,
        performed_by: str,
        template_id: str,
        template_version: int
    ) -> None:
        self.log(AuditLogEntryCreate(
            entity_type=AuditEntityType.CONFIG,
            entity_id=config_id,
            agency_id=agency_id,
            action=AuditAction.TEMPLATE_APPLIED,
            new_values={"template_id": template_id, "template_version": template_version},
            performed_by=performed_by
        ))

    def get_audit_log(
        self,
        agency_id: str,
        filters: Optional[AuditLogFilter] = None
    ) -> List[AuditLogEntry]:
        """Read entries for one agency, newest first"""
        filters = filters or AuditLogFilter()
        query = self.db.query(PaymentScheduleAuditLog).filter(
            PaymentScheduleAuditLog.agency_id == agency_id
        )

        if filters.entity_type:
            query = query.filter(PaymentScheduleAuditLog.entity_type == filters.entity_type.value)
        if filters.entity_id:
            query = query.filter(PaymentScheduleAuditLog.entity_id == filters.entity_id)
        if filters.action:
            query = query.filter(PaymentScheduleAuditLog.action == filters.action.value)
        if filters.date_from:
            query = query.filter(PaymentScheduleAuditLog.performed_at >= filters.date_from)
        if filters.date_to:
            query = query.filter(PaymentScheduleAuditLog.performed_at <= filters.date_to)

        rows = query.order_by(
            desc(PaymentScheduleAuditLog.performed_at)
        ).offset(filters.offset).limit(filters.limit).all()

        return [AuditLogEntry.model_validate(row) for row in rows]

    def get_entity_audit_log(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
        agency_id: str
    ) -> List[AuditLogEntry]:
        return self.get_audit_log(
            agency_id,
            AuditLogFilter(entity_type=entity_type, entity_id=entity_id)
        )
