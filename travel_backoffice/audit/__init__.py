"""
Payment schedule audit trail.

Append-only log of template, schedule, item and transaction changes, written
best-effort after each business mutation commits.
"""

from .service import PaymentAuditService
from .schemas import (
    AuditAction, AuditContext, AuditEntityType, AuditLogEntry, AuditLogEntryCreate,
    AuditLogFilter
)

__all__ = [
    "PaymentAuditService",
    "AuditAction",
    "AuditContext",
    "AuditEntityType",
    "AuditLogEntry",
    "AuditLogEntryCreate",
    "AuditLogFilter"
]
