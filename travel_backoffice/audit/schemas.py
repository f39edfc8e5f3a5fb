from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

class AuditEntityType(str, Enum):
    """Entities whose changes are recorded"""
    TEMPLATE = "template"
    CONFIG = "config"
    ITEM = "item"
    TRANSACTION = "transaction"

class AuditAction(str, Enum):
    """Audit action enumeration"""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STATUS_CHANGED = "status_changed"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    TEMPLATE_APPLIED = "template_applied"

class AuditContext(BaseModel):
    """Request metadata attached to audit entries"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

class AuditLogEntryCreate(BaseModel):
    """Input for a new audit log entry"""
    entity_type: AuditEntityType
    entity_id: str
    agency_id: str
    action: AuditAction
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    performed_by: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

class AuditLogEntry(BaseModel):
    """Stored audit log entry"""
    id: str
    entity_type: AuditEntityType
    entity_id: str
    agency_id: str
    action: AuditAction
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    performed_by: str
    performed_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    class Config:
        from_attributes = True

class AuditLogFilter(BaseModel):
    """Audit log filtering options"""
    entity_type: Optional[AuditEntityType] = None
    entity_id: Optional[str] = None
    action: Optional[AuditAction] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: int = Field(50, ge=1, le=1000)
    offset: int = Field(0, ge=0)
