from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from travel_backoffice.database import get_db
from travel_backoffice.dependencies import (
    RequestContext, get_request_context, get_audit_service, http_error
)
from travel_backoffice.exceptions import PaymentScheduleError
from travel_backoffice.audit.schemas import AuditAction, AuditEntityType, AuditLogEntry, AuditLogFilter
from travel_backoffice.audit.service import PaymentAuditService
from travel_backoffice.payment_templates.schemas import TemplateCreate, TemplateUpdate, TemplateResponse
from travel_backoffice.payment_templates.service import PaymentTemplateService

router = APIRouter()
audit_router = APIRouter()

@router.get("", response_model=List[TemplateResponse])
def list_templates(
    include_inactive: bool = Query(False, description="Include soft-deleted templates"),
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """List the agency's payment templates"""
    service = PaymentTemplateService(db)
    return service.list_templates(context.agency_id, include_inactive=include_inactive)

@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(
    data: TemplateCreate,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Create a payment template"""
    service = PaymentTemplateService(db, audit_service)
    try:
        return service.create_template(context.agency_id, context.user_id, data)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.get("/default", response_model=TemplateResponse)
def get_default_template(
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Get the agency's default template"""
    template = PaymentTemplateService(db).get_default_template(context.agency_id)
    if not template:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": "No default payment template"}
        )
    return template

@router.get("/{template_id}", response_model=TemplateResponse)
def get_template(
    template_id: str,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    try:
        return PaymentTemplateService(db).get_template_or_raise(template_id, context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.patch("/{template_id}", response_model=TemplateResponse)
def update_template(
    template_id: str,
    data: TemplateUpdate,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Update a template; new items bump its version"""
    service = PaymentTemplateService(db, audit_service)
    try:
        return service.update_template(template_id, context.agency_id, context.user_id, data)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.delete("/{template_id}", response_model=TemplateResponse)
def delete_template(
    template_id: str,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Soft-delete a template"""
    service = PaymentTemplateService(db, audit_service)
    try:
        return service.delete_template(template_id, context.agency_id, context.user_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.get("/{template_id}/audit-log", response_model=List[AuditLogEntry])
def get_template_audit_log(
    template_id: str,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Audit history of one template"""
    return PaymentAuditService(db).get_entity_audit_log(
        AuditEntityType.TEMPLATE, template_id, context.agency_id
    )

# Agency-wide audit log
@audit_router.get("", response_model=List[AuditLogEntry])
def get_audit_log(
    entity_type: Optional[AuditEntityType] = Query(None),
    entity_id: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Search the payment schedule audit log, newest first"""
    filters = AuditLogFilter(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset
    )
    return PaymentAuditService(db).get_audit_log(context.agency_id, filters)
