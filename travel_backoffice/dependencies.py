from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import Optional

from travel_backoffice.audit.schemas import AuditContext
from travel_backoffice.audit.service import PaymentAuditService
from travel_backoffice.database import get_db
from travel_backoffice.exceptions import PaymentScheduleError

class RequestContext(BaseModel):
    """Caller identity and request metadata"""
    agency_id: str
    user_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

def get_request_context(
    request: Request,
    x_agency_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None)
) -> RequestContext:
    """Resolve the calling agency and user from request headers"""
    if not x_agency_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Agency-Id header"
        )

    return RequestContext(
        agency_id=x_agency_id,
        user_id=x_user_id or "system",
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )

def get_audit_service(
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
) -> PaymentAuditService:
    """Audit service stamping entries with the caller's IP and user agent"""
    return PaymentAuditService(
        db,
        AuditContext(ip_address=context.ip_address, user_agent=context.user_agent)
    )

def http_error(exc: PaymentScheduleError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())
