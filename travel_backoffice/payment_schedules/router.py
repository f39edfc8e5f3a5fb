from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from travel_backoffice.database import get_db
from travel_backoffice.dependencies import (
    RequestContext, get_request_context, get_audit_service, http_error
)
from travel_backoffice.exceptions import PaymentScheduleError
from travel_backoffice.audit.service import PaymentAuditService
from travel_backoffice.payment_schedules.schemas import (
    ApplyTemplateRequest, ApplyTemplateResponse, DepositCalculationRequest, DepositScheduleResponse,
    ExpectedPaymentItemResponse, ExpectedPaymentItemUpdate, PaymentScheduleCreate,
    PaymentScheduleResponse, PaymentScheduleUpdate, PaymentTransactionCreate,
    PaymentTransactionListResponse, PaymentTransactionResponse, ScheduleValidationRequest,
    ScheduleValidationResult, UnlockItemRequest
)
from travel_backoffice.payment_schedules.service import PaymentScheduleService
from travel_backoffice.payment_schedules.transaction_service import PaymentTransactionService

router = APIRouter()
transactions_router = APIRouter()

# Stateless helpers
@router.post("/validate", response_model=ScheduleValidationResult)
def validate_schedule(
    request: ScheduleValidationRequest,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Run the compliance check on a schedule without saving it"""
    return PaymentScheduleService(db).validate_schedule(
        request.items, request.total_cents, request.departure_date, request.booking_date
    )

@router.post("/calculate-deposit", response_model=DepositScheduleResponse)
def calculate_deposit(
    request: DepositCalculationRequest,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Split a total into a deposit and a final balance"""
    service = PaymentScheduleService(db)
    try:
        calculation = service.calculate_deposit(
            request.total_price_cents, request.deposit_type, request.deposit_value
        )
        items = service.generate_deposit_schedule(
            request.total_price_cents, request.deposit_type, request.deposit_value,
            request.deposit_due_date, request.final_due_date
        )
    except PaymentScheduleError as e:
        raise http_error(e)
    return DepositScheduleResponse(calculation=calculation, items=items)

# Expected payment items
@router.patch("/items/{item_id}", response_model=ExpectedPaymentItemResponse)
def update_expected_payment_item(
    item_id: str,
    data: ExpectedPaymentItemUpdate,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Edit a single expected payment item"""
    service = PaymentScheduleService(db, audit_service)
    try:
        return service.update_expected_payment_item(
            item_id, data, actor=context.user_id, agency_id=context.agency_id
        )
    except PaymentScheduleError as e:
        raise http_error(e)

@router.post("/items/{item_id}/unlock", response_model=ExpectedPaymentItemResponse)
def unlock_item(
    item_id: str,
    request: UnlockItemRequest,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Unlock a paid item; a reason is required"""
    service = PaymentScheduleService(db, audit_service)
    try:
        return service.unlock_item(item_id, context.user_id, request.reason, agency_id=context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.get("/items/{item_id}/transactions", response_model=PaymentTransactionListResponse)
def list_item_transactions(
    item_id: str,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Transactions recorded against one item"""
    try:
        return PaymentTransactionService(db).list_transactions(item_id, agency_id=context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

# Schedules
@router.post("", response_model=PaymentScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(
    data: PaymentScheduleCreate,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Create the payment schedule of a priced activity"""
    service = PaymentScheduleService(db, audit_service)
    try:
        return service.create_schedule(data, actor=context.user_id, agency_id=context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.get("/{activity_pricing_id}", response_model=PaymentScheduleResponse)
def get_schedule(
    activity_pricing_id: str,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    try:
        return PaymentScheduleService(db).get_schedule_or_raise(activity_pricing_id, context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.patch("/{activity_pricing_id}", response_model=PaymentScheduleResponse)
def update_schedule(
    activity_pricing_id: str,
    data: PaymentScheduleUpdate,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Update a schedule; supplied items replace the existing ones"""
    service = PaymentScheduleService(db, audit_service)
    try:
        return service.update_schedule(
            activity_pricing_id, data, actor=context.user_id, agency_id=context.agency_id
        )
    except PaymentScheduleError as e:
        raise http_error(e)

@router.delete("/{activity_pricing_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    activity_pricing_id: str,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    service = PaymentScheduleService(db, audit_service)
    try:
        service.delete_schedule(activity_pricing_id, actor=context.user_id, agency_id=context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.post("/{activity_pricing_id}/apply-template", response_model=ApplyTemplateResponse)
def apply_template(
    activity_pricing_id: str,
    request: ApplyTemplateRequest,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Generate the schedule of an activity from a payment template"""
    service = PaymentScheduleService(db, audit_service)
    try:
        return service.apply_template(activity_pricing_id, context.agency_id, context.user_id, request)
    except PaymentScheduleError as e:
        raise http_error(e)

# Payment transactions
@transactions_router.post("", response_model=PaymentTransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    data: PaymentTransactionCreate,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    """Record a payment, refund or adjustment"""
    service = PaymentTransactionService(db, audit_service)
    try:
        return service.create_transaction(data, actor=context.user_id, agency_id=context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@transactions_router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: str,
    context: RequestContext = Depends(get_request_context),
    audit_service: PaymentAuditService = Depends(get_audit_service),
    db: Session = Depends(get_db)
):
    service = PaymentTransactionService(db, audit_service)
    try:
        service.delete_transaction(transaction_id, actor=context.user_id, agency_id=context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)
