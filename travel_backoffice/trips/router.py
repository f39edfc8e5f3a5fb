from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from travel_backoffice.database import get_db
from travel_backoffice.dependencies import RequestContext, get_request_context, http_error
from travel_backoffice.exceptions import PaymentScheduleError
from travel_backoffice.trips.schemas import (
    TripBookingStatusResponse, TripExpectedPayment, TripPaymentTransaction
)
from travel_backoffice.trips.service import TripPaymentService

router = APIRouter()

@router.get("/{trip_id}/booking-status", response_model=TripBookingStatusResponse)
def get_booking_status(
    trip_id: str,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    """Payment status of every activity in a trip, with a trip summary"""
    try:
        return TripPaymentService(db).get_booking_status(trip_id, agency_id=context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.get("/{trip_id}/expected-payments", response_model=List[TripExpectedPayment])
def get_expected_payments(
    trip_id: str,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    try:
        return TripPaymentService(db).get_expected_payments(trip_id, context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)

@router.get("/{trip_id}/payment-transactions", response_model=List[TripPaymentTransaction])
def get_payment_transactions(
    trip_id: str,
    context: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db)
):
    try:
        return TripPaymentService(db).get_transactions(trip_id, context.agency_id)
    except PaymentScheduleError as e:
        raise http_error(e)
