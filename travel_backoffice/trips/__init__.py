"""
Trip payment status

Read-only rollups across every payment schedule of a trip: per-activity
worst status (overdue > partial > pending > paid), paid and remaining
totals, overdue and upcoming counts, plus flat listings of a trip's expected
payments and transactions.
"""

from .router import router
from .service import TripPaymentService
from .schemas import (
    ActivityBookingStatus, BookingStatusSummary, TripBookingStatusResponse,
    TripExpectedPayment, TripPaymentTransaction
)

__all__ = [
    "router",
    "TripPaymentService",
    "ActivityBookingStatus",
    "BookingStatusSummary",
    "TripBookingStatusResponse",
    "TripExpectedPayment",
    "TripPaymentTransaction",
]
