import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from travel_backoffice.config import settings
from travel_backoffice.enums import CommissionStatus, ExpectedPaymentStatus
from travel_backoffice.exceptions import NotFoundError
from travel_backoffice.models import (
    ActivityPricing, ExpectedPaymentItem, Itinerary, ItineraryActivity, ItineraryDay,
    PaymentScheduleConfig, PaymentTransaction, Trip
)
from travel_backoffice.trips.schemas import (
    ActivityBookingStatus, BookingStatusSummary, TripBookingStatusResponse,
    TripExpectedPayment, TripPaymentTransaction
)

logger = logging.getLogger(__name__)

# Higher wins when rolling item statuses up to an activity
STATUS_PRIORITY = {
    ExpectedPaymentStatus.PAID: 0,
    ExpectedPaymentStatus.PENDING: 1,
    ExpectedPaymentStatus.PARTIAL: 2,
    ExpectedPaymentStatus.OVERDUE: 3,
}


class TripPaymentService:
    """Trip-wide payment and booking status"""

    def __init__(self, db: Session):
        self.db = db

    def get_booking_status(
        self,
        trip_id: str,
        agency_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> TripBookingStatusResponse:
        """
        Roll up the payment state of every activity in a trip.

        Each level of trip -> itineraries -> days -> activities -> pricing ->
        schedules -> items is loaded with one query. Activities without a
        schedule but with a positive price count as pending for their full
        price; an unpaid item past its due date counts as overdue.
        """
        self._get_trip_or_raise(trip_id, agency_id)

        today = today or date.today()
        upcoming_limit = today + timedelta(days=settings.UPCOMING_DUE_WINDOW_DAYS)
        empty = TripBookingStatusResponse(trip_id=trip_id, summary=BookingStatusSummary())

        itinerary_ids = [row.id for row in self.db.query(Itinerary.id).filter(
            Itinerary.trip_id == trip_id
        ).all()]
        if not itinerary_ids:
            return empty

        day_ids = [row.id for row in self.db.query(ItineraryDay.id).filter(
            ItineraryDay.itinerary_id.in_(itinerary_ids)
        ).all()]
        if not day_ids:
            return empty

        activities = self.db.query(ItineraryActivity).filter(
            ItineraryActivity.itinerary_day_id.in_(day_ids)
        ).order_by(ItineraryActivity.sequence_order).all()
        if not activities:
            return empty

        pricing_rows = self.db.query(ActivityPricing).filter(
            ActivityPricing.activity_id.in_([a.id for a in activities])
        ).all()
        pricing_by_activity = {p.activity_id: p for p in pricing_rows}

        configs = []
        if pricing_rows:
            configs = self.db.query(PaymentScheduleConfig).filter(
                PaymentScheduleConfig.activity_pricing_id.in_([p.id for p in pricing_rows])
            ).all()
        config_by_pricing = {c.activity_pricing_id: c for c in configs}

        items_by_config: Dict[str, List[ExpectedPaymentItem]] = defaultdict(list)
        if configs:
            items = self.db.query(ExpectedPaymentItem).filter(
                ExpectedPaymentItem.payment_schedule_config_id.in_([c.id for c in configs])
            ).order_by(ExpectedPaymentItem.sequence_order).all()
            for item in items:
                items_by_config[item.payment_schedule_config_id].append(item)

        summary = BookingStatusSummary(total_activities=len(activities))
        activity_statuses: Dict[str, ActivityBookingStatus] = {}

        for activity in activities:
            pricing = pricing_by_activity.get(activity.id)
            config = config_by_pricing.get(pricing.id) if pricing else None
            items = items_by_config.get(config.id, []) if config else []

            status = ActivityBookingStatus(
                activity_id=activity.id,
                has_payment_schedule=len(items) > 0
            )

            if items:
                summary.activities_with_payment_schedule += 1
                worst_status = None
                for item in items:
                    status.payment_total_cents += item.expected_amount_cents
                    status.payment_paid_cents += item.paid_amount_cents or 0

                    item_status = ExpectedPaymentStatus(item.status)
                    is_paid = item_status == ExpectedPaymentStatus.PAID
                    if item.due_date and not is_paid:
                        if item_status == ExpectedPaymentStatus.OVERDUE or item.due_date < today:
                            item_status = ExpectedPaymentStatus.OVERDUE
                            summary.overdue_count += 1
                        elif item.due_date <= upcoming_limit:
                            summary.upcoming_due_count += 1

                        if status.next_due_date is None or item.due_date < status.next_due_date:
                            status.next_due_date = item.due_date
                    elif item_status == ExpectedPaymentStatus.OVERDUE:
                        summary.overdue_count += 1

                    if worst_status is None or STATUS_PRIORITY[item_status] > STATUS_PRIORITY[worst_status]:
                        worst_status = item_status

                status.payment_status = worst_status
            else:
                base_cost_cents = (pricing.total_price_cents if pricing else None) or 0
                status.payment_total_cents = base_cost_cents
                if base_cost_cents > 0:
                    status.payment_status = ExpectedPaymentStatus.PENDING

            status.payment_remaining_cents = status.payment_total_cents - status.payment_paid_cents

            commission_cents = (pricing.commission_total_cents if pricing else None) or 0
            status.commission_total_cents = commission_cents
            if commission_cents > 0:
                status.commission_status = CommissionStatus.PENDING

            summary.total_expected_cents += status.payment_total_cents
            summary.total_paid_cents += status.payment_paid_cents
            activity_statuses[activity.id] = status

        summary.total_remaining_cents = summary.total_expected_cents - summary.total_paid_cents

        logger.debug(
            "Booking status for trip %s: %d activities, %d overdue",
            trip_id, summary.total_activities, summary.overdue_count
        )
        return TripBookingStatusResponse(trip_id=trip_id, activities=activity_statuses, summary=summary)

    def get_expected_payments(self, trip_id: str, agency_id: str) -> List[TripExpectedPayment]:
        """Every expected payment of a trip with its activity"""
        self._get_trip_or_raise(trip_id, agency_id)

        rows = self._trip_item_query(
            self.db.query(ExpectedPaymentItem, PaymentScheduleConfig, ActivityPricing, ItineraryActivity),
            trip_id,
            agency_id
        ).order_by(ItineraryActivity.created_at, ExpectedPaymentItem.sequence_order).all()

        payments = []
        for item, config, pricing, activity in rows:
            paid_cents = item.paid_amount_cents or 0
            payments.append(TripExpectedPayment(
                id=item.id,
                payment_schedule_config_id=config.id,
                payment_name=item.payment_name,
                expected_amount_cents=item.expected_amount_cents,
                paid_amount_cents=paid_cents,
                remaining_cents=item.expected_amount_cents - paid_cents,
                due_date=item.due_date,
                status=item.status,
                sequence_order=item.sequence_order,
                is_locked=item.is_locked,
                activity_pricing_id=pricing.id,
                activity_id=activity.id,
                activity_name=activity.name,
                activity_type=activity.activity_type,
                currency=pricing.currency,
                created_at=item.created_at,
                updated_at=item.updated_at
            ))
        return payments

    def get_transactions(self, trip_id: str, agency_id: str) -> List[TripPaymentTransaction]:
        """Every transaction of a trip, newest first"""
        self._get_trip_or_raise(trip_id, agency_id)

        query = self.db.query(
            PaymentTransaction, ExpectedPaymentItem, PaymentScheduleConfig, ActivityPricing, ItineraryActivity
        ).join(
            ExpectedPaymentItem, ExpectedPaymentItem.id == PaymentTransaction.expected_payment_item_id
        )
        rows = self._trip_item_query(query, trip_id, agency_id, joined_items=True).filter(
            PaymentTransaction.agency_id == agency_id
        ).order_by(
            desc(PaymentTransaction.transaction_date), desc(PaymentTransaction.created_at)
        ).all()

        return [
            TripPaymentTransaction(
                id=txn.id,
                expected_payment_item_id=txn.expected_payment_item_id,
                payment_name=item.payment_name,
                transaction_type=txn.transaction_type,
                amount_cents=txn.amount_cents,
                currency=txn.currency,
                payment_method=txn.payment_method,
                reference_number=txn.reference_number,
                transaction_date=txn.transaction_date,
                notes=txn.notes,
                created_at=txn.created_at,
                created_by=txn.created_by,
                activity_id=activity.id,
                activity_name=activity.name
            )
            for txn, item, config, pricing, activity in rows
        ]

    # Helpers
    def _get_trip_or_raise(self, trip_id: str, agency_id: Optional[str]) -> Trip:
        trip = self.db.get(Trip, trip_id)
        if not trip or (agency_id and trip.agency_id != agency_id):
            raise NotFoundError(f"Trip {trip_id} not found")
        return trip

    @staticmethod
    def _trip_item_query(query, trip_id: str, agency_id: str, joined_items: bool = False):
        """Join items up to their trip, restricted to one agency"""
        if not joined_items:
            query = query.select_from(ExpectedPaymentItem)
        return query.join(
            PaymentScheduleConfig, PaymentScheduleConfig.id == ExpectedPaymentItem.payment_schedule_config_id
        ).join(
            ActivityPricing, ActivityPricing.id == PaymentScheduleConfig.activity_pricing_id
        ).join(
            ItineraryActivity, ItineraryActivity.id == ActivityPricing.activity_id
        ).join(
            ItineraryDay, ItineraryDay.id == ItineraryActivity.itinerary_day_id
        ).join(
            Itinerary, Itinerary.id == ItineraryDay.itinerary_id
        ).filter(
            Itinerary.trip_id == trip_id,
            ActivityPricing.agency_id == agency_id,
            ItineraryActivity.agency_id == agency_id
        )
