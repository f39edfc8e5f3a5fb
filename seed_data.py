#!/usr/bin/env python3

from datetime import date, timedelta
from decimal import Decimal

from travel_backoffice.database import SessionLocal, create_tables
from travel_backoffice.enums import ScheduleType
from travel_backoffice.models import (
    Trip, Itinerary, ItineraryDay, ItineraryActivity, ActivityPricing,
    PaymentScheduleTemplate, PaymentScheduleTemplateItem, PaymentScheduleConfig,
    ExpectedPaymentItem, CreditCardGuarantee, PaymentTransaction, PaymentScheduleAuditLog
)
from travel_backoffice.payment_schedules.schemas import ApplyTemplateRequest
from travel_backoffice.payment_schedules.service import PaymentScheduleService
from travel_backoffice.payment_templates.schemas import TemplateCreate, TemplateItemCreate
from travel_backoffice.payment_templates.service import PaymentTemplateService

DEMO_AGENCY_ID = "00000000-0000-0000-0000-00000000a001"
DEMO_USER_ID = "00000000-0000-0000-0000-00000000u001"

def create_seed_data(db=None):
    owns_session = db is None
    db = db or SessionLocal()

    try:
        print("🚀 Creating seed data for the travel back office...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(PaymentScheduleAuditLog).delete()
        db.query(PaymentTransaction).delete()
        db.query(CreditCardGuarantee).delete()
        db.query(ExpectedPaymentItem).delete()
        db.query(PaymentScheduleConfig).delete()
        db.query(PaymentScheduleTemplateItem).delete()
        db.query(PaymentScheduleTemplate).delete()
        db.query(ActivityPricing).delete()
        db.query(ItineraryActivity).delete()
        db.query(ItineraryDay).delete()
        db.query(Itinerary).delete()
        db.query(Trip).delete()
        db.commit()

        # 1. Trip with one itinerary
        print("Creating demo trip...")
        departure = date.today() + timedelta(days=120)
        trip = Trip(
            agency_id=DEMO_AGENCY_ID,
            name="Mediterranean Cruise & Rome",
            start_date=departure,
            end_date=departure + timedelta(days=9)
        )
        db.add(trip)
        db.flush()

        itinerary = Itinerary(trip_id=trip.id, name="Main itinerary")
        db.add(itinerary)
        db.flush()

        days = [
            ItineraryDay(itinerary_id=itinerary.id, day_number=n, date=departure + timedelta(days=n - 1))
            for n in (1, 2, 10)
        ]
        db.add_all(days)
        db.flush()

        # 2. Activities and their pricing
        print("Creating priced activities...")
        activity_specs = [
            (days[0], "Flight YYZ-FCO", "flight", 184500, 0),
            (days[1], "Hotel Artemide, 1 night", "lodging", 32000, 3200),
            (days[1], "7-night Mediterranean cruise", "cruise", 689900, 68990),
            (days[2], "Welcome dinner", "dining", 0, 0),
        ]
        activities = []
        pricing_rows = []
        for sequence, (day, name, activity_type, total_cents, commission_cents) in enumerate(activity_specs, start=1):
            activity = ItineraryActivity(
                itinerary_day_id=day.id,
                agency_id=DEMO_AGENCY_ID,
                name=name,
                activity_type=activity_type,
                sequence_order=sequence
            )
            db.add(activity)
            db.flush()
            pricing = ActivityPricing(
                activity_id=activity.id,
                agency_id=DEMO_AGENCY_ID,
                total_price_cents=total_cents,
                currency="CAD",
                commission_total_cents=commission_cents
            )
            db.add(pricing)
            activities.append(activity)
            pricing_rows.append(pricing)
        db.commit()

        # 3. Payment templates
        print("Creating payment templates...")
        template_service = PaymentTemplateService(db)
        deposit_template = template_service.create_template(DEMO_AGENCY_ID, DEMO_USER_ID, TemplateCreate(
            name="Standard 20% deposit",
            description="20% at booking, balance 60 days before departure",
            schedule_type=ScheduleType.DEPOSIT,
            is_default=True,
            items=[
                TemplateItemCreate(sequence_order=1, payment_name="Deposit",
                                   percentage=Decimal("20"), days_from_booking=0),
                TemplateItemCreate(sequence_order=2, payment_name="Final Balance",
                                   percentage=Decimal("80"), days_before_departure=60),
            ]
        ))
        installments_template = template_service.create_template(DEMO_AGENCY_ID, DEMO_USER_ID, TemplateCreate(
            name="Three installments",
            description="Thirds at booking, 90 and 60 days before departure",
            schedule_type=ScheduleType.INSTALLMENTS,
            items=[
                TemplateItemCreate(sequence_order=1, payment_name="Installment 1",
                                   percentage=Decimal("34"), days_from_booking=0),
                TemplateItemCreate(sequence_order=2, payment_name="Installment 2",
                                   percentage=Decimal("33"), days_before_departure=90),
                TemplateItemCreate(sequence_order=3, payment_name="Installment 3",
                                   percentage=Decimal("33"), days_before_departure=60),
            ]
        ))

        # 4. Schedules generated from the templates
        print("Applying templates...")
        schedule_service = PaymentScheduleService(db, template_service.audit_service, template_service)
        cruise_schedule = schedule_service.apply_template(
            pricing_rows[2].id, DEMO_AGENCY_ID, DEMO_USER_ID,
            ApplyTemplateRequest(template_id=deposit_template.id, departure_date=departure)
        )
        flight_schedule = schedule_service.apply_template(
            pricing_rows[0].id, DEMO_AGENCY_ID, DEMO_USER_ID,
            ApplyTemplateRequest(template_id=installments_template.id, departure_date=departure)
        )

        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - 1 trip ({trip.name}) with {len(days)} days")
        print(f"  - {len(activities)} priced activities")
        print(f"  - 2 payment templates")
        print(f"  - 2 payment schedules "
              f"({len(cruise_schedule.config.expected_payment_items) + len(flight_schedule.config.expected_payment_items)} items)")

        return {
            "agency_id": DEMO_AGENCY_ID,
            "trip_id": trip.id,
            "activity_pricing_ids": [p.id for p in pricing_rows],
            "template_ids": [deposit_template.id, installments_template.id],
        }

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()

if __name__ == "__main__":
    create_tables()
    create_seed_data()
