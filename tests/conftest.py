"""
Shared fixtures for the payment schedule tests.

Every test gets a fresh in-memory SQLite database. Agency and user IDs are
fixed so tests can import them directly.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from travel_backoffice.database import Base, create_tables
from travel_backoffice.enums import ExpectedPaymentStatus
from travel_backoffice.models import (
    ActivityPricing, ExpectedPaymentItem, Itinerary, ItineraryActivity, ItineraryDay,
    PaymentScheduleConfig, Trip
)

AGENCY_ID = "11111111-1111-4111-a111-000000000001"
OTHER_AGENCY_ID = "11111111-1111-4111-a111-000000000002"
USER_ID = "22222222-2222-4222-a222-000000000001"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    create_tables(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    """A session bound to the per-test database."""
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield db
    db.close()


@pytest.fixture
def make_trip(session):
    """Factory: trip with one itinerary."""
    def _make(agency_id=AGENCY_ID, name="Test trip"):
        trip = Trip(agency_id=agency_id, name=name)
        session.add(trip)
        session.flush()
        session.add(Itinerary(trip_id=trip.id, name="Main"))
        session.commit()
        return trip
    return _make


@pytest.fixture
def make_priced_activity(session, make_trip):
    """Factory: activity on its own day with a pricing row; returns the pricing."""
    def _make(
        total_price_cents=50000,
        currency="CAD",
        agency_id=AGENCY_ID,
        trip=None,
        name="Activity",
        activity_type="tour",
        commission_total_cents=0
    ):
        trip = trip or make_trip(agency_id=agency_id)
        itinerary = session.query(Itinerary).filter(Itinerary.trip_id == trip.id).first()
        day_count = session.query(ItineraryDay).filter(ItineraryDay.itinerary_id == itinerary.id).count()

        day = ItineraryDay(itinerary_id=itinerary.id, day_number=day_count + 1)
        session.add(day)
        session.flush()

        activity = ItineraryActivity(
            itinerary_day_id=day.id,
            agency_id=agency_id,
            name=name,
            activity_type=activity_type
        )
        session.add(activity)
        session.flush()

        pricing = ActivityPricing(
            activity_id=activity.id,
            agency_id=agency_id,
            total_price_cents=total_price_cents,
            currency=currency,
            commission_total_cents=commission_total_cents
        )
        session.add(pricing)
        session.commit()
        return pricing
    return _make


@pytest.fixture
def make_schedule_rows(session):
    """Factory: schedule rows inserted directly, with cached item state given verbatim.

    Each item is a tuple (expected_cents, paid_cents, status, due_date).
    """
    def _make(pricing, items):
        config = PaymentScheduleConfig(activity_pricing_id=pricing.id, schedule_type="installments")
        session.add(config)
        session.flush()
        for sequence, (expected, paid, status, due) in enumerate(items, start=1):
            session.add(ExpectedPaymentItem(
                payment_schedule_config_id=config.id,
                agency_id=pricing.agency_id,
                payment_name=f"Payment {sequence}",
                expected_amount_cents=expected,
                paid_amount_cents=paid,
                status=ExpectedPaymentStatus(status).value,
                due_date=due,
                sequence_order=sequence
            ))
        session.commit()
        return config
    return _make


@pytest.fixture
def client(session):
    """TestClient sharing the test session."""
    from fastapi.testclient import TestClient

    from travel_backoffice.database import get_db
    from travel_backoffice.main import app

    def _override_get_db():
        yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {"X-Agency-Id": AGENCY_ID, "X-User-Id": USER_ID}


@pytest.fixture
def today():
    return date(2025, 1, 15)
