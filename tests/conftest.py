"""
Pytest configuration and shared fixtures.
The app runs against an in-memory SQLite database; calendar and email adapters are
replaced with recording fakes.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["RESEND_API_KEY"] = ""
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)

from datetime import datetime, timedelta  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from consult_booking import rate_limiter  # noqa: E402
from consult_booking.database import Base, SessionLocal, engine  # noqa: E402
from consult_booking.domain.booking import service as booking_service  # noqa: E402
from consult_booking.main import app  # noqa: E402
from consult_booking.models import AvailabilitySlot, Booking, EventType, SideEffectFailure  # noqa: E402
from consult_booking.services import notification_service  # noqa: E402
from consult_booking.shared.datetime_utils import firm_today, local_to_utc  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.reset_rate_limits()
    yield
    rate_limiter.reset_rate_limits()


@pytest.fixture
def client():
    return TestClient(app)


class FakeSideEffects:
    """Records calendar and email calls; flip the fail_* flags to simulate outages."""

    def __init__(self):
        self.calendar_calls: list[dict] = []
        self.emails: list[tuple[str, dict]] = []
        self.calendar_result: dict = {
            "success": True,
            "eventId": "evt_123",
            "htmlLink": "https://calendar.google.com/event?eid=evt_123",
            "message": "Calendar event created successfully",
            "eventData": {"id": "evt_123", "hangoutLink": "https://meet.google.com/abc-defg-hij"},
        }
        self.calendar_raises: Optional[Exception] = None
        self.fail_client_email = False
        self.fail_staff_email = False

    async def create_calendar_event(self, db, **kwargs):
        self.calendar_calls.append(kwargs)
        if self.calendar_raises:
            raise self.calendar_raises
        return self.calendar_result

    async def send_client_email(self, **kwargs):
        self.emails.append(("client", kwargs))
        if self.fail_client_email:
            raise RuntimeError("Resend unavailable")
        return {"id": "email_client"}

    async def send_staff_email(self, **kwargs):
        self.emails.append(("staff", kwargs))
        if self.fail_staff_email:
            raise RuntimeError("Resend unavailable")
        return {"id": "email_staff"}


@pytest.fixture(autouse=True)
def side_effects(monkeypatch):
    fake = FakeSideEffects()
    monkeypatch.setattr(booking_service, "create_calendar_event", fake.create_calendar_event)
    monkeypatch.setattr(notification_service, "send_booking_confirmation_email", fake.send_client_email)
    monkeypatch.setattr(notification_service, "send_staff_booking_notification", fake.send_staff_email)
    return fake


# ---------------------------------------------------------------------------
# Data helpers (each opens and closes its own session)
# ---------------------------------------------------------------------------


def make_event_type(name: str = "Initial Consultation", duration: int = 30, **overrides) -> str:
    db = SessionLocal()
    try:
        event_type = EventType(name=name, duration=duration, **overrides)
        db.add(event_type)
        db.commit()
        return event_type.id
    finally:
        db.close()


def make_slot(days_ahead: int = 3, hour: int = 10, **overrides) -> str:
    slot_date = firm_today() + timedelta(days=days_ahead)
    start = local_to_utc(slot_date, datetime.strptime(f"{hour}:00", "%H:%M").time())
    values = {
        "slot_date": slot_date,
        "start_time": start,
        "end_time": start + timedelta(minutes=30),
        "duration_minutes": 30,
    }
    values.update(overrides)
    db = SessionLocal()
    try:
        slot = AvailabilitySlot(**values)
        db.add(slot)
        db.commit()
        return slot.id
    finally:
        db.close()


def get_slot(slot_id: str) -> Optional[AvailabilitySlot]:
    db = SessionLocal()
    try:
        slot = db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id).first()
        if slot:
            db.expunge(slot)
        return slot
    finally:
        db.close()


def all_bookings() -> list[Booking]:
    db = SessionLocal()
    try:
        bookings = db.query(Booking).all()
        for booking in bookings:
            db.expunge(booking)
        return bookings
    finally:
        db.close()


def all_failures() -> list[SideEffectFailure]:
    db = SessionLocal()
    try:
        failures = db.query(SideEffectFailure).order_by(SideEffectFailure.id).all()
        for failure in failures:
            db.expunge(failure)
        return failures
    finally:
        db.close()


def booking_payload(**overrides) -> dict:
    payload = {
        "name": "Dr. Smith",
        "email": "smith@example.com",
        "date": (firm_today() + timedelta(days=3)).isoformat(),
        "time": "10:00 AM",
        "consultationType": "Initial Consultation",
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not None}
