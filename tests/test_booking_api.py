"""
Booking endpoint tests: validation, slot reservation, compensation and side effects
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from consult_booking import rate_limiter
from consult_booking.domain.availability.repository import AvailabilityRepository
from consult_booking.domain.booking.repository import BookingRepository
from consult_booking.models import BOOKING_STATUS_PENDING_PAYMENT

from conftest import (
    all_bookings,
    all_failures,
    booking_payload,
    get_slot,
    make_event_type,
    make_slot,
)

BOOKING_URL = "/api/booking"


@pytest.fixture
def event_type_id():
    return make_event_type("Initial Consultation", 30)


def assert_slot_untouched(slot_id):
    slot = get_slot(slot_id)
    assert slot.is_available is True
    assert slot.blocked_by_booking is False
    assert slot.booking_id is None
    assert slot.claimed_at is None


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("missing", ["name", "email", "date", "time"])
def test_missing_required_field_returns_400_without_side_effects(client, event_type_id, side_effects, missing):
    slot_id = make_slot()
    payload = booking_payload(slotId=slot_id)
    payload.pop(missing)

    response = client.post(BOOKING_URL, json=payload)

    assert response.status_code == 400
    assert response.json() == {
        "error": "Missing required fields: name, email, date, and time are required"
    }
    assert all_bookings() == []
    assert_slot_untouched(slot_id)
    assert side_effects.calendar_calls == []
    assert side_effects.emails == []


def test_blank_required_field_counts_as_missing(client, event_type_id):
    response = client.post(BOOKING_URL, json=booking_payload(name="   "))

    assert response.status_code == 400
    assert "Missing required fields" in response.json()["error"]


@pytest.mark.parametrize("email", ["smith.example.com", "smith@example", "smith @example.com", "@example.com"])
def test_invalid_email_returns_400(client, event_type_id, email):
    slot_id = make_slot()

    response = client.post(BOOKING_URL, json=booking_payload(email=email, slotId=slot_id))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid email format"}
    assert all_bookings() == []
    assert_slot_untouched(slot_id)


@pytest.mark.parametrize(
    "field,value",
    [("time", "25:99"), ("time", "ten o'clock"), ("date", "10/03/2025"), ("date", "2025-02-30")],
)
def test_unparseable_date_or_time_returns_400(client, event_type_id, field, value):
    response = client.post(BOOKING_URL, json=booking_payload(**{field: value}))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid date or time format"}
    assert all_bookings() == []


def test_malformed_body_returns_400_not_422(client):
    response = client.post(BOOKING_URL, content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_wrong_field_type_returns_400(client):
    response = client.post(BOOKING_URL, json=booking_payload(uploadedFiles="not-a-list"))

    assert response.status_code == 400


def test_no_event_types_configured_returns_500_and_keeps_slot(client):
    slot_id = make_slot()

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 500
    assert response.json() == {"error": "Booking configuration error. Please contact support."}
    assert_slot_untouched(slot_id)


# ---------------------------------------------------------------------------
# Bookings without a slot
# ---------------------------------------------------------------------------


def test_end_to_end_booking_without_slot(client, event_type_id, side_effects):
    """Dr. Smith books a 10:00 AM Adelaide consultation on 10 March 2025 (ACDT, UTC+10:30)"""
    response = client.post(
        BOOKING_URL,
        json={
            "name": "Dr. Smith",
            "email": "Smith@Example.com",
            "date": "2025-03-10",
            "time": "10:00 AM",
            "consultationType": "Initial Consultation",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["redirectToPayment"] is True
    assert body["bookingId"] == body["booking"]["id"]

    summary = body["booking"]
    assert summary["status"] == BOOKING_STATUS_PENDING_PAYMENT
    assert summary["clientEmail"] == "smith@example.com"
    assert summary["startTime"] == "2025-03-09T23:30:00.000Z"
    assert summary["endTime"] == "2025-03-10T00:00:00.000Z"
    assert summary["durationMinutes"] == 30
    assert summary["availabilitySlotId"] is None

    [booking] = all_bookings()
    assert booking.start_time == datetime(2025, 3, 9, 23, 30)
    assert booking.end_time - booking.start_time == timedelta(minutes=30)
    assert booking.event_type_id == event_type_id
    assert booking.availability_slot_id is None
    assert booking.location_type == "video"
    assert booking.timezone == "Australia/Adelaide"

    assert len(side_effects.calendar_calls) == 1
    assert side_effects.calendar_calls[0]["attendee_email"] == "smith@example.com"


def test_24_hour_time_is_accepted(client, event_type_id):
    response = client.post(BOOKING_URL, json=booking_payload(date="2025-07-01", time="14:30"))

    assert response.status_code == 200
    # July is ACST (UTC+09:30)
    assert response.json()["booking"]["startTime"] == "2025-07-01T05:00:00.000Z"


@pytest.mark.parametrize(
    "consultation_type,minutes",
    [
        ("Follow-up Consultation", 15),
        ("Document Review Session", 60),
        ("Strategy Planning Session", 90),
        ("Urgent Legal Advice", 30),
        ("Something Bespoke", 30),
    ],
)
def test_duration_follows_consultation_type(client, event_type_id, consultation_type, minutes):
    response = client.post(BOOKING_URL, json=booking_payload(consultationType=consultation_type))

    assert response.status_code == 200
    assert response.json()["booking"]["durationMinutes"] == minutes
    [booking] = all_bookings()
    assert booking.end_time - booking.start_time == timedelta(minutes=minutes)
    assert booking.event_type_name == consultation_type


def test_practice_details_are_stored_as_custom_answers(client, event_type_id):
    response = client.post(
        BOOKING_URL,
        json=booking_payload(
            practiceType="General Practice",
            practiceWebsite="https://clinic.example.com",
            uploadedFiles=["lease.pdf"],
            message="Need advice on a lease",
            phone="0400 000 000",
        ),
    )

    assert response.status_code == 200
    [booking] = all_bookings()
    assert booking.custom_answers == {
        "practiceType": "General Practice",
        "practiceWebsite": "https://clinic.example.com",
        "uploadedFiles": ["lease.pdf"],
    }
    assert booking.notes == "Need advice on a lease"
    assert booking.client_phone == "0400 000 000"


def test_custom_answers_absent_without_practice_details(client, event_type_id):
    client.post(BOOKING_URL, json=booking_payload())

    [booking] = all_bookings()
    assert booking.custom_answers is None


# ---------------------------------------------------------------------------
# Slot reservation
# ---------------------------------------------------------------------------


def test_booking_with_slot_claims_and_links_it(client, event_type_id):
    slot_id = make_slot()

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 200
    body = response.json()
    assert body["booking"]["availabilitySlotId"] == slot_id

    [booking] = all_bookings()
    assert booking.availability_slot_id == slot_id
    assert booking.status == BOOKING_STATUS_PENDING_PAYMENT

    slot = get_slot(slot_id)
    assert slot.is_available is False
    assert slot.blocked_by_booking is True
    assert slot.booking_id == booking.id
    assert slot.claimed_at is not None


def test_unknown_slot_returns_404(client, event_type_id):
    response = client.post(
        BOOKING_URL, json=booking_payload(slotId="7d9f2c1e-3b4a-4c5d-8e6f-0a1b2c3d4e5f")
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Selected time slot not found. Please select another time."}
    assert all_bookings() == []


@pytest.mark.parametrize(
    "slot_state",
    [
        {"is_available": False},
        {"blocked_by_calendar": True},
        {"is_available": False, "blocked_by_booking": True},
    ],
)
def test_unavailable_slot_returns_409_and_is_left_as_is(client, event_type_id, side_effects, slot_state):
    slot_id = make_slot(**slot_state)
    before = get_slot(slot_id)

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 409
    assert response.json() == {
        "error": "This time slot is no longer available. Please select another time."
    }
    assert all_bookings() == []
    assert side_effects.emails == []

    after = get_slot(slot_id)
    assert after.is_available == before.is_available
    assert after.blocked_by_booking == before.blocked_by_booking
    assert after.blocked_by_calendar == before.blocked_by_calendar
    assert after.booking_id is None


def test_second_booking_for_same_slot_conflicts(client, event_type_id):
    slot_id = make_slot()

    first = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))
    second = client.post(
        BOOKING_URL, json=booking_payload(slotId=slot_id, name="Dr. Jones", email="jones@example.com")
    )

    assert first.status_code == 200
    assert second.status_code == 409
    [booking] = all_bookings()
    assert booking.client_name == "Dr. Smith"
    assert get_slot(slot_id).booking_id == booking.id


def test_lost_claim_race_returns_409_without_booking(client, event_type_id, monkeypatch, side_effects):
    """The slot looked free when read, but the conditional update affected no row"""
    slot_id = make_slot()
    monkeypatch.setattr(
        AvailabilityRepository, "claim_slot", staticmethod(lambda db, slot_id, claimed_at: 0)
    )

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 409
    assert all_bookings() == []
    assert side_effects.calendar_calls == []


def test_claim_write_failure_returns_500(client, event_type_id, monkeypatch):
    slot_id = make_slot()

    def broken_claim(db, slot_id, claimed_at):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(AvailabilityRepository, "claim_slot", staticmethod(broken_claim))

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to reserve time slot. Please try again."}
    assert all_bookings() == []
    assert_slot_untouched(slot_id)


def test_insert_failure_releases_claimed_slot(client, event_type_id, monkeypatch, side_effects):
    slot_id = make_slot()

    def broken_insert(db, **booking_data):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(BookingRepository, "create_booking", staticmethod(broken_insert))

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create booking. Please try again."}
    assert all_bookings() == []
    assert_slot_untouched(slot_id)
    assert side_effects.calendar_calls == []
    assert side_effects.emails == []


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------


def test_calendar_event_is_attached_to_booking(client, event_type_id):
    response = client.post(BOOKING_URL, json=booking_payload())

    body = response.json()
    assert body["booking"]["googleEventId"] == "evt_123"
    assert body["booking"]["meetingLink"] == "https://meet.google.com/abc-defg-hij"
    assert body["calendarEvent"]["success"] is True

    [booking] = all_bookings()
    assert booking.google_event_id == "evt_123"
    assert booking.google_meet_link == "https://meet.google.com/abc-defg-hij"
    assert all_failures() == []


def test_pending_calendar_event_leaves_booking_unlinked(client, event_type_id, side_effects):
    side_effects.calendar_result = {
        "success": True,
        "pending": True,
        "eventId": "pending-1741563000000",
        "message": "Calendar not connected - event saved for later sync",
        "eventData": {},
    }

    response = client.post(BOOKING_URL, json=booking_payload())

    assert response.status_code == 200
    [booking] = all_bookings()
    assert booking.google_event_id is None
    assert all_failures() == []


def test_calendar_failure_still_succeeds_and_is_recorded(client, event_type_id, side_effects):
    slot_id = make_slot()
    side_effects.calendar_result = {"success": False, "error": "Google API error: 503"}

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 200
    assert response.json()["calendarEvent"]["success"] is False
    [booking] = all_bookings()
    assert booking.google_event_id is None
    assert get_slot(slot_id).booking_id == booking.id

    [failure] = all_failures()
    assert failure.booking_id == booking.id
    assert failure.effect == "calendar_event"
    assert failure.error == "Google API error: 503"
    assert failure.resolved_at is None

    # Emails still go out
    assert [kind for kind, _ in side_effects.emails] == ["client", "staff"]


def test_calendar_exception_still_succeeds(client, event_type_id, side_effects):
    side_effects.calendar_raises = RuntimeError("connection reset")

    response = client.post(BOOKING_URL, json=booking_payload())

    assert response.status_code == 200
    [failure] = all_failures()
    assert failure.effect == "calendar_event"
    assert "connection reset" in failure.error


def test_email_failures_still_succeed_and_are_recorded(client, event_type_id, side_effects):
    side_effects.fail_client_email = True
    side_effects.fail_staff_email = True

    response = client.post(BOOKING_URL, json=booking_payload())

    assert response.status_code == 200
    [booking] = all_bookings()
    failures = all_failures()
    assert sorted(f.effect for f in failures) == ["client_email", "staff_email"]
    assert all(f.booking_id == booking.id for f in failures)


def test_slot_link_failure_keeps_booking_and_claim(client, event_type_id, monkeypatch, side_effects):
    slot_id = make_slot()

    def broken_link(db, slot_id, booking_id):
        raise SQLAlchemyError("link failed")

    monkeypatch.setattr(AvailabilityRepository, "link_booking", staticmethod(broken_link))

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 200
    [booking] = all_bookings()
    assert booking.availability_slot_id == slot_id

    slot = get_slot(slot_id)
    assert slot.is_available is False
    assert slot.blocked_by_booking is True
    assert slot.booking_id is None

    assert len(side_effects.calendar_calls) == 1
    assert [kind for kind, _ in side_effects.emails] == ["client", "staff"]


def test_calendar_link_write_failure_still_succeeds(client, event_type_id, monkeypatch):
    def broken_set_calendar_event(db, booking, event_id, meet_link=None):
        raise SQLAlchemyError("update failed")

    monkeypatch.setattr(BookingRepository, "set_calendar_event", staticmethod(broken_set_calendar_event))

    response = client.post(BOOKING_URL, json=booking_payload())

    assert response.status_code == 200
    [booking] = all_bookings()
    assert booking.google_event_id is None
    assert booking.google_meet_link is None

    [failure] = all_failures()
    assert failure.effect == "calendar_event"
    assert failure.target == "evt_123"
    assert failure.payload == {
        "google_event_id": "evt_123",
        "google_meet_link": "https://meet.google.com/abc-defg-hij",
    }


def test_notifications_go_to_client_then_staff(client, event_type_id, side_effects):
    client.post(BOOKING_URL, json=booking_payload(consultationType="Document Review Session"))

    [(first, client_kwargs), (second, staff_kwargs)] = side_effects.emails
    assert (first, second) == ("client", "staff")
    assert client_kwargs["to"] == "smith@example.com"
    assert client_kwargs["consultation_type"] == "Document Review Session"
    assert client_kwargs["meeting_link"] == "https://meet.google.com/abc-defg-hij"
    assert staff_kwargs["client_email"] == "smith@example.com"
    assert staff_kwargs["duration_minutes"] == 60


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


def test_rate_limit_returns_429_with_retry_after(client, monkeypatch):
    monkeypatch.setitem(rate_limiter.RATE_LIMITS, "booking", {"limit": 2, "window_seconds": 60})

    for _ in range(2):
        assert client.post(BOOKING_URL, json={}).status_code == 400

    response = client.post(BOOKING_URL, json={})

    assert response.status_code == 429
    body = response.json()
    assert body["error"] == "Too many requests"
    assert body["message"] == "Please wait before making another booking request"
    retry_after = int(response.headers["Retry-After"])
    assert 1 <= retry_after <= 60
    assert body["retryAfter"] == retry_after


def test_rate_limit_is_per_client(client, monkeypatch):
    monkeypatch.setitem(rate_limiter.RATE_LIMITS, "booking", {"limit": 1, "window_seconds": 60})

    first = client.post(BOOKING_URL, json={}, headers={"X-Forwarded-For": "203.0.113.7"})
    blocked = client.post(BOOKING_URL, json={}, headers={"X-Forwarded-For": "203.0.113.7"})
    other = client.post(BOOKING_URL, json={}, headers={"X-Forwarded-For": "198.51.100.4"})

    assert first.status_code == 400
    assert blocked.status_code == 429
    assert other.status_code == 400


def test_rate_limited_request_does_not_touch_slot(client, event_type_id, monkeypatch):
    monkeypatch.setitem(rate_limiter.RATE_LIMITS, "booking", {"limit": 1, "window_seconds": 60})
    slot_id = make_slot()
    client.post(BOOKING_URL, json={})

    response = client.post(BOOKING_URL, json=booking_payload(slotId=slot_id))

    assert response.status_code == 429
    assert_slot_untouched(slot_id)
    assert all_bookings() == []
