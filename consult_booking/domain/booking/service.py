"""Booking service - Slot reservation, booking persistence and follow-up side effects"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import FIRM_TIMEZONE
from ...exceptions import ConfigurationError, ConflictError, NotFoundError, PersistenceError, ValidationError
from ...models import BOOKING_STATUS_PENDING_PAYMENT, Booking, EventType
from ...services.google_calendar_service import create_calendar_event
from ...services.notification_service import (
    EFFECT_CALENDAR_EVENT,
    record_side_effect_failure,
    send_booking_notifications,
)
from ...shared.datetime_utils import local_to_utc, to_iso_utc
from ...shared.validators import parse_date, parse_time, validate_email
from ..availability.service import AvailabilityService, SlotClaim
from .repository import BookingRepository
from .schemas import BookingRequest, BookingSummary

logger = logging.getLogger(__name__)

DEFAULT_CONSULTATION_TYPE = "Initial Consultation"
DEFAULT_DURATION_MINUTES = 30

CONSULTATION_DURATIONS = {
    "Initial Consultation": 30,
    "Urgent Legal Advice": 30,
    "Follow-up Consultation": 15,
    "Document Review Session": 60,
    "Strategy Planning Session": 90,
}


def get_consultation_duration(consultation_type: Optional[str]) -> int:
    """Length in minutes of a consultation type (30 when unrecognised)"""
    return CONSULTATION_DURATIONS.get(consultation_type or "", DEFAULT_DURATION_MINUTES)


def select_event_type(event_types: list[EventType], requested: Optional[str]) -> Optional[EventType]:
    """
    Pick the event type for a booking: a name match on the requested consultation type,
    otherwise a generic consultation type, otherwise the first one configured.
    """
    if not event_types:
        return None

    if requested:
        wanted = requested.strip().lower()
        for et in event_types:
            name = et.name.lower()
            if wanted in name or name in wanted:
                return et

    for et in event_types:
        name = et.name.lower()
        if "initial" in name or "consultation" in name:
            return et

    return event_types[0]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class BookingService:
    """Service layer for the booking flow"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.availability = AvailabilityService(db)

    async def create_booking(self, data: BookingRequest) -> dict:
        """
        Validate, reserve the slot (if any), persist the booking, then run the calendar
        and email side effects. Once the booking row exists the request succeeds even if
        every side effect fails.
        """
        name = _clean(data.name)
        email = _clean(data.email)
        date_str = _clean(data.date)
        time_str = _clean(data.time)

        if not name or not email or not date_str or not time_str:
            raise ValidationError("Missing required fields: name, email, date, and time are required")

        try:
            email = validate_email(email)
        except ValueError as e:
            raise ValidationError("Invalid email format") from e

        try:
            start_time = local_to_utc(parse_date(date_str), parse_time(time_str))
        except ValueError as e:
            raise ValidationError("Invalid date or time format") from e

        consultation_type = _clean(data.consultationType)
        duration_minutes = get_consultation_duration(consultation_type)
        end_time = start_time + timedelta(minutes=duration_minutes)

        event_type = select_event_type(
            self.repo.get_event_types(self.db), consultation_type or DEFAULT_CONSULTATION_TYPE
        )
        if not event_type:
            logger.error("❌ No event types found in database")
            raise ConfigurationError("Booking configuration error. Please contact support.")

        slot_id = _clean(data.slotId)
        if slot_id:
            self._claim_slot(slot_id)

        practice_type = _clean(data.practiceType)
        practice_website = _clean(data.practiceWebsite)
        custom_answers = None
        if practice_type or practice_website:
            custom_answers = {
                "practiceType": practice_type or "",
                "practiceWebsite": practice_website or "",
                "uploadedFiles": data.uploadedFiles or [],
            }

        booking_data = {
            "client_name": name,
            "client_email": email,
            "client_phone": _clean(data.phone),
            "start_time": start_time,
            "end_time": end_time,
            "event_type_id": event_type.id,
            "event_type_name": consultation_type or event_type.name,
            "location_type": "video",
            "status": BOOKING_STATUS_PENDING_PAYMENT,
            "notes": _clean(data.message),
            "timezone": FIRM_TIMEZONE,
            "custom_answers": custom_answers,
            "availability_slot_id": slot_id,
        }

        try:
            booking = self.repo.create_booking(self.db, **booking_data)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Booking insert error: {e}")
            if slot_id:
                self.availability.release_slot(slot_id)
            raise PersistenceError("Failed to create booking. Please try again.") from e

        logger.info(f"✅ Booking {booking.id} created for {email} ({booking.event_type_name})")

        if slot_id:
            self.availability.link_slot_to_booking(slot_id, booking.id)

        calendar_result, meeting_link = await self._create_calendar_event(booking)

        await send_booking_notifications(self.db, booking, meeting_link=meeting_link)

        summary = BookingSummary(
            id=booking.id,
            status=booking.status,
            clientName=booking.client_name,
            clientEmail=booking.client_email,
            startTime=to_iso_utc(booking.start_time),
            endTime=to_iso_utc(booking.end_time),
            consultationType=booking.event_type_name,
            durationMinutes=duration_minutes,
            availabilitySlotId=booking.availability_slot_id,
            googleEventId=booking.google_event_id,
            meetingLink=meeting_link,
        )

        return {
            "success": True,
            "message": "Booking created - awaiting payment",
            "booking": summary.model_dump(),
            "bookingId": booking.id,
            "calendarEvent": calendar_result,
            "redirectToPayment": True,
        }

    def _claim_slot(self, slot_id: str) -> None:
        claim = self.availability.claim_slot(slot_id)

        if claim is SlotClaim.NOT_FOUND:
            raise NotFoundError("Selected time slot not found. Please select another time.")
        if claim is SlotClaim.ALREADY_TAKEN:
            raise ConflictError("This time slot is no longer available. Please select another time.")

    async def _create_calendar_event(self, booking: Booking) -> tuple[dict, Optional[str]]:
        """Create the calendar event and attach it to the booking. Never raises."""
        answers = booking.custom_answers or {}
        uploaded_files = answers.get("uploadedFiles") or []

        description_lines = [
            f"Client: {booking.client_name}",
            f"Email: {booking.client_email}",
            f"Phone: {booking.client_phone or 'Not provided'}",
            f"Practice Type: {answers.get('practiceType') or 'Not specified'}",
            f"Practice Website: {answers.get('practiceWebsite') or 'Not provided'}",
            "",
            "Notes:",
            booking.notes or "No additional notes",
        ]
        if uploaded_files:
            description_lines += ["", f"Uploaded Documents: {', '.join(uploaded_files)}"]

        try:
            result = await create_calendar_event(
                self.db,
                summary=f"{booking.event_type_name} - {booking.client_name}",
                description="\n".join(description_lines),
                start_time=booking.start_time,
                end_time=booking.end_time,
                attendee_email=booking.client_email,
                attendee_name=booking.client_name,
                location="Video Conference",
            )
        except Exception as e:
            result = {"success": False, "error": str(e)}

        if not result.get("success"):
            record_side_effect_failure(
                self.db,
                booking.id,
                EFFECT_CALENDAR_EVENT,
                result.get("error") or "Calendar event creation failed",
                payload={"start_time": to_iso_utc(booking.start_time)},
            )
            return result, None

        if result.get("pending") or not result.get("eventId"):
            return result, None

        meeting_link = (result.get("eventData") or {}).get("hangoutLink")
        try:
            self.repo.set_calendar_event(self.db, booking, result["eventId"], meeting_link)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to store calendar event {result['eventId']} on booking {booking.id}: {e}")
            record_side_effect_failure(
                self.db,
                booking.id,
                EFFECT_CALENDAR_EVENT,
                f"Event created but not stored on booking: {e}",
                target=result["eventId"],
                payload={"google_event_id": result["eventId"], "google_meet_link": meeting_link},
            )

        return result, meeting_link
