"""
Booking Notification Service
Sends the client confirmation and the staff notification for a new booking.
Each send is best effort: failures are logged and written to the side-effect
outbox, never raised to the caller.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import FIRM_TIMEZONE, STAFF_NOTIFICATION_EMAIL
from ..email_service import send_booking_confirmation_email, send_staff_booking_notification
from ..models import Booking, SideEffectFailure

logger = logging.getLogger(__name__)

EFFECT_CALENDAR_EVENT = "calendar_event"
EFFECT_CLIENT_EMAIL = "client_email"
EFFECT_STAFF_EMAIL = "staff_email"


def record_side_effect_failure(
    db: Session,
    booking_id: Optional[str],
    effect: str,
    error: str,
    target: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
) -> Optional[SideEffectFailure]:
    """Log a failed side effect and keep it in the outbox for follow-up"""
    logger.error(
        f"❌ Side effect failed: effect={effect} booking_id={booking_id} target={target} error={error}"
    )
    try:
        failure = SideEffectFailure(
            booking_id=booking_id,
            effect=effect,
            target=target,
            error=error,
            payload=payload,
        )
        db.add(failure)
        db.commit()
        return failure
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Could not record side effect failure for booking {booking_id}: {e}")
        return None


def format_appointment(start_time: datetime) -> tuple[str, str]:
    """Local display strings for a naive UTC start time, e.g. ("Monday, 10 March 2025", "10:00 AM")"""
    local = start_time.replace(tzinfo=ZoneInfo("UTC")).astimezone(ZoneInfo(FIRM_TIMEZONE))
    date_str = f"{local.strftime('%A')}, {local.day} {local.strftime('%B %Y')}"
    time_str = local.strftime("%I:%M %p").lstrip("0")
    return date_str, time_str


async def send_booking_notifications(
    db: Session, booking: Booking, meeting_link: Optional[str] = None
) -> dict:
    """
    Send client confirmation, then staff notification

    Returns:
        Dict with client_email_sent / staff_email_sent and any error strings
    """
    result = {
        "client_email_sent": False,
        "staff_email_sent": False,
        "client_email_error": None,
        "staff_email_error": None,
    }

    appointment_date, appointment_time = format_appointment(booking.start_time)
    duration_minutes = int((booking.end_time - booking.start_time).total_seconds() // 60)
    answers = booking.custom_answers or {}

    try:
        logger.info(f"📧 Sending booking confirmation to {booking.client_email}")
        await send_booking_confirmation_email(
            to=booking.client_email,
            client_name=booking.client_name,
            consultation_type=booking.event_type_name,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            duration_minutes=duration_minutes,
            confirmation_number=booking.id[:8].upper(),
            meeting_link=meeting_link,
        )
        result["client_email_sent"] = True
    except Exception as e:
        result["client_email_error"] = str(e)
        record_side_effect_failure(
            db,
            booking.id,
            EFFECT_CLIENT_EMAIL,
            str(e),
            target=booking.client_email,
            payload={"appointment_date": appointment_date, "appointment_time": appointment_time},
        )

    try:
        logger.info(f"📧 Sending staff notification for booking {booking.id}")
        await send_staff_booking_notification(
            client_name=booking.client_name,
            client_email=booking.client_email,
            client_phone=booking.client_phone,
            consultation_type=booking.event_type_name,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            duration_minutes=duration_minutes,
            booking_id=booking.id,
            practice_type=answers.get("practiceType"),
            practice_website=answers.get("practiceWebsite"),
            notes=booking.notes,
            uploaded_files=answers.get("uploadedFiles"),
            meeting_link=meeting_link,
            slot_reserved=booking.availability_slot_id is not None,
        )
        result["staff_email_sent"] = True
    except Exception as e:
        result["staff_email_error"] = str(e)
        record_side_effect_failure(
            db,
            booking.id,
            EFFECT_STAFF_EMAIL,
            str(e),
            target=STAFF_NOTIFICATION_EMAIL,
            payload={"appointment_date": appointment_date, "appointment_time": appointment_time},
        )

    return result
