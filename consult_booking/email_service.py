"""
Email Service using Resend
Booking emails are written as MJML templates and compiled to responsive HTML
"""

import logging
from datetime import datetime
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, EMAIL_REPLY_TO, RESEND_API_KEY, STAFF_NOTIFICATION_EMAIL
from .email_templates import booking_confirmation_template, staff_booking_notification_template
from .exceptions import SideEffectError
from .utils.sanitization import escape_context

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a result object with .html and .errors
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        return getattr(result, "html", None) or str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise SideEffectError("email", f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Without RESEND_API_KEY the message is only logged (local development).

    Returns:
        Send response dict (contains the provider message id)

    Raises:
        SideEffectError: when compilation or delivery fails
    """
    html_content = compile_mjml_to_html(mjml_content)

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    if not RESEND_API_KEY:
        logger.info(f"📧 Email would be sent (RESEND_API_KEY not set): to={recipients} subject={subject!r}")
        return {"id": f"dev-{int(datetime.utcnow().timestamp() * 1000)}"}

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": sender,
                "to": recipients,
                "subject": subject,
                "html": html_content,
                "reply_to": reply_to or EMAIL_REPLY_TO,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise SideEffectError("email", f"Failed to send email: {str(e)}") from e


# ============================================
# Booking emails
# ============================================


async def send_booking_confirmation_email(
    to: str,
    client_name: str,
    consultation_type: str,
    appointment_date: str,
    appointment_time: str,
    duration_minutes: int,
    confirmation_number: str,
    meeting_link: Optional[str] = None,
) -> dict:
    """Send booking received email to the client"""
    context = escape_context(
        {
            "client_name": client_name,
            "consultation_type": consultation_type,
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "duration_minutes": duration_minutes,
            "confirmation_number": confirmation_number,
            "meeting_link": meeting_link,
        }
    )
    mjml_content = booking_confirmation_template(**context)
    return await send_email(
        to=to,
        subject=f"Booking Received - {consultation_type}",
        mjml_content=mjml_content,
    )


async def send_staff_booking_notification(
    client_name: str,
    client_email: str,
    client_phone: Optional[str],
    consultation_type: str,
    appointment_date: str,
    appointment_time: str,
    duration_minutes: int,
    booking_id: str,
    practice_type: Optional[str] = None,
    practice_website: Optional[str] = None,
    notes: Optional[str] = None,
    uploaded_files: Optional[list[str]] = None,
    meeting_link: Optional[str] = None,
    slot_reserved: bool = False,
    to: Optional[str] = None,
) -> dict:
    """Notify firm staff of a new booking request; replies go straight to the client"""
    context = escape_context(
        {
            "client_name": client_name,
            "client_email": client_email,
            "client_phone": client_phone,
            "consultation_type": consultation_type,
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "duration_minutes": duration_minutes,
            "booking_id": booking_id,
            "practice_type": practice_type,
            "practice_website": practice_website,
            "notes": notes,
            "uploaded_files": uploaded_files,
            "meeting_link": meeting_link,
            "slot_reserved": slot_reserved,
        }
    )
    mjml_content = staff_booking_notification_template(**context)
    return await send_email(
        to=to or STAFF_NOTIFICATION_EMAIL,
        subject=f"New Booking: {consultation_type} - {client_name}",
        mjml_content=mjml_content,
        reply_to=client_email,
    )
