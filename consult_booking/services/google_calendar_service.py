"""
Google Calendar Service
Creates consultation events on the firm calendar through the REST API
"""
import base64
import hashlib
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from ..config import (
    DEFAULT_MEETING_LOCATION,
    FIRM_TIMEZONE,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    PRIMARY_CALENDAR_EMAIL,
    SECRET_KEY,
)
from ..models import GoogleCalendarIntegration

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
HTTP_TIMEOUT = 15.0


def _get_cipher() -> Fernet:
    """Fernet cipher keyed from SECRET_KEY"""
    key = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
    return Fernet(key)


def encrypt_token(token: str) -> str:
    return _get_cipher().encrypt(token.encode()).decode()


def decrypt_token(token: str) -> str:
    return _get_cipher().decrypt(token.encode()).decode()


def get_calendar_integration(db: Session) -> Optional[GoogleCalendarIntegration]:
    """Return the firm calendar connection, if one has been set up"""
    return db.query(GoogleCalendarIntegration).order_by(GoogleCalendarIntegration.id).first()


async def get_valid_access_token(integration: GoogleCalendarIntegration, db: Session) -> Optional[str]:
    """
    Get a valid access token, refreshing if necessary
    Returns None if refresh fails
    """
    try:
        # Check if token is expired or about to expire (within 5 minutes)
        if integration.token_expires_at > datetime.utcnow() + timedelta(minutes=5):
            return decrypt_token(integration.access_token)

        logger.info("🔄 Google Calendar token expired, refreshing...")
        refresh_token = decrypt_token(integration.refresh_token)

        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )

        if response.status_code != 200:
            logger.error(f"❌ Token refresh failed: {response.text}")
            return None

        tokens = response.json()
        new_access_token = tokens.get("access_token")
        expires_in = tokens.get("expires_in", 3600)

        if not new_access_token:
            logger.error("❌ No access token in refresh response")
            return None

        integration.access_token = encrypt_token(new_access_token)
        integration.token_expires_at = datetime.utcnow() + timedelta(seconds=expires_in)
        db.commit()

        logger.info("✅ Google Calendar token refreshed successfully")
        return new_access_token

    except Exception as e:
        logger.error(f"❌ Error getting valid access token: {str(e)}")
        return None


def build_event_payload(
    summary: str,
    description: str,
    start_time: datetime,
    end_time: datetime,
    attendee_email: Optional[str] = None,
    attendee_name: Optional[str] = None,
    location: Optional[str] = None,
) -> dict[str, Any]:
    """Google Calendar event body; start/end are naive UTC datetimes"""
    attendees = []
    if attendee_email:
        attendees.append({"email": attendee_email, "displayName": attendee_name})

    return {
        "summary": summary,
        "description": description,
        "start": {
            "dateTime": start_time.replace(tzinfo=timezone.utc).isoformat(),
            "timeZone": FIRM_TIMEZONE,
        },
        "end": {
            "dateTime": end_time.replace(tzinfo=timezone.utc).isoformat(),
            "timeZone": FIRM_TIMEZONE,
        },
        "attendees": attendees,
        "location": location or DEFAULT_MEETING_LOCATION,
        "conferenceData": {
            "createRequest": {
                "requestId": f"hbl-{int(time.time() * 1000)}",
                "conferenceSolutionKey": {"type": "hangoutsMeet"},
            }
        },
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "email", "minutes": 60},
                {"method": "popup", "minutes": 30},
            ],
        },
    }


async def create_calendar_event(
    db: Session,
    summary: str,
    description: str,
    start_time: datetime,
    end_time: datetime,
    attendee_email: Optional[str] = None,
    attendee_name: Optional[str] = None,
    location: Optional[str] = None,
) -> dict[str, Any]:
    """
    Create an event on the firm calendar.

    Returns a result dict:
    - {"success": True, "eventId", "htmlLink", "eventData", "message"} when created
    - {"success": True, "pending": True, "eventId": "pending-...", ...} when no calendar
      is connected (event prepared and logged only)
    - {"success": False, "error"} on failure
    """
    event_data = build_event_payload(
        summary, description, start_time, end_time, attendee_email, attendee_name, location
    )

    try:
        integration = get_calendar_integration(db)

        if not integration or not integration.auto_sync_enabled:
            logger.info(
                f"ℹ️ Google Calendar not connected - event prepared for {PRIMARY_CALENDAR_EMAIL}: "
                f"{summary} at {event_data['start']['dateTime']}"
            )
            return {
                "success": True,
                "pending": True,
                "eventId": f"pending-{int(time.time() * 1000)}",
                "message": "Calendar event prepared - OAuth setup required for automatic calendar integration",
                "eventData": event_data,
            }

        access_token = await get_valid_access_token(integration, db)
        if not access_token:
            return {"success": False, "error": "Failed to get valid Google Calendar access token"}

        calendar_id = integration.google_calendar_id or "primary"
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/{calendar_id}/events",
                params={"conferenceDataVersion": 1, "sendUpdates": "all"},
                headers={"Authorization": f"Bearer {access_token}"},
                json=event_data,
            )

        if response.status_code not in (200, 201):
            logger.error(f"❌ Failed to create calendar event: {response.text}")
            return {"success": False, "error": f"Google Calendar API error: {response.status_code}"}

        event = response.json()
        logger.info(f"✅ Google Calendar event created: {event.get('id')}")
        return {
            "success": True,
            "eventId": event.get("id"),
            "htmlLink": event.get("htmlLink"),
            "message": "Calendar event created successfully",
            "eventData": event,
        }

    except Exception as e:
        logger.error(f"❌ Error creating calendar event: {str(e)}")
        return {"success": False, "error": str(e)}
