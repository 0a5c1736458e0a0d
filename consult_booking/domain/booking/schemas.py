"""Booking domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel


class BookingRequest(BaseModel):
    """
    Public booking form submission.
    Every field is optional here; required-field checks happen in BookingService so
    that missing fields are reported as 400 with a readable message.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD, firm-local
    time: Optional[str] = None  # "10:00 AM" or "14:30", firm-local
    message: Optional[str] = None
    consultationType: Optional[str] = None
    practiceType: Optional[str] = None
    practiceWebsite: Optional[str] = None
    uploadedFiles: Optional[list[str]] = None
    slotId: Optional[str] = None


class BookingSummary(BaseModel):
    """Booking as returned to the client"""

    id: str
    status: str
    clientName: str
    clientEmail: str
    startTime: str
    endTime: str
    consultationType: str
    durationMinutes: int
    availabilitySlotId: Optional[str] = None
    googleEventId: Optional[str] = None
    meetingLink: Optional[str] = None
