import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

BOOKING_STATUS_PENDING_PAYMENT = "pending_payment"


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class EventType(Base):
    __tablename__ = "event_types"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, default=30, nullable=False)  # minutes
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AvailabilitySlot(Base):
    """
    A bookable window. Rows are produced by the calendar sync job; this service only
    flips the blocking flags when a booking claims or releases the slot.
    """

    __tablename__ = "availability_slots"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_type_id = Column(String(36), ForeignKey("event_types.id"), nullable=True)
    slot_date = Column(Date, nullable=False, index=True)  # Local (firm timezone) date
    start_time = Column(DateTime, nullable=False)  # UTC
    end_time = Column(DateTime, nullable=False)  # UTC
    duration_minutes = Column(Integer, default=30, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    blocked_by_calendar = Column(Boolean, default=False, nullable=False)
    blocked_by_booking = Column(Boolean, default=False, nullable=False)
    booking_id = Column(String(36), nullable=True)
    # When a booking request claimed the slot; lets the sweep release abandoned claims
    claimed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_available and not self.blocked_by_calendar and not self.blocked_by_booking)


class Booking(Base):
    __tablename__ = "advanced_bookings"
    __table_args__ = (CheckConstraint("start_time < end_time", name="ck_booking_time_order"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=False, index=True)
    client_phone = Column(String(50), nullable=True)
    start_time = Column(DateTime, nullable=False)  # UTC
    end_time = Column(DateTime, nullable=False)  # UTC
    event_type_id = Column(String(36), ForeignKey("event_types.id"), nullable=True)
    event_type_name = Column(String(255), nullable=False)
    location_type = Column(String(50), default="video", nullable=False)
    # pending_payment -> confirmed/cancelled/completed (later transitions owned by the payment webhook)
    status = Column(String(50), default=BOOKING_STATUS_PENDING_PAYMENT, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    timezone = Column(String(64), nullable=False)
    custom_answers = Column(JSON, nullable=True)  # practiceType, practiceWebsite, uploadedFiles
    availability_slot_id = Column(String(36), ForeignKey("availability_slots.id"), nullable=True)
    google_event_id = Column(String(255), nullable=True)
    google_meet_link = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    event_type = relationship("EventType")


class GoogleCalendarIntegration(Base):
    """Firm-wide Google Calendar connection (single row)"""

    __tablename__ = "google_calendar_integrations"

    id = Column(Integer, primary_key=True, index=True)

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    token_expires_at = Column(DateTime, nullable=False)

    # Google user info
    google_user_email = Column(String(255), nullable=True)
    google_calendar_id = Column(String(500), nullable=True)

    auto_sync_enabled = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class SideEffectFailure(Base):
    """
    Outbox of best-effort side effects (calendar event, emails) that failed after a
    booking was persisted. Staff can review and retry these; resolved_at is set once
    handled.
    """

    __tablename__ = "side_effect_failures"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String(36), ForeignKey("advanced_bookings.id"), nullable=True, index=True)
    effect = Column(String(50), nullable=False)  # calendar_event, client_email, staff_email
    target = Column(String(255), nullable=True)  # recipient / calendar id
    error = Column(Text, nullable=True)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    resolved_at = Column(DateTime, nullable=True)
