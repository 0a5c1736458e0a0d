"""Booking repository - Database operations for bookings and event types"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, EventType


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_event_types(db: Session, limit: int = 10) -> list[EventType]:
        """Active event types, oldest first"""
        return (
            db.query(EventType)
            .filter(EventType.is_active.is_(True))
            .order_by(EventType.created_at.asc(), EventType.name.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        """Insert a booking row"""
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def set_calendar_event(
        db: Session, booking: Booking, event_id: str, meet_link: Optional[str] = None
    ) -> Booking:
        """Attach the external calendar event to a booking"""
        booking.google_event_id = event_id
        if meet_link:
            booking.google_meet_link = meet_link
        db.commit()
        db.refresh(booking)
        return booking
