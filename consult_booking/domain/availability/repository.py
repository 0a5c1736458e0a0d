"""Availability repository - Database operations for availability slots"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import exists
from sqlalchemy.orm import Session

from ...models import AvailabilitySlot, Booking


class AvailabilityRepository:
    """Repository for availability slot database operations"""

    @staticmethod
    def get_slot(db: Session, slot_id: str) -> Optional[AvailabilitySlot]:
        return db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id).first()

    @staticmethod
    def list_bookable_slots(db: Session, start_date: date, end_date: date) -> list[AvailabilitySlot]:
        """Slots that are available and unblocked, ordered by date then start time"""
        return (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.is_available.is_(True),
                AvailabilitySlot.blocked_by_calendar.is_(False),
                AvailabilitySlot.blocked_by_booking.is_(False),
                AvailabilitySlot.slot_date >= start_date,
                AvailabilitySlot.slot_date <= end_date,
            )
            .order_by(AvailabilitySlot.slot_date.asc(), AvailabilitySlot.start_time.asc())
            .all()
        )

    @staticmethod
    def claim_slot(db: Session, slot_id: str, claimed_at: datetime) -> int:
        """
        Conditionally mark a slot as taken.
        The WHERE clause re-checks availability at write time, so of several concurrent
        claims on one slot at most one affects a row. Returns the affected row count.
        """
        updated = (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.id == slot_id,
                AvailabilitySlot.is_available.is_(True),
                AvailabilitySlot.blocked_by_booking.is_(False),
                AvailabilitySlot.blocked_by_calendar.is_(False),
            )
            .update(
                {"is_available": False, "blocked_by_booking": True, "claimed_at": claimed_at},
                synchronize_session=False,
            )
        )
        db.commit()
        return updated

    @staticmethod
    def release_slot(db: Session, slot_id: str) -> int:
        """Undo a claim: make the slot bookable again and drop any booking link"""
        updated = (
            db.query(AvailabilitySlot)
            .filter(AvailabilitySlot.id == slot_id)
            .update(
                {
                    "is_available": True,
                    "blocked_by_booking": False,
                    "booking_id": None,
                    "claimed_at": None,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return updated

    @staticmethod
    def link_booking(db: Session, slot_id: str, booking_id: str) -> int:
        updated = (
            db.query(AvailabilitySlot)
            .filter(AvailabilitySlot.id == slot_id)
            .update({"booking_id": booking_id}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def release_stale_claims(db: Session, claimed_before: datetime) -> int:
        """
        Release claims older than the cutoff that never produced a booking.
        A booking row pointing at the slot keeps it claimed even when the
        slot-side booking_id link was never written.
        """
        updated = (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.blocked_by_booking.is_(True),
                AvailabilitySlot.booking_id.is_(None),
                AvailabilitySlot.claimed_at.isnot(None),
                AvailabilitySlot.claimed_at < claimed_before,
                ~exists().where(Booking.availability_slot_id == AvailabilitySlot.id),
            )
            .update(
                {"is_available": True, "blocked_by_booking": False, "claimed_at": None},
                synchronize_session=False,
            )
        )
        db.commit()
        return updated
