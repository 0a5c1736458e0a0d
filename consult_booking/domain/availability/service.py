"""Availability service - Slot queries, claims and releases"""

import enum
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import PersistenceError, ValidationError
from ...models import AvailabilitySlot
from ...shared.datetime_utils import firm_today, to_iso_utc
from ...shared.validators import parse_date, validate_uuid
from .repository import AvailabilityRepository
from .schemas import SlotResponse

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_DAYS = 14


class SlotClaim(enum.Enum):
    """Outcome of trying to reserve a slot for one booking request"""

    CLAIMED = "claimed"
    ALREADY_TAKEN = "already_taken"
    NOT_FOUND = "not_found"


def serialize_slot(slot: AvailabilitySlot, include_availability: bool = True) -> dict:
    return SlotResponse(
        id=slot.id,
        slot_date=slot.slot_date.isoformat(),
        start_time=to_iso_utc(slot.start_time),
        end_time=to_iso_utc(slot.end_time),
        duration_minutes=slot.duration_minutes,
        is_available=slot.is_available if include_availability else None,
    ).model_dump(exclude_none=True)


class AvailabilityService:
    """Service layer for availability slots"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    def claim_slot(self, slot_id: str) -> SlotClaim:
        """
        Reserve a slot for a booking in progress.

        Raises:
            PersistenceError: if the database write itself fails
        """
        try:
            slot = self.repo.get_slot(self.db, slot_id)
            if not slot:
                return SlotClaim.NOT_FOUND

            if not slot.is_bookable:
                return SlotClaim.ALREADY_TAKEN

            updated = self.repo.claim_slot(self.db, slot_id, datetime.utcnow())
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error claiming slot {slot_id}: {e}")
            raise PersistenceError("Failed to reserve time slot. Please try again.") from e

        if updated == 0:
            # Another request claimed it between our read and our write
            logger.warning(f"⚠️ Lost race for slot {slot_id}")
            return SlotClaim.ALREADY_TAKEN

        logger.info(f"🔒 Slot {slot_id} claimed")
        return SlotClaim.CLAIMED

    def release_slot(self, slot_id: str) -> bool:
        """Compensate a claim. Never raises; returns False if the release failed."""
        try:
            self.repo.release_slot(self.db, slot_id)
            logger.info(f"🔓 Slot {slot_id} released")
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to release slot {slot_id}, it stays blocked until the sweep: {e}")
            return False

    def link_slot_to_booking(self, slot_id: str, booking_id: str) -> bool:
        """Best effort: a failure leaves the slot claimed without a booking link"""
        try:
            self.repo.link_booking(self.db, slot_id, booking_id)
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to link slot {slot_id} to booking {booking_id}: {e}")
            return False

    def list_available_slots(self, start_date: Optional[str], end_date: Optional[str]) -> dict:
        """Bookable slots between two dates (inclusive), grouped by date"""
        today = firm_today()
        try:
            start = parse_date(start_date) if start_date else today
            end = parse_date(end_date) if end_date else today + timedelta(days=DEFAULT_LOOKAHEAD_DAYS)
        except ValueError as e:
            raise ValidationError("Invalid date format. Use YYYY-MM-DD.") from e

        start = max(start, today)

        slots = self.repo.list_bookable_slots(self.db, start, end)

        slots_by_date: dict[str, list[dict]] = {}
        for slot in slots:
            slots_by_date.setdefault(slot.slot_date.isoformat(), []).append(serialize_slot(slot))

        return {
            "success": True,
            "slots": slots_by_date,
            "totalSlots": len(slots),
            "dateRange": {"start": start.isoformat(), "end": end.isoformat()},
        }

    def validate_slot(self, slot_id: Optional[str]) -> dict:
        """Check whether a slot can still be booked"""
        if not slot_id:
            raise ValidationError("Missing slotId in request body")
        if not validate_uuid(slot_id):
            raise ValidationError("Invalid slotId format")

        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            return {"available": False, "reason": "Slot not found"}

        reason = self._unavailable_reason(slot, firm_today())
        if reason:
            return {"available": False, "reason": reason, "slot": None}

        return {"available": True, "slot": serialize_slot(slot, include_availability=False)}

    @staticmethod
    def _unavailable_reason(slot: AvailabilitySlot, today: date) -> Optional[str]:
        if slot.slot_date < today:
            return "Slot date has passed"
        if not slot.is_available:
            return "Slot is no longer available"
        if slot.blocked_by_calendar:
            return "Slot is blocked by a calendar event"
        if slot.blocked_by_booking:
            return "Slot has already been booked"
        return None

    def release_stale_claims(self, max_age_minutes: int) -> int:
        """Release slots claimed more than max_age_minutes ago with no booking attached"""
        cutoff = datetime.utcnow() - timedelta(minutes=max_age_minutes)
        released = self.repo.release_stale_claims(self.db, cutoff)
        if released:
            logger.info(f"🧹 Released {released} stale slot claim(s) older than {max_age_minutes} min")
        return released
