"""Availability domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel


class SlotResponse(BaseModel):
    id: str
    slot_date: str
    start_time: str
    end_time: str
    duration_minutes: int
    is_available: Optional[bool] = None


class ValidateSlotRequest(BaseModel):
    slotId: Optional[str] = None
