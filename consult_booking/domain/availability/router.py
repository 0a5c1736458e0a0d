"""Availability router - Public slot listing and validation endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import ValidateSlotRequest
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/availability", tags=["Availability"])

rate_limit_availability = create_rate_limiter("availability")


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


@router.get("/slots")
async def get_available_slots(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    service: AvailabilityService = Depends(get_availability_service),
    _: None = Depends(rate_limit_availability),
):
    """Bookable slots grouped by date (defaults to the next 14 days)"""
    return service.list_available_slots(start_date, end_date)


@router.post("/validate")
async def validate_slot(
    data: ValidateSlotRequest,
    service: AvailabilityService = Depends(get_availability_service),
    _: None = Depends(rate_limit_availability),
):
    """Check that a slot is still bookable before submitting a booking"""
    return service.validate_slot(data.slotId)
