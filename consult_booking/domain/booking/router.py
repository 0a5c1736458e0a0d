"""Booking router - Public booking endpoint"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import BookingRequest
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Booking"])

rate_limit_booking = create_rate_limiter(
    "booking", message="Please wait before making another booking request"
)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.post("/booking")
async def create_booking(
    data: BookingRequest,
    _: None = Depends(rate_limit_booking),
    service: BookingService = Depends(get_booking_service),
):
    """
    Create a consultation booking in pending_payment status.
    Optionally reserves the availability slot given by slotId.
    """
    return await service.create_booking(data)
