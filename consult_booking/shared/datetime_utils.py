"""Timezone helpers. Datetimes are stored as naive UTC; clients speak firm-local wall time."""

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import FIRM_TIMEZONE


def firm_today() -> date:
    return datetime.now(ZoneInfo(FIRM_TIMEZONE)).date()


def local_to_utc(day: date, wall_time: time) -> datetime:
    """Interpret a firm-local date and time and return the naive UTC datetime"""
    local = datetime.combine(day, wall_time, tzinfo=ZoneInfo(FIRM_TIMEZONE))
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def to_iso_utc(value: Optional[datetime]) -> Optional[str]:
    """Naive UTC datetime -> '2025-03-09T23:30:00.000Z'"""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
