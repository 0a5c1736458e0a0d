"""Shared validation utilities"""

import re
import uuid
from datetime import date, datetime, time
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_12H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
TIME_24H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Accepts anything shaped like local@domain.tld (no whitespace, exactly one "@",
    a dot in the domain part).

    Returns:
        Lowercase, stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")

    return email


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date string"""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid date: {value!r}") from e


def parse_time(value: str) -> time:
    """
    Parse a wall-clock time.
    Handles both 12h ("9:00 AM", "2:30pm") and 24h ("14:30") formats.
    """
    value = (value or "").strip()

    match = TIME_12H_PATTERN.match(value)
    if match:
        hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if not 1 <= hours <= 12:
            raise ValueError(f"Invalid time: {value!r}")
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
    else:
        match = TIME_24H_PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid time: {value!r}")
        hours, minutes = int(match.group(1)), int(match.group(2))

    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {value!r}")
    return time(hours, minutes)
