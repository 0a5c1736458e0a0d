"""
Booking API error taxonomy.
Each error carries the HTTP status and the user-facing message rendered as {"error": ...}.
"""

from typing import Optional


class BookingAPIError(Exception):
    """Base class for errors surfaced to API clients"""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookingAPIError):
    """Malformed or missing client input"""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(BookingAPIError):
    status_code = 404
    default_message = "Not found"


class ConflictError(BookingAPIError):
    """Resource is no longer available; client should re-query and resubmit"""

    status_code = 409
    default_message = "Conflict"


class RateLimitError(BookingAPIError):
    status_code = 429
    default_message = "Please wait before making another request"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message)


class PersistenceError(BookingAPIError):
    """A database write failed; any slot claim has already been compensated"""

    status_code = 500
    default_message = "Failed to save changes. Please try again."


class ConfigurationError(BookingAPIError):
    status_code = 500
    default_message = "Booking configuration error. Please contact support."


class SideEffectError(Exception):
    """Calendar or email failure. Logged and recorded, never surfaced to the client."""

    def __init__(self, effect: str, message: str):
        self.effect = effect
        super().__init__(f"{effect}: {message}")
