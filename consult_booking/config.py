import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./booking.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Public site URL (used in email links)
SITE_URL = os.getenv("SITE_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "HBL Legal <noreply@hamiltonbailey.com>")
EMAIL_REPLY_TO = os.getenv("EMAIL_REPLY_TO", "enquiries@hamiltonbailey.com")
# Staff inbox that receives a copy of every new booking
STAFF_NOTIFICATION_EMAIL = os.getenv("STAFF_NOTIFICATION_EMAIL", "enquiries@hamiltonbailey.com")

# Google Calendar OAuth Configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
PRIMARY_CALENDAR_EMAIL = os.getenv("PRIMARY_CALENDAR_EMAIL", "lw@hamiltonbailey.com")

# Booking defaults
FIRM_TIMEZONE = os.getenv("FIRM_TIMEZONE", "Australia/Adelaide")
DEFAULT_MEETING_LOCATION = os.getenv("DEFAULT_MEETING_LOCATION", "147 Pirie Street, Adelaide SA 5000")

# Slots claimed by a request that never produced a booking are released after this many minutes
SLOT_CLAIM_TTL_MINUTES = int(os.getenv("SLOT_CLAIM_TTL_MINUTES", "15"))
SLOT_SWEEP_INTERVAL_SECONDS = int(os.getenv("SLOT_SWEEP_INTERVAL_SECONDS", "300"))
