"""
Slot Claim Sweeper
Releases availability slots left blocked by booking requests that died between
claiming the slot and inserting the booking
"""

import asyncio
import logging

from ..config import SLOT_CLAIM_TTL_MINUTES, SLOT_SWEEP_INTERVAL_SECONDS
from ..database import SessionLocal
from ..domain.availability.service import AvailabilityService

logger = logging.getLogger(__name__)


def sweep_stale_claims(max_age_minutes: int = SLOT_CLAIM_TTL_MINUTES) -> int:
    """Run one sweep; returns the number of slots released"""
    db = SessionLocal()
    try:
        return AvailabilityService(db).release_stale_claims(max_age_minutes)
    finally:
        db.close()


async def run_slot_sweeper():
    """
    Main worker loop - sweeps every SLOT_SWEEP_INTERVAL_SECONDS
    """
    logger.info(
        f"🚀 Starting slot claim sweeper (ttl={SLOT_CLAIM_TTL_MINUTES}min, "
        f"interval={SLOT_SWEEP_INTERVAL_SECONDS}s)..."
    )

    while True:
        try:
            sweep_stale_claims()
        except Exception as e:
            logger.error(f"❌ Error in slot sweeper loop: {e}")

        await asyncio.sleep(SLOT_SWEEP_INTERVAL_SECONDS)
