"""
Slot Claim Sweeper Runner
Run this as a separate process: python run_slot_sweep.py
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from consult_booking.workers.slot_sweeper import run_slot_sweeper

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("🚀 Starting Slot Claim Sweeper...")
    try:
        asyncio.run(run_slot_sweeper())
    except KeyboardInterrupt:
        logger.info("👋 Slot sweeper stopped by user")
    except Exception as e:
        logger.error(f"❌ Slot sweeper crashed: {e}")
        sys.exit(1)
