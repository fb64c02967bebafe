#!/usr/bin/env python3
"""
Daily Reputation Job

Resets higher-tier conversation counters for the new UTC day and
recalculates every user's reputation tier.
Run as a cron job shortly after midnight UTC, or manually.

Usage:
    python -m scripts.daily_reputation_job                    # Reset counters and recalculate
    python -m scripts.daily_reputation_job --counters-only    # Only reset counters
    python -m scripts.daily_reputation_job --date 2026-10-19  # Reset for a specific UTC day
"""

import asyncio
import argparse
import logging
from datetime import date

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gylde.infrastructure.db.database import close_db, get_session_context
from gylde.infrastructure.services.reputation_service import ReputationService
from gylde.utils.datetime import utc_today

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run_daily_job(today: str, counters_only: bool = False, batch_size: int = 50) -> dict:
    """
    Reset stale counters, then recalculate reputations.

    Re-running on the same day resets no counters.
    """
    stats = {"date": today, "counters_reset": 0, "processed": 0, "failed": 0}

    async with get_session_context() as session:
        service = ReputationService(session)
        stats["counters_reset"] = await service.reset_daily_counters(today)

        if not counters_only:
            stats.update(await service.recalculate_all(batch_size=batch_size))

    logger.info(f"Daily reputation job complete: {stats}")
    return stats


def _iso_date(value: str) -> str:
    return date.fromisoformat(value).isoformat()


async def main():
    parser = argparse.ArgumentParser(description="Daily counter reset and reputation recalculation")
    parser.add_argument(
        "--date",
        type=_iso_date,
        default=None,
        help="UTC day to reset counters for, as YYYY-MM-DD (default: today)"
    )
    parser.add_argument(
        "--counters-only",
        action="store_true",
        help="Reset counters without recalculating reputations"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=50,
        help="Users loaded per page during recalculation (default: 50)"
    )
    args = parser.parse_args()

    try:
        stats = await run_daily_job(
            today=args.date or utc_today(),
            counters_only=args.counters_only,
            batch_size=args.batch_size,
        )
    finally:
        await close_db()

    print("\n=== Daily Reputation Job Complete ===")
    print(f"Date: {stats['date']}")
    print(f"Counters reset: {stats['counters_reset']}")
    print(f"Recalculated: {stats['processed']}")
    print(f"Failed: {stats['failed']}")


if __name__ == "__main__":
    asyncio.run(main())
