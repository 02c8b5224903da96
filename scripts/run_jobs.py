#!/usr/bin/env python3
"""
Run one of the scheduled jobs once, outside the API process.

Useful for backfills and for checking a deployment without waiting for the
scheduler. Uses the same configuration (.env, config/default.yaml) as the
service.

Usage:
    # Create today's reminders (skipped if already generated by this process)
    python scripts/run_jobs.py generate

    # One delivery iteration
    python scripts/run_jobs.py deliver

    # Rebuild every learner's metrics snapshot
    python scripts/run_jobs.py metrics
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add backend to path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))


async def main(job: str) -> int:
    from studypulse.config import settings
    from studypulse.db.base import async_session_maker, engine
    from studypulse.services.clock import SystemClock
    from studypulse.services.notifications import HttpPushSender
    from studypulse.services.scheduler import NotificationScheduler

    scheduler = NotificationScheduler(
        session_factory=async_session_maker,
        sender_factory=HttpPushSender.from_settings,
        clock=SystemClock(settings.local_tz),
        settings=settings,
    )

    try:
        if job == "generate":
            result = await scheduler.run_generation(force=True)
        elif job == "deliver":
            result = await scheduler.run_delivery()
        else:
            result = await scheduler.run_metrics_sweep()
        print(result.model_dump_json(indent=2))
        return 0

    except Exception as e:
        print(f"ERROR: {e}")
        import traceback
        traceback.print_exc()
        return 1

    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a study reminder job once")
    parser.add_argument("job", choices=["generate", "deliver", "metrics"])
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    sys.exit(asyncio.run(main(args.job)))
