"""APScheduler setup shared by every tracking session."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Create the scheduler that runs every session's poll and countdown jobs."""
    return AsyncIOScheduler()


def add_housekeeping_jobs(scheduler: AsyncIOScheduler, registry) -> None:
    """Register the app-wide jobs that are not tied to one session."""
    from stoplive.config import settings

    # Drop sessions whose page went away without closing them
    scheduler.add_job(
        registry.reap_idle,
        "interval",
        seconds=settings.session_reap_interval_seconds,
        id="reap_idle_sessions",
        name="Close idle tracking sessions",
        max_instances=1,
    )
