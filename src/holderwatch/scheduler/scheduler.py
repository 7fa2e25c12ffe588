"""Process-wide AsyncIOScheduler used by the API's background refresher.

The scheduler is created lazily and only started from the app lifespan,
so importing this module never touches the event loop.
"""

from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

log = structlog.get_logger(__name__)

# One run per job at a time; a late tick is merged into the next one
JOB_DEFAULTS = {
    "coalesce": True,
    "max_instances": 1,
    "misfire_grace_time": 30,
}

_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Return the shared scheduler, creating it (stopped) on first use."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(job_defaults=JOB_DEFAULTS)
        log.debug("scheduler_created")
    return _scheduler


async def start_scheduler() -> None:
    """Start the scheduler on the running loop. No-op if already running."""
    scheduler = get_scheduler()
    if scheduler.running:
        return
    scheduler.start()
    log.info("scheduler_started", jobs=len(scheduler.get_jobs()))


async def shutdown_scheduler() -> None:
    """Stop the scheduler without waiting for a running refresh, then forget it."""
    global _scheduler
    scheduler, _scheduler = _scheduler, None
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        log.info("scheduler_shutdown")


def scheduler_status() -> dict[str, Any]:
    """Describe the scheduler for the health endpoint.

    Does not create a scheduler when none exists (monitor-only runs and
    bare test apps report ``running: False``).
    """
    if _scheduler is None or not _scheduler.running:
        return {"running": False, "jobs": []}
    return {"running": True, "jobs": [job.id for job in _scheduler.get_jobs()]}
