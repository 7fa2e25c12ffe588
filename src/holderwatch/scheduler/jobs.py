"""Scheduled jobs for HolderWatch.

This module defines the jobs that run on a schedule:
- Holder cache refresh: re-fetches every resident token

Usage:
    from holderwatch.scheduler.jobs import schedule_cache_refresh_job

    # Refresh every 30 seconds
    schedule_cache_refresh_job(cache, interval_seconds=30)
"""

import structlog
from apscheduler.triggers.interval import IntervalTrigger

from holderwatch.scheduler.scheduler import get_scheduler
from holderwatch.services.holders.cache import HolderCache

log = structlog.get_logger(__name__)

# Job ID constants
JOB_ID_CACHE_REFRESH = "holder_cache_refresh"


async def refresh_holder_cache_job(cache: HolderCache) -> None:
    """Scheduled job to refresh every resident token in the cache.

    Note:
        Handles all errors internally so a bad tick never removes the job.
    """
    log.debug("cache_refresh_job_started")

    try:
        refreshed = await cache.refresh_all()
        log.debug("cache_refresh_job_completed", refreshed=refreshed)
    except Exception as e:
        log.error("cache_refresh_job_failed", error=str(e))


def schedule_cache_refresh_job(cache: HolderCache, interval_seconds: int) -> None:
    """Schedule or reschedule the cache refresh job.

    Args:
        cache: Cache whose resident tokens are refreshed.
        interval_seconds: Seconds between refresh ticks.

    Raises:
        ValueError: If interval_seconds is not positive.
    """
    if interval_seconds <= 0:
        raise ValueError(f"Invalid interval: {interval_seconds}. Must be greater than 0")

    scheduler = get_scheduler()

    scheduler.add_job(
        refresh_holder_cache_job,
        trigger=IntervalTrigger(seconds=interval_seconds),
        args=[cache],
        id=JOB_ID_CACHE_REFRESH,
        name="Holder Cache Refresh",
        replace_existing=True,
    )

    log.info(
        "cache_refresh_job_scheduled",
        job_id=JOB_ID_CACHE_REFRESH,
        interval_seconds=interval_seconds,
    )


def unschedule_cache_refresh_job() -> None:
    """Remove the refresh job from scheduler.

    Safe to call when job is not scheduled.
    """
    scheduler = get_scheduler()
    if scheduler.get_job(JOB_ID_CACHE_REFRESH):
        scheduler.remove_job(JOB_ID_CACHE_REFRESH)
        log.info("cache_refresh_job_unscheduled", job_id=JOB_ID_CACHE_REFRESH)


def get_next_refresh_time() -> str | None:
    """Get the next scheduled refresh time.

    Returns:
        ISO format datetime string or None if not scheduled.
    """
    scheduler = get_scheduler()
    job = scheduler.get_job(JOB_ID_CACHE_REFRESH)

    if job and getattr(job, "next_run_time", None):
        return job.next_run_time.isoformat()
    return None
