"""Unit tests for scheduler module.

Tests the APScheduler singleton pattern, startup, and shutdown.
"""

from unittest.mock import patch

import pytest


class TestSchedulerSingleton:
    """Tests for scheduler singleton pattern."""

    def test_get_scheduler_singleton(self):
        """Scheduler should be a singleton - same instance returned."""
        with patch("holderwatch.scheduler.scheduler._scheduler", None):
            from holderwatch.scheduler.scheduler import get_scheduler

            s1 = get_scheduler()
            s2 = get_scheduler()
            assert s1 is s2

    def test_job_defaults_prevent_overlap(self):
        """At most one instance per job; late runs are coalesced."""
        with patch("holderwatch.scheduler.scheduler._scheduler", None):
            from holderwatch.scheduler.scheduler import get_scheduler

            scheduler = get_scheduler()
            assert scheduler._job_defaults["max_instances"] == 1
            assert scheduler._job_defaults["coalesce"] is True


class TestSchedulerLifecycle:
    """Tests for scheduler start/shutdown."""

    @pytest.mark.asyncio
    async def test_start_scheduler_idempotent(self):
        """Start scheduler should be safe to call multiple times."""
        with patch("holderwatch.scheduler.scheduler._scheduler", None):
            from holderwatch.scheduler.scheduler import get_scheduler, start_scheduler

            await start_scheduler()
            await start_scheduler()  # Should not raise
            scheduler = get_scheduler()
            assert scheduler.running
            # Cleanup
            scheduler.shutdown(wait=False)

    @pytest.mark.asyncio
    async def test_shutdown_scheduler_stops_scheduler(self):
        """Shutdown scheduler should stop and clear the scheduler."""
        with patch("holderwatch.scheduler.scheduler._scheduler", None):
            import holderwatch.scheduler.scheduler as scheduler_module
            from holderwatch.scheduler.scheduler import (
                shutdown_scheduler,
                start_scheduler,
            )

            await start_scheduler()
            await shutdown_scheduler()

            # Singleton should be cleared
            assert scheduler_module._scheduler is None

    @pytest.mark.asyncio
    async def test_shutdown_scheduler_when_not_running(self):
        """Shutdown should be safe when scheduler not running."""
        with patch("holderwatch.scheduler.scheduler._scheduler", None):
            from holderwatch.scheduler.scheduler import shutdown_scheduler

            await shutdown_scheduler()  # Should not raise


class TestSchedulerStatus:
    """Tests for scheduler_status."""

    def test_status_without_scheduler(self):
        """Reporting status never creates a scheduler."""
        with patch("holderwatch.scheduler.scheduler._scheduler", None):
            import holderwatch.scheduler.scheduler as scheduler_module

            assert scheduler_module.scheduler_status() == {"running": False, "jobs": []}
            assert scheduler_module._scheduler is None

    @pytest.mark.asyncio
    async def test_status_lists_jobs_when_running(self):
        with patch("holderwatch.scheduler.scheduler._scheduler", None):
            from holderwatch.scheduler.scheduler import (
                get_scheduler,
                scheduler_status,
                shutdown_scheduler,
                start_scheduler,
            )

            await start_scheduler()
            get_scheduler().add_job(lambda: None, "interval", seconds=60, id="probe")
            try:
                assert scheduler_status() == {"running": True, "jobs": ["probe"]}
            finally:
                await shutdown_scheduler()
