"""Health check endpoint with scheduler status."""

from typing import Any

from fastapi import APIRouter

from holderwatch.config import get_settings
from holderwatch.scheduler.jobs import get_next_refresh_time
from holderwatch.scheduler.scheduler import scheduler_status

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """
    Liveness probe. Never touches the cache or the RPC endpoint.

    Returns:
        dict with status, service name, version and refresher state.
    """
    settings = get_settings()

    scheduler_info = scheduler_status()
    scheduler_info["next_refresh"] = (
        get_next_refresh_time() if scheduler_info["running"] else None
    )

    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
        "scheduler": scheduler_info,
    }
