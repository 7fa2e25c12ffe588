"""HolderWatch - Main application entry point."""

import asyncio
import signal
import sys
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from holderwatch.api.routes import health, holders
from holderwatch.cli import build_settings, parse_args
from holderwatch.config import Settings, get_settings
from holderwatch.config.logging import configure_logging
from holderwatch.core.exceptions import ConfigurationError, HolderWatchError
from holderwatch.monitor import HolderMonitor
from holderwatch.scheduler.jobs import (
    schedule_cache_refresh_job,
    unschedule_cache_refresh_job,
)
from holderwatch.scheduler.scheduler import shutdown_scheduler, start_scheduler
from holderwatch.services.holders.cache import close_holder_cache, get_holder_cache
from holderwatch.services.solana.rate_limiter import configure_request_spacing
from holderwatch.services.solana.rpc_client import SolanaRPCClient

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle.

    On startup: schedule the background cache refresh.
    On shutdown: stop the scheduler and close the cache.
    """
    settings: Settings = app.state.settings
    cache = get_holder_cache(settings)

    schedule_cache_refresh_job(cache, settings.cache_refresh_interval)
    await start_scheduler()

    yield

    unschedule_cache_refresh_job()
    await shutdown_scheduler()
    await close_holder_cache()
    log.info("shutdown_complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to serve with. Defaults to get_settings().

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    application = FastAPI(
        title=settings.app_name,
        description="Solana token holder counts with bounded staleness",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health.router)
    application.include_router(holders.router)

    return application


app = create_app()


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set ``stop_event`` on SIGINT/SIGTERM where the platform allows it."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            log.debug("signal_handler_unavailable", signal=sig.name)


async def run(token_id: str, settings: Settings) -> None:
    """Run the monitoring loop, and the API server when enabled."""
    configure_request_spacing(settings.rpc_request_delay_ms)

    rpc_client = SolanaRPCClient(settings)
    monitor = HolderMonitor(rpc_client, token_id, settings.poll_interval)
    stop_event = asyncio.Event()
    server: uvicorn.Server | None = None
    server_task: asyncio.Task[None] | None = None

    try:
        log.info("rpc_health_check_started", rpc_url=settings.solana_rpc_url)
        await rpc_client.health_check()

        if settings.api_enabled:
            get_holder_cache(settings, rpc_client)
            server = uvicorn.Server(
                uvicorn.Config(
                    create_app(settings),
                    host=settings.host,
                    port=settings.port,
                    log_config=None,
                )
            )
            # uvicorn owns SIGINT/SIGTERM; its exit stops the monitor too
            server_task = asyncio.create_task(server.serve())
            server_task.add_done_callback(lambda _: stop_event.set())
            log.info(
                "api_server_enabled",
                port=settings.port,
                cache_refresh_seconds=settings.cache_refresh_interval,
            )
        else:
            _install_signal_handlers(stop_event)

        await monitor.run(stop_event)

    finally:
        if server is not None and server_task is not None:
            server.should_exit = True
            await asyncio.gather(server_task, return_exceptions=True)
        monitor.print_final_metrics()
        await close_holder_cache()
        await rpc_client.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Console entry point."""
    args = parse_args(argv)

    try:
        settings = build_settings(args)
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return 2

    configure_logging(settings.json_logs, settings.log_level)

    try:
        asyncio.run(run(args.mint_address, settings))
    except KeyboardInterrupt:
        pass
    except HolderWatchError as e:
        log.error("holderwatch_failed", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
