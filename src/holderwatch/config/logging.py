"""Logging configuration using structlog."""

import logging
import sys

import structlog

from holderwatch.config.settings import get_settings


def configure_logging(json_logs: bool | None = None, level: str | None = None) -> None:
    """Configure structlog for the application.

    Args:
        json_logs: Render JSON lines instead of console output.
            Defaults to the ``json_logs`` setting.
        level: Minimum level name. Defaults to the ``log_level`` setting.
    """
    if json_logs is None:
        json_logs = get_settings().json_logs
    if level is None:
        level = get_settings().log_level

    log_level = getattr(logging, level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer()
            if json_logs
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # stdlib logging for uvicorn, httpx and apscheduler
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    # httpx logs every request at INFO; RPC calls are already logged by the client
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))
    logging.getLogger("apscheduler.executors").setLevel(max(log_level, logging.WARNING))
