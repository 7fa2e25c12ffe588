"""Process-wide spacing of Solana RPC requests.

The monitoring loop, API cache misses and the background refresher all
share one endpoint. Every request waits on the same RequestSpacer, so
bursts from those callers are flattened to at most one request per
``min_interval`` seconds (100ms by default).
"""

import asyncio
import time

import structlog

log = structlog.get_logger(__name__)

DEFAULT_DELAY_MS = 100


class RequestSpacer:
    """Enforce a minimum gap between consecutive RPC requests.

    Attributes:
        min_interval: Seconds between request starts; 0 disables spacing.
        throttled: Number of requests that had to wait.

    Example:
        spacer = get_request_spacer()
        await spacer.wait()
        response = await client._send("POST", "", json=payload)
    """

    def __init__(self, delay_ms: int = DEFAULT_DELAY_MS) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must not be negative")

        self.min_interval = delay_ms / 1000.0
        self.throttled = 0
        self._last_start: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        """Return once ``min_interval`` has passed since the previous request."""
        async with self._lock:
            if self._last_start is not None and self.min_interval > 0:
                remaining = self.min_interval - (time.monotonic() - self._last_start)
                if remaining > 0:
                    self.throttled += 1
                    log.debug("rpc_request_spaced", sleep_ms=int(remaining * 1000))
                    await asyncio.sleep(remaining)

            self._last_start = time.monotonic()


_spacer: RequestSpacer | None = None


def get_request_spacer() -> RequestSpacer:
    """Get or create the shared spacer."""
    global _spacer
    if _spacer is None:
        _spacer = RequestSpacer()
    return _spacer


def configure_request_spacing(delay_ms: int) -> RequestSpacer:
    """Replace the shared spacer (call once at startup, before any request).

    Args:
        delay_ms: Minimum milliseconds between requests. 0 disables spacing.
    """
    global _spacer
    _spacer = RequestSpacer(delay_ms)
    log.info(
        "rpc_request_spacing_configured",
        delay_ms=delay_ms,
        max_rps=1000 / delay_ms if delay_ms else None,
    )
    return _spacer


def reset_request_spacer() -> None:
    """Drop the shared spacer. Tests only; the next request creates a fresh one."""
    global _spacer
    _spacer = None
