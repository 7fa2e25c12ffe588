"""Base API client with per-attempt timeout and retry logic.

This module provides:
- backoff_delay() for capped exponential backoff
- BaseAPIClient class for making resilient HTTP requests
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
import structlog

from holderwatch.core.exceptions import (
    ExhaustedRetriesError,
    ExternalServiceError,
    TransientRemoteError,
)

log = structlog.get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base: float = 1.0, cap: float = 10.0) -> float:
    """Delay to sleep after a failed 0-based ``attempt``.

    Exponential with a hard ceiling: 1s, 2s, 4s, 8s, 10s, 10s... with the
    defaults.
    """
    return min(base * 2**attempt, cap)


class BaseAPIClient:
    """Base API client with retry support.

    Provides resilient HTTP requests with:
    - Lazy client initialization (created on first request)
    - Per-attempt deadline enforced locally with asyncio.wait_for
    - Capped exponential backoff between attempts
    - Proper resource cleanup

    Only TransientRemoteError and local timeouts are retried. Any other
    exception raised by an attempt propagates immediately.

    Attributes:
        base_url: Base URL for all requests.
        timeout: Per-attempt timeout in seconds.
        max_retries: Total attempts per logical operation.
        headers: Default headers for all requests.

    Example:
        client = BaseAPIClient(base_url="https://api.example.com")
        response = await client._with_retry(
            lambda: client._send("POST", "", json={"ping": 1}), name="ping"
        )
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        backoff_cap: float = 10.0,
        slow_threshold: float = 10.0,
    ) -> None:
        """Initialize BaseAPIClient.

        Args:
            base_url: Base URL for all requests.
            timeout: Per-attempt timeout in seconds (default: 30).
            headers: Default headers for all requests.
            max_retries: Attempts per operation (default: 3).
            backoff_base: Delay after the first failure (default: 1s).
            backoff_cap: Maximum delay between attempts (default: 10s).
            slow_threshold: Successful operations slower than this are
                logged as a performance warning (default: 10s).
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.base_url = base_url
        self.timeout = timeout
        self.headers = headers or {}
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.slow_threshold = slow_threshold
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client (lazy initialization).

        Returns:
            The httpx AsyncClient instance.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
            )
            log.debug("httpx_client_created", base_url=self.base_url)
        return self._client

    async def close(self) -> None:
        """Close the httpx client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.debug("httpx_client_closed", base_url=self.base_url)

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Make a single HTTP request and classify its failure.

        Args:
            method: HTTP method (GET, POST).
            path: Request path (appended to base_url).
            **kwargs: Additional arguments passed to httpx.request.

        Returns:
            httpx.Response on success.

        Raises:
            TransientRemoteError: On timeout, connection error, 429 or 5xx.
            ExternalServiceError: On any other 4xx (not worth retrying).
        """
        client = await self._get_client()

        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code

            # 4xx errors (except 429) - no retry, fail immediately
            if 400 <= status_code < 500 and status_code != 429:
                log.warning(
                    "request_client_error",
                    method=method,
                    path=path,
                    status_code=status_code,
                    error=str(e),
                )
                raise ExternalServiceError(
                    service=self.base_url,
                    message=str(e),
                    status_code=status_code,
                ) from e

            raise TransientRemoteError(
                f"HTTP {status_code} from {self.base_url}", code=status_code
            ) from e

        except (httpx.TimeoutException, httpx.RequestError) as e:
            raise TransientRemoteError(
                f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            ) from e

    async def _with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
    ) -> T:
        """Run ``operation`` with per-attempt timeout and capped backoff.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt.
            name: Operation name for logs.

        Returns:
            The first successful result.

        Raises:
            ExhaustedRetriesError: If every attempt failed transiently.
            Exception: Any non-transient error from an attempt, unchanged.
        """
        start_time = time.monotonic()
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            log.debug(
                "request_attempt",
                operation=name,
                attempt=attempt + 1,
                max_retries=self.max_retries,
            )

            try:
                result = await asyncio.wait_for(operation(), timeout=self.timeout)

            except TimeoutError:
                last_error = TransientRemoteError(
                    f"{name} timed out after {self.timeout:g}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                log.warning(
                    "request_timeout",
                    operation=name,
                    timeout=self.timeout,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                )

            except TransientRemoteError as e:
                last_error = e
                log.warning(
                    "request_failed",
                    operation=name,
                    error=str(e),
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                )

            else:
                elapsed = time.monotonic() - start_time
                log.info(
                    "request_succeeded",
                    operation=name,
                    attempts=attempt + 1,
                    elapsed_seconds=round(elapsed, 2),
                )
                if elapsed > self.slow_threshold:
                    log.warning(
                        "request_slow",
                        operation=name,
                        elapsed_seconds=round(elapsed, 2),
                        hint="consider using a faster RPC endpoint",
                    )
                return result

            if attempt < self.max_retries - 1:
                delay = backoff_delay(attempt, self.backoff_base, self.backoff_cap)
                log.debug("request_retry_backoff", operation=name, seconds=delay)
                await asyncio.sleep(delay)

        # All retries exhausted
        log.error(
            "request_max_retries_exceeded",
            operation=name,
            max_retries=self.max_retries,
            elapsed_seconds=round(time.monotonic() - start_time, 2),
        )
        raise ExhaustedRetriesError(self.max_retries, last_error)
