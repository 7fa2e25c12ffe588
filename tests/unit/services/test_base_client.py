"""Tests for BaseAPIClient implementation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import respx

from holderwatch.core.exceptions import (
    ExhaustedRetriesError,
    ExternalServiceError,
    TransientRemoteError,
)
from holderwatch.services.base import BaseAPIClient, backoff_delay
from tests.fixtures.rpc_mock import RPC_URL


class TestBackoffDelay:
    """Tests for capped exponential backoff."""

    @pytest.mark.parametrize(
        ("attempt", "expected"),
        [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0), (4, 10.0), (10, 10.0)],
    )
    def test_default_schedule(self, attempt: int, expected: float) -> None:
        """
        Given: Default base 1s and cap 10s
        When: Computing the delay after each failed attempt
        Then: Delay doubles and never exceeds the cap
        """
        assert backoff_delay(attempt) == expected

    def test_custom_base_and_cap(self) -> None:
        assert backoff_delay(2, base=0.5, cap=1.5) == 1.5


class TestBaseAPIClientInit:
    """Tests for BaseAPIClient initialization."""

    def test_defaults(self) -> None:
        """
        Given: BaseAPIClient without explicit options
        When: Created
        Then: Uses 30s timeout and 3 attempts, client is lazy
        """
        client = BaseAPIClient(base_url="https://api.example.com")

        assert client.base_url == "https://api.example.com"
        assert client.timeout == 30.0
        assert client.max_retries == 3
        assert client._client is None

    def test_zero_attempts_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_retries"):
            BaseAPIClient(base_url="https://api.example.com", max_retries=0)


class TestBaseAPIClientClose:
    """Tests for BaseAPIClient close method."""

    @pytest.mark.asyncio
    async def test_close_cleans_up_client(self) -> None:
        """
        Given: BaseAPIClient with active httpx client
        When: close() is called
        Then: Client is closed and set to None
        """
        client = BaseAPIClient(base_url="https://api.example.com")
        mock_httpx_client = AsyncMock()
        client._client = mock_httpx_client

        await client.close()

        mock_httpx_client.aclose.assert_called_once()
        assert client._client is None

    @pytest.mark.asyncio
    async def test_close_without_client_is_noop(self) -> None:
        client = BaseAPIClient(base_url="https://api.example.com")

        await client.close()

        assert client._client is None


class TestBaseAPIClientSend:
    """Tests for single-request failure classification."""

    @pytest.fixture
    async def client(self):
        client = BaseAPIClient(base_url=RPC_URL)
        yield client
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 500, 503])
    async def test_retryable_statuses_are_transient(
        self, client: BaseAPIClient, mock_rpc: respx.MockRouter, status_code: int
    ) -> None:
        """HTTP 429 and 5xx become TransientRemoteError with the status as code."""
        mock_rpc.post("/").mock(return_value=httpx.Response(status_code))

        with pytest.raises(TransientRemoteError) as exc_info:
            await client._send("POST", "", json={})

        assert exc_info.value.code == status_code

    @pytest.mark.asyncio
    async def test_client_error_is_not_transient(
        self, client: BaseAPIClient, mock_rpc: respx.MockRouter
    ) -> None:
        """
        Given: Endpoint answering 403
        When: Sending a request
        Then: ExternalServiceError with the status code
        """
        mock_rpc.post("/").mock(return_value=httpx.Response(403))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client._send("POST", "", json={})

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(
        self, client: BaseAPIClient, mock_rpc: respx.MockRouter
    ) -> None:
        mock_rpc.post("/").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(TransientRemoteError, match="ConnectError"):
            await client._send("POST", "", json={})


class TestBaseAPIClientRetry:
    """Tests for _with_retry."""

    @pytest.mark.asyncio
    async def test_retries_transient_failures_with_backoff(self) -> None:
        """
        Given: Operation failing twice transiently then succeeding
        When: Run with 3 attempts
        Then: Returns the result after sleeping 1s then 2s
        """
        client = BaseAPIClient(base_url="https://api.example.com")
        operation = AsyncMock(
            side_effect=[
                TransientRemoteError("HTTP 503", code=503),
                TransientRemoteError("HTTP 503", code=503),
                "ok",
            ]
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await client._with_retry(operation, name="test")

        assert result == "ok"
        assert operation.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_after_max_retries(self) -> None:
        """
        Given: Operation that always fails transiently
        When: Run with 3 attempts
        Then: ExhaustedRetriesError after exactly 3 calls and 2 sleeps
        """
        client = BaseAPIClient(base_url="https://api.example.com", max_retries=3)
        last = TransientRemoteError("HTTP 502", code=502)
        operation = AsyncMock(side_effect=[TransientRemoteError("x"), TransientRemoteError("y"), last])

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ExhaustedRetriesError) as exc_info:
                await client._with_retry(operation, name="test")

        assert operation.call_count == 3
        assert mock_sleep.call_count == 2
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is last

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self) -> None:
        client = BaseAPIClient(base_url="https://api.example.com", max_retries=1)
        operation = AsyncMock(side_effect=TransientRemoteError("down"))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ExhaustedRetriesError):
                await client._with_retry(operation, name="test")

        operation.assert_called_once()
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_transient_error_propagates_immediately(self) -> None:
        """
        Given: Operation raising a non-retryable error
        When: Run with retries
        Then: The same error propagates after one call
        """
        client = BaseAPIClient(base_url="https://api.example.com")
        error = ExternalServiceError(service="rpc", message="Forbidden", status_code=403)
        operation = AsyncMock(side_effect=error)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ExternalServiceError) as exc_info:
                await client._with_retry(operation, name="test")

        assert exc_info.value is error
        operation.assert_called_once()
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_attempt_timeout_is_retried(self) -> None:
        """
        Given: First attempt hangs past the per-attempt timeout
        When: Run with retries
        Then: The hung attempt is abandoned and the second one succeeds
        """
        client = BaseAPIClient(
            base_url="https://api.example.com",
            timeout=0.05,
            backoff_base=0.0,
            backoff_cap=0.0,
        )
        calls = 0

        async def operation() -> str:
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.Event().wait()
            return "second"

        result = await client._with_retry(operation, name="test")

        assert result == "second"
        assert calls == 2

    @pytest.mark.asyncio
    async def test_slow_success_logs_warning(self) -> None:
        """
        Given: A success that took longer than the slow threshold
        When: The operation completes
        Then: A request_slow warning is logged and the result returned
        """
        client = BaseAPIClient(base_url="https://api.example.com", slow_threshold=10.0)
        operation = AsyncMock(return_value="ok")

        with (
            patch("holderwatch.services.base.time") as mock_time,
            patch("holderwatch.services.base.log") as mock_log,
        ):
            mock_time.monotonic = MagicMock(side_effect=[0.0, 12.5, 12.5])
            result = await client._with_retry(operation, name="test")

        assert result == "ok"
        warnings = [c.args[0] for c in mock_log.warning.call_args_list]
        assert "request_slow" in warnings
