"""Unit tests for RPC request spacing.

Tests:
- Shared spacer accessor
- Minimum gap between requests
- Concurrent access (no violations)
- Configuration bounds
"""

import asyncio
import time

import pytest

from holderwatch.services.solana.rate_limiter import (
    RequestSpacer,
    configure_request_spacing,
    get_request_spacer,
    reset_request_spacer,
)


def test_shared_spacer():
    """Test: get_request_spacer() returns the configured instance until reset."""
    configured = configure_request_spacing(250)

    assert get_request_spacer() is configured
    assert configured.min_interval == 0.25

    reset_request_spacer()
    assert get_request_spacer() is not configured
    assert get_request_spacer().min_interval == 0.1


@pytest.mark.asyncio
async def test_consecutive_requests_are_spaced():
    """Test: Second request waits ~100ms after the first."""
    spacer = RequestSpacer(100)

    # First request: no previous request, no wait
    start = time.monotonic()
    await spacer.wait()
    assert time.monotonic() - start < 0.05, "First request should not sleep"

    start = time.monotonic()
    await spacer.wait()
    elapsed = time.monotonic() - start
    assert elapsed >= 0.09, f"Second request should wait ~100ms, got {elapsed * 1000:.0f}ms"
    assert spacer.throttled == 1


@pytest.mark.asyncio
async def test_concurrent_requests_are_serialized():
    """Test: Concurrent tasks never start closer than the delay."""
    spacer = RequestSpacer(50)
    timestamps: list[float] = []

    async def make_request():
        await spacer.wait()
        timestamps.append(time.monotonic())

    await asyncio.gather(*(make_request() for _ in range(4)))

    gaps = [b - a for a, b in zip(timestamps, timestamps[1:], strict=False)]
    assert len(timestamps) == 4
    assert all(gap >= 0.045 for gap in gaps), f"Gaps too small: {gaps}"


@pytest.mark.asyncio
async def test_zero_delay_disables_spacing():
    """Test: A 0ms spacer lets requests through immediately."""
    spacer = RequestSpacer(0)

    start = time.monotonic()
    for _ in range(5):
        await spacer.wait()

    assert time.monotonic() - start < 0.05
    assert spacer.throttled == 0


def test_negative_delay_rejected():
    with pytest.raises(ValueError, match="negative"):
        configure_request_spacing(-1)
