"""Shared pytest fixtures for HolderWatch tests.

This module provides fixtures for:
- Isolated environment and settings
- RPC mocking (respx) and account factories
- Singleton resets (request spacer, settings cache)

Usage:
    async def test_something(rpc_client, mock_rpc, valid_token_mint):
        mock_rpc.post("/").mock(return_value=rpc_result([]))
        assert await rpc_client.fetch_token_accounts(valid_token_mint) == []
"""

import os
from collections.abc import AsyncGenerator, Generator

import pytest

from holderwatch.config.settings import Settings, get_settings
from holderwatch.services.solana.rate_limiter import (
    configure_request_spacing,
    reset_request_spacer,
)
from holderwatch.services.solana.rpc_client import SolanaRPCClient
from tests.factories import AccountRecordFactory
from tests.fixtures.rpc_mock import RPC_URL, mock_rpc  # noqa: F401

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
WSOL_MINT = "So11111111111111111111111111111111111111112"

# =============================================================================
# Environment Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Point the app at a fake RPC and drop variables that change defaults."""
    original_env = os.environ.copy()

    for field in Settings.model_fields:
        os.environ.pop(field.upper(), None)
    os.environ["SOLANA_RPC_URL"] = RPC_URL

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset process-wide singletons around every test."""
    configure_request_spacing(0)
    get_settings.cache_clear()

    yield

    reset_request_spacer()
    get_settings.cache_clear()


# =============================================================================
# Settings and Domain Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings tuned for fast tests: short timeouts, no backoff."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        solana_rpc_url=RPC_URL,
        rpc_max_retries=3,
        rpc_timeout=2.0,
        rpc_backoff_base=0.0,
        rpc_backoff_cap=0.0,
        rpc_request_delay_ms=0,
    )


@pytest.fixture
def valid_token_mint() -> str:
    """A real, well-known mint address (USDC)."""
    return USDC_MINT


@pytest.fixture
def other_token_mint() -> str:
    """A second valid mint address (wrapped SOL)."""
    return WSOL_MINT


@pytest.fixture
def account_factory() -> type[AccountRecordFactory]:
    """Provide account factory for creating raw token accounts."""
    return AccountRecordFactory


@pytest.fixture
async def rpc_client(settings: Settings) -> AsyncGenerator[SolanaRPCClient, None]:
    """RPC client pointed at the mocked endpoint."""
    client = SolanaRPCClient(settings)
    yield client
    await client.close()
