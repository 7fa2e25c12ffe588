"""Solana RPC client for token holder queries.

This module provides a client for interacting with Solana RPC endpoints,
specifically for enumerating every SPL token account of one mint.

The client extends BaseAPIClient to inherit:
- Per-attempt timeout
- Automatic retry with capped exponential backoff
- Proper resource cleanup
"""

from typing import Any

import httpx
import structlog
from solders.pubkey import Pubkey
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from holderwatch.config.settings import Settings, get_settings
from holderwatch.constants.holders import (
    MINT_OFFSET,
    TOKEN_ACCOUNT_SIZE,
    TOKEN_PROGRAM_ID,
    UNSUPPORTED_RPC_CODES,
)
from holderwatch.core.exceptions import (
    TransientRemoteError,
    UnsupportedByEndpointError,
)
from holderwatch.core.identifiers import parse_token_identifier
from holderwatch.services.base import BaseAPIClient
from holderwatch.services.solana.models import AccountRecord
from holderwatch.services.solana.rate_limiter import get_request_spacer

log = structlog.get_logger(__name__)


class SolanaRPCClient(BaseAPIClient):
    """Client for Solana JSON-RPC holder queries.

    Stateless apart from the lazily created HTTP connection pool, so one
    instance is shared by the monitoring loop, API requests and the
    background refresher.

    Attributes:
        base_url: Solana RPC endpoint URL.
        timeout: Per-attempt timeout in seconds.
        max_retries: Attempts per fetch.

    Example:
        client = SolanaRPCClient()
        accounts = await client.fetch_token_accounts("EPjFWdd5...")
        await client.close()
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize Solana RPC client with settings."""
        settings = settings or get_settings()
        super().__init__(
            base_url=settings.solana_rpc_url,
            timeout=settings.rpc_timeout,
            headers={"Content-Type": "application/json"},
            max_retries=settings.rpc_max_retries,
            backoff_base=settings.rpc_backoff_base,
            backoff_cap=settings.rpc_backoff_cap,
            slow_threshold=settings.rpc_slow_threshold,
        )
        log.debug(
            "solana_rpc_client_initialized",
            base_url=settings.solana_rpc_url,
            max_retries=settings.rpc_max_retries,
            timeout=settings.rpc_timeout,
        )

    async def _rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make one JSON-RPC call (a single attempt).

        Args:
            method: JSON-RPC method name.
            params: JSON-RPC params.

        Returns:
            The ``result`` member of the response.

        Raises:
            UnsupportedByEndpointError: If the endpoint cannot serve the
                method for these params (never worth retrying).
            TransientRemoteError: For transport failures, malformed
                responses and any other JSON-RPC error.
            ExternalServiceError: For non-retryable HTTP 4xx.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }

        await get_request_spacer().wait()
        response = await self._send("POST", "", json=payload)

        try:
            data = response.json()
        except ValueError as e:
            raise TransientRemoteError(f"{method}: response is not valid JSON") from e

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            code = error.get("code")
            message = error.get("message", "")
            if code in UNSUPPORTED_RPC_CODES:
                log.error(
                    "solana_rpc_method_unsupported",
                    method=method,
                    code=code,
                    error=message,
                )
                raise UnsupportedByEndpointError(self.base_url, code, message)
            raise TransientRemoteError(f"{method}: RPC error {code}: {message}", code=code)

        if not isinstance(data, dict) or "result" not in data:
            raise TransientRemoteError(f"{method}: response has no result")

        return data["result"]

    async def _get_program_accounts(self, mint: Pubkey) -> list[AccountRecord]:
        """Fetch every token account of ``mint`` in one getProgramAccounts call."""
        params = [
            TOKEN_PROGRAM_ID,
            {
                "encoding": "base64",
                "commitment": "confirmed",
                "filters": [
                    {"dataSize": TOKEN_ACCOUNT_SIZE},
                    {
                        "memcmp": {
                            "offset": MINT_OFFSET,
                            "bytes": str(mint),  # Filter by mint address
                        }
                    },
                ],
            },
        ]

        result = await self._rpc_call("getProgramAccounts", params)
        if not isinstance(result, list):
            raise TransientRemoteError("getProgramAccounts: result is not a list")

        records = []
        for item in result:
            try:
                records.append(AccountRecord.from_rpc(item))
            except (KeyError, TypeError, ValueError) as e:
                log.debug(
                    "solana_account_decode_skipped",
                    pubkey=item.get("pubkey", "unknown") if isinstance(item, dict) else None,
                    error=str(e),
                )
        return records

    async def fetch_token_accounts(self, token_id: str | Pubkey) -> list[AccountRecord]:
        """Get every token account of a mint via getProgramAccounts.

        Args:
            token_id: Token mint address (base58 text or Pubkey).

        Returns:
            Raw account records. An empty list means the mint has no
            token accounts.

        Raises:
            InvalidIdentifierError: If ``token_id`` is malformed (no network call).
            UnsupportedByEndpointError: On the first attempt that reports a
                capability gap, without further retries.
            ExhaustedRetriesError: If all attempts failed transiently.
            ExternalServiceError: On a non-retryable HTTP error.

        Note:
            Uses Solana RPC getProgramAccounts with:
            - Token Program ID: TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA
            - Filters: dataSize 165 + memcmp(mint at offset 0)
            - base64 encoding, parsed locally by the account parser
        """
        mint = token_id if isinstance(token_id, Pubkey) else parse_token_identifier(token_id)

        log.debug("solana_get_token_accounts", token_mint=str(mint)[:8] + "...")

        accounts = await self._with_retry(
            lambda: self._get_program_accounts(mint),
            name="getProgramAccounts",
        )

        if not accounts:
            log.warning("solana_no_token_accounts_found", token_mint=str(mint))
        else:
            log.info(
                "solana_token_accounts_retrieved",
                token_mint=str(mint)[:8] + "...",
                accounts_count=len(accounts),
            )
        return accounts

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type((TransientRemoteError, httpx.HTTPError)),
        reraise=True,
    )
    async def health_check(self) -> int:
        """Check RPC connectivity with getSlot.

        Returns:
            The current slot.

        Raises:
            TransientRemoteError: If the endpoint stays unreachable after retries.
        """
        slot = await self._rpc_call("getSlot", [{"commitment": "confirmed"}])
        log.info("solana_rpc_healthy", base_url=self.base_url, slot=slot)
        return int(slot)
