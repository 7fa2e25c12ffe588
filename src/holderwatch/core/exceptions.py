"""HolderWatch exception hierarchy.

This module defines the base exception class and specialized exceptions
for the failure classes of the holder pipeline: bad input, remote
failures (retryable or not), caller-facing timeouts and record parsing.
"""


class HolderWatchError(Exception):
    """Base exception for all HolderWatch errors.

    All custom exceptions in HolderWatch should inherit from this class
    to enable consistent error handling and logging.
    """

    pass


class ConfigurationError(HolderWatchError):
    """Raised when configuration is invalid or missing.

    Example:
        raise ConfigurationError("Interval must be greater than 0")
    """

    pass


class InvalidIdentifierError(HolderWatchError):
    """Raised when a token identifier is not a valid 32-byte base58 address.

    Never retried. Maps to HTTP 400.

    Attributes:
        token_id: The rejected identifier text.
    """

    def __init__(self, token_id: str, reason: str = "invalid address") -> None:
        self.token_id = token_id
        super().__init__(f"Invalid token identifier '{token_id}': {reason}")


class ExternalServiceError(HolderWatchError):
    """Raised when an external service call fails in a non-retryable way.

    Attributes:
        service: Name or URL of the external service that failed.
        status_code: HTTP status code if available, None otherwise.

    Example:
        raise ExternalServiceError(service="rpc", message="Forbidden", status_code=403)
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class TransientRemoteError(HolderWatchError):
    """Raised for a single failed attempt that is worth retrying.

    Covers connection errors, timeouts, HTTP 429/5xx and JSON-RPC errors
    that do not indicate a missing capability.

    Attributes:
        code: JSON-RPC error code or HTTP status, if known.
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        self.code = code
        super().__init__(message)


class UnsupportedByEndpointError(HolderWatchError):
    """Raised when the RPC endpoint cannot serve the query at all.

    Public endpoints exclude the SPL Token program from their secondary
    indexes, so getProgramAccounts can never succeed there. Retrying
    does not help; the message carries remediation steps.

    Attributes:
        endpoint: The RPC URL that rejected the query.
        code: JSON-RPC error code returned by the endpoint.
    """

    def __init__(self, endpoint: str, code: int, detail: str = "") -> None:
        self.endpoint = endpoint
        self.code = code
        self.detail = detail
        super().__init__(
            f"RPC endpoint '{endpoint}' does not support getProgramAccounts "
            f"for the Token Program (code {code}).\n"
            "Use a private RPC endpoint that indexes token accounts, e.g.:\n"
            "  - Helius: https://mainnet.helius-rpc.com/?api-key=YOUR_KEY\n"
            "  - QuickNode: https://your-endpoint.solana-mainnet.quiknode.pro/YOUR_KEY/\n"
            "  - Alchemy: https://solana-mainnet.g.alchemy.com/v2/YOUR_KEY\n"
            "or try an alternative public RPC such as https://rpc.ankr.com/solana "
            "(pass it with --rpc-url or SOLANA_RPC_URL)."
        )


class ExhaustedRetriesError(HolderWatchError):
    """Raised when every retry attempt failed.

    Attributes:
        attempts: Number of attempts made.
        last_error: The error from the final attempt.
    """

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


class UpstreamTimeoutError(HolderWatchError):
    """Raised when a caller-facing deadline expires before the fetch finished.

    The underlying fetch is not cancelled; it may still complete and
    populate the cache for a later reader. Maps to HTTP 504.
    """

    def __init__(self, token_id: str, timeout: float) -> None:
        self.token_id = token_id
        self.timeout = timeout
        super().__init__(
            f"Holder fetch for {token_id} timed out after {timeout:g} seconds. "
            "Please try again later or use a faster RPC endpoint."
        )


class MalformedRecordError(HolderWatchError):
    """Raised for a single unparseable account record.

    Always absorbed by the extractor; never escapes a batch.
    """

    pass


class ExtractError(HolderWatchError):
    """Raised when the account collection itself cannot be processed."""

    pass
