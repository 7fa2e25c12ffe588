"""Holder tracking constants."""

from typing import Final

# SPL Token Program
TOKEN_PROGRAM_ID: Final[str] = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_ACCOUNT_SIZE: Final[int] = 165

# Token account layout: mint(32) + owner(32) + amount(8) + ...
MINT_OFFSET: Final[int] = 0
OWNER_OFFSET: Final[int] = 32
OWNER_LENGTH: Final[int] = 32
AMOUNT_OFFSET: Final[int] = 64
AMOUNT_LENGTH: Final[int] = 8
MIN_ACCOUNT_DATA_LENGTH: Final[int] = AMOUNT_OFFSET + AMOUNT_LENGTH  # 72

# JSON-RPC error codes meaning the endpoint cannot serve getProgramAccounts
RPC_CODE_METHOD_NOT_FOUND: Final[int] = -32601
RPC_CODE_KEY_EXCLUDED_FROM_INDEX: Final[int] = -32010
UNSUPPORTED_RPC_CODES: Final[frozenset[int]] = frozenset(
    {RPC_CODE_METHOD_NOT_FOUND, RPC_CODE_KEY_EXCLUDED_FROM_INDEX}
)

# Alert thresholds (percent change between polls)
GROWTH_ALERT_PERCENT: Final[float] = 50.0
DROP_ALERT_PERCENT: Final[float] = -20.0

# Monitoring
SLOW_CYCLE_SECONDS: Final[float] = 10.0
