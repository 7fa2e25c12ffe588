"""SPL token account parser.

Recovers holder wallets from raw token account payloads by reading fixed
offsets instead of unpacking the full account layout:

    mint(32) | owner(32) | amount(u64 LE) | ...

Malformed individual accounts are skipped and counted; they never abort
extraction of the rest of the batch.
"""

from collections.abc import Iterable

import structlog
from solders.pubkey import Pubkey

from holderwatch.constants.holders import (
    AMOUNT_LENGTH,
    AMOUNT_OFFSET,
    MIN_ACCOUNT_DATA_LENGTH,
    OWNER_LENGTH,
    OWNER_OFFSET,
)
from holderwatch.core.exceptions import ExtractError, MalformedRecordError
from holderwatch.services.solana.models import AccountRecord

log = structlog.get_logger(__name__)

_DEFAULT_PUBKEY = Pubkey.default()


def read_amount(data: bytes) -> int:
    """Read the token balance (u64 little-endian at offset 64).

    Raises:
        MalformedRecordError: If the payload is too short to hold a balance.
    """
    if len(data) < MIN_ACCOUNT_DATA_LENGTH:
        raise MalformedRecordError(f"data length {len(data)} < {MIN_ACCOUNT_DATA_LENGTH}")
    return int.from_bytes(data[AMOUNT_OFFSET : AMOUNT_OFFSET + AMOUNT_LENGTH], "little")


def read_owner(data: bytes) -> Pubkey:
    """Read the owner wallet (32 bytes at offset 32).

    Raises:
        MalformedRecordError: If the bytes do not form a usable address, or
            form the all-zero default address.
    """
    owner_bytes = data[OWNER_OFFSET : OWNER_OFFSET + OWNER_LENGTH]
    try:
        owner = Pubkey.from_bytes(owner_bytes)
    except ValueError as e:
        raise MalformedRecordError(f"invalid owner bytes: {e}") from e

    if owner == _DEFAULT_PUBKEY:
        raise MalformedRecordError("owner is the default address")
    return owner


def extract_holders(records: Iterable[AccountRecord]) -> set[Pubkey]:
    """Extract unique holder wallets with a positive balance.

    Args:
        records: Raw token accounts of a single mint.

    Returns:
        Deduplicated owners; a wallet holding the token in several
        accounts appears once.

    Raises:
        ExtractError: If ``records`` is not iterable.
    """
    try:
        iterator = iter(records)
    except TypeError as e:
        raise ExtractError(f"account batch is not iterable: {e}") from e

    holders: set[Pubkey] = set()
    zero_balance_count = 0
    malformed_count = 0

    for record in iterator:
        try:
            amount = read_amount(record.data)
            if amount == 0:
                zero_balance_count += 1
                continue
            holders.add(read_owner(record.data))
        except MalformedRecordError as e:
            malformed_count += 1
            log.debug("token_account_skipped", pubkey=record.pubkey, reason=str(e))

    log.info(
        "holders_extracted",
        holders=len(holders),
        zero_balance_filtered=zero_balance_count,
        malformed_skipped=malformed_count,
    )
    return holders
