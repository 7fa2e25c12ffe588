"""Token identifier validation.

Token identifiers are 32-byte Solana addresses written in base58. Parsing
is local and never touches the network.
"""

from solders.pubkey import Pubkey

from holderwatch.core.exceptions import InvalidIdentifierError


def parse_token_identifier(token_id: str | None) -> Pubkey:
    """Parse a base58 token mint address.

    Args:
        token_id: Candidate address text.

    Returns:
        The parsed Pubkey.

    Raises:
        InvalidIdentifierError: If the text is empty or not a 32-byte
            base58 address.

    Example:
        >>> str(parse_token_identifier("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"))
        'EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v'
    """
    if token_id is None or not token_id.strip():
        raise InvalidIdentifierError(str(token_id), "empty address")

    try:
        return Pubkey.from_string(token_id.strip())
    except ValueError as e:
        raise InvalidIdentifierError(token_id, str(e)) from e


def is_valid_token_identifier(token_id: str | None) -> bool:
    """Return True if ``token_id`` parses as a token address."""
    try:
        parse_token_identifier(token_id)
    except InvalidIdentifierError:
        return False
    return True
