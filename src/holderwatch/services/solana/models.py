"""Pydantic models for Solana RPC responses.

This module provides type-safe models for Solana JSON-RPC responses,
specifically for raw token account data from getProgramAccounts calls.

Models:
    AccountRecord: One account returned by getProgramAccounts (base64 data)
"""

import base64
import binascii
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountRecord(BaseModel):
    """Raw account state returned by getProgramAccounts.

    Only ``data`` matters to holder extraction; the remaining fields are
    kept so callers can log or inspect the record.

    Attributes:
        pubkey: Account public key (base58 format).
        owner_program: Program that owns the account (base58 format).
        data: Raw account payload.
        lamports: Account balance in lamports.
        rent_epoch: Next rent epoch.
        executable: Whether the account holds a program.

    Example:
        {
            "pubkey": "TokenAcc123...",
            "account": {
                "data": ["<base64>", "base64"],
                "owner": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
                "lamports": 2039280,
                "rentEpoch": 361,
                "executable": false
            }
        }
    """

    model_config = ConfigDict(frozen=True)

    pubkey: str = Field(..., description="Account public key")
    owner_program: str = Field(default="", description="Owning program id")
    data: bytes = Field(default=b"", description="Raw account payload")
    lamports: int = Field(default=0, ge=0, description="Lamport balance")
    rent_epoch: int = Field(default=0, ge=0, description="Rent epoch")
    executable: bool = Field(default=False, description="Executable flag")

    @field_validator("pubkey")
    @classmethod
    def validate_pubkey(cls, v: str) -> str:
        """Reject empty account keys."""
        if not v:
            raise ValueError("Account pubkey cannot be empty")
        return v

    @classmethod
    def from_rpc(cls, item: dict[str, Any]) -> "AccountRecord":
        """Build a record from one getProgramAccounts result item.

        Args:
            item: ``{"pubkey": ..., "account": {...}}`` as returned by the RPC.

        Returns:
            The decoded record. Undecodable data becomes an empty payload,
            which the extractor later skips as too short.

        Raises:
            KeyError: If the item has no ``pubkey`` or ``account``.
        """
        account = item["account"]
        raw_data = account.get("data", "")

        # base64 encoding is returned as [payload, "base64"]
        if isinstance(raw_data, list):
            raw_data = raw_data[0] if raw_data else ""

        try:
            data = base64.b64decode(raw_data, validate=True)
        except (binascii.Error, ValueError, TypeError):
            data = b""

        return cls(
            pubkey=item["pubkey"],
            owner_program=account.get("owner", ""),
            data=data,
            lamports=account.get("lamports", 0),
            rent_epoch=account.get("rentEpoch", 0),
            executable=account.get("executable", False),
        )
