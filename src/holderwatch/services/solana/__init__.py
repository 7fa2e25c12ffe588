"""Solana RPC client and token account parser."""

from holderwatch.services.solana.account_parser import extract_holders
from holderwatch.services.solana.models import AccountRecord
from holderwatch.services.solana.rpc_client import SolanaRPCClient

__all__ = ["AccountRecord", "SolanaRPCClient", "extract_holders"]
