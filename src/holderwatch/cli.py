"""Command-line interface for HolderWatch.

Usage:
    holderwatch <MINT_ADDRESS> [--rpc-url URL] [--interval 30] [--api]

Every flag is optional and overrides the matching environment setting
(see holderwatch.config.settings).
"""

import argparse
from collections.abc import Sequence

from pydantic import ValidationError

from holderwatch.config.settings import Settings
from holderwatch.core.exceptions import ConfigurationError
from holderwatch.core.identifiers import is_valid_token_identifier

# CLI flag -> Settings field
_SETTINGS_FIELDS = {
    "rpc_url": "solana_rpc_url",
    "interval": "poll_interval",
    "json_log": "json_logs",
    "log_level": "log_level",
    "max_retries": "rpc_max_retries",
    "timeout": "rpc_timeout",
    "api": "api_enabled",
    "api_port": "port",
    "cache_ttl": "cache_refresh_interval",
    "cache_capacity": "cache_capacity",
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="holderwatch",
        description="Monitor Solana token holders in real-time",
    )
    parser.add_argument("mint_address", metavar="MINT_ADDRESS", help="Token mint address to monitor")
    parser.add_argument("--rpc-url", help="RPC endpoint URL")
    parser.add_argument("--interval", type=int, help="Polling interval in seconds")
    parser.add_argument(
        "--json-log",
        action="store_true",
        default=None,
        help="Enable JSON logging output",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Minimum log level",
    )
    parser.add_argument("--max-retries", type=int, help="Maximum number of RPC attempts")
    parser.add_argument("--timeout", type=float, help="RPC request timeout in seconds")
    parser.add_argument(
        "--api",
        action="store_true",
        default=None,
        help="Enable API server",
    )
    parser.add_argument("--api-port", type=int, help="API server port")
    parser.add_argument(
        "--cache-ttl",
        type=int,
        help="Seconds between background refreshes of cached tokens",
    )
    parser.add_argument("--cache-capacity", type=int, help="Maximum cached tokens")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments, rejecting a malformed mint up front."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not is_valid_token_identifier(args.mint_address):
        parser.error(f"invalid mint address: {args.mint_address}")
    return args


def build_settings(args: argparse.Namespace) -> Settings:
    """Merge CLI flags over environment settings.

    Raises:
        ConfigurationError: If a value is out of range (e.g. interval 0).
    """
    overrides = {
        field: getattr(args, flag)
        for flag, field in _SETTINGS_FIELDS.items()
        if getattr(args, flag, None) is not None
    }

    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid arguments: {problems}") from e
