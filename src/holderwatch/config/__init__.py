"""Configuration module for HolderWatch.

Usage:
    from holderwatch.config import get_settings

    settings = get_settings()  # Cached singleton
    print(settings.solana_rpc_url)
"""

from holderwatch.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
