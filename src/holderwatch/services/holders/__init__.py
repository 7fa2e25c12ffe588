"""Holder count cache."""

from holderwatch.services.holders.cache import (
    HolderCache,
    close_holder_cache,
    get_holder_cache,
)

__all__ = ["HolderCache", "close_holder_cache", "get_holder_cache"]
