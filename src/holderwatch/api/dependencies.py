"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends

from holderwatch.services.holders.cache import HolderCache, get_holder_cache


def get_cache() -> HolderCache:
    """Get holder cache dependency."""
    return get_holder_cache()


HolderCacheDep = Annotated[HolderCache, Depends(get_cache)]
