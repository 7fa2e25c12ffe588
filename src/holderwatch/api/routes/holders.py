"""Holder count API endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, status

from holderwatch.api.dependencies import HolderCacheDep
from holderwatch.core.exceptions import (
    HolderWatchError,
    InvalidIdentifierError,
    UpstreamTimeoutError,
)
from holderwatch.models.holders import CacheStats, HolderCountResponse, TokenStats

log = structlog.get_logger(__name__)

router = APIRouter(tags=["holders"])


@router.get("/holders/{token_id}", response_model=HolderCountResponse)
async def get_holders(token_id: str, cache: HolderCacheDep) -> HolderCountResponse:
    """Get the holder count of a token, from cache when resident."""
    try:
        snapshot = await cache.get(token_id)
    except InvalidIdentifierError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from None
    except UpstreamTimeoutError as e:
        log.warning("get_holders_timeout", token_id=token_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=str(e),
        ) from None
    except HolderWatchError as e:
        log.error("get_holders_failed", token_id=token_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to get holder count: {e}",
        ) from None

    return HolderCountResponse.from_snapshot(snapshot)


@router.get("/tokens", response_model=list[TokenStats])
async def list_tokens(cache: HolderCacheDep) -> list[TokenStats]:
    """List every token currently resident in the cache."""
    return await cache.list_resident()


@router.get("/stats", response_model=CacheStats)
async def cache_stats(cache: HolderCacheDep) -> CacheStats:
    """Aggregate cache counters."""
    return await cache.stats()
