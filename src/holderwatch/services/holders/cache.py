"""In-memory holder count cache with background refresh.

Serves the last known holder count per token instantly, fetches on a
miss, keeps at most ``capacity`` tokens and re-fetches every resident token
on a fixed interval. Staleness is bounded by the refresh interval; an
optional TTL additionally turns old entries into misses on read.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from holderwatch.config.settings import Settings, get_settings
from holderwatch.core.exceptions import UpstreamTimeoutError
from holderwatch.core.identifiers import parse_token_identifier
from holderwatch.models.holders import CacheEntry, CacheStats, TokenStats
from holderwatch.services.solana.account_parser import extract_holders
from holderwatch.services.solana.rpc_client import SolanaRPCClient

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class HolderCache:
    """
    Bounded holder count cache keyed by token mint.

    The table is guarded by one asyncio.Lock that is never held across a
    network call. A miss starts one fetch task per key; concurrent misses
    on the same key await that task instead of issuing their own request.
    """

    def __init__(
        self,
        rpc_client: SolanaRPCClient,
        capacity: int = 2,
        api_timeout: float = 45.0,
        refresh_timeout: float = 90.0,
        ttl_seconds: float | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize holder cache.

        Args:
            rpc_client: Client used for every fetch
            capacity: Maximum resident tokens
            api_timeout: How long a reader waits for a miss-fetch
            refresh_timeout: How long a background refresh waits per token
            ttl_seconds: Treat entries older than this as misses (None: never)
            clock: Timestamp source
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.rpc_client = rpc_client
        self.capacity = capacity
        self.api_timeout = api_timeout
        self.refresh_timeout = refresh_timeout
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[TokenStats]] = {}
        self._lock = asyncio.Lock()

    def _is_fresh(self, entry: CacheEntry) -> bool:
        if self.ttl_seconds is None:
            return True
        return not entry.is_expired(self.ttl_seconds, self._clock())

    async def get(self, token_id: str) -> TokenStats:
        """
        Get the holder count for a token, fetching it on a miss.

        Args:
            token_id: Token mint address (base58)

        Returns:
            Snapshot of the cache entry

        Raises:
            InvalidIdentifierError: Malformed address (no fetch is made)
            UpstreamTimeoutError: The miss-fetch did not finish within
                ``api_timeout``. The fetch keeps running and will populate
                the cache when it completes.
            HolderWatchError: Any fetch failure, propagated unchanged
        """
        key = str(parse_token_identifier(token_id))

        async with self._lock:
            entry = self._cache.get(key)
            if entry is not None and self._is_fresh(entry):
                entry.request_count += 1
                logger.info(
                    "holder_cache_hit",
                    token_id=key,
                    request_count=entry.request_count,
                )
                return entry.snapshot(served_from_cache=True)

            task = self._inflight.get(key)
            joined = task is not None
            if task is None:
                task = asyncio.create_task(self._load(key), name=f"holder-fetch-{key}")
                task.add_done_callback(lambda t, k=key: self._on_load_done(k, t))
                self._inflight[key] = task

        logger.info("holder_cache_miss", token_id=key, joined_inflight=joined)

        try:
            snapshot = await asyncio.wait_for(asyncio.shield(task), timeout=self.api_timeout)
        except TimeoutError as e:
            logger.warning(
                "holder_cache_fetch_timeout",
                token_id=key,
                timeout=self.api_timeout,
            )
            raise UpstreamTimeoutError(key, self.api_timeout) from e

        if not joined:
            return snapshot

        # A joined reader is a lookup of its own
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return snapshot
            entry.request_count += 1
            return entry.snapshot(served_from_cache=False)

    async def _load(self, key: str) -> TokenStats:
        """Fetch a missing key and insert it (runs as its own task)."""
        start = self._clock()
        count = await self._fetch_holder_count(key)
        snapshot = await self._store(key, count)
        logger.info(
            "holder_cache_loaded",
            token_id=key,
            holders=count,
            elapsed_seconds=round((self._clock() - start).total_seconds(), 2),
        )
        return snapshot

    def _on_load_done(self, key: str, task: asyncio.Task[TokenStats]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

        if task.cancelled():
            return
        # Retrieve the exception so abandoned fetches are still logged
        error = task.exception()
        if error is not None:
            logger.warning("holder_cache_fetch_failed", token_id=key, error=str(error))

    async def _store(self, key: str, count: int) -> TokenStats:
        """Insert or update ``key`` after a successful miss-fetch."""
        async with self._lock:
            now = self._clock()
            entry = self._cache.get(key)

            if entry is not None:
                entry.count = count
                entry.fetched_at = now
                entry.request_count += 1
                return entry.snapshot(served_from_cache=False)

            while len(self._cache) >= self.capacity:
                self._evict_oldest()

            entry = CacheEntry(
                token_id=key,
                count=count,
                fetched_at=now,
                request_count=1,
                first_seen=now,
            )
            self._cache[key] = entry
            logger.info(
                "holder_cache_added",
                token_id=key,
                tracked=len(self._cache),
                capacity=self.capacity,
            )
            return entry.snapshot(served_from_cache=False)

    def _evict_oldest(self) -> None:
        """Drop the entry with the oldest fetched_at. Caller holds the lock."""
        # min() keeps the first of equal timestamps, i.e. insertion order
        oldest = min(self._cache, key=lambda k: self._cache[k].fetched_at)
        del self._cache[oldest]
        logger.info("holder_cache_evicted", token_id=oldest, capacity=self.capacity)

    async def _fetch_holder_count(self, key: str) -> int:
        accounts = await self.rpc_client.fetch_token_accounts(key)
        return len(extract_holders(accounts))

    async def refresh_all(self) -> int:
        """
        Re-fetch every resident token once, sequentially.

        Failures are logged per token and leave the entry untouched. Tokens
        evicted while the refresh was running are not re-inserted.

        Returns:
            Number of tokens refreshed
        """
        async with self._lock:
            keys = list(self._cache)

        if not keys:
            return 0

        logger.info("holder_cache_refresh_started", tokens=len(keys))
        refreshed = 0

        for key in keys:
            try:
                count = await asyncio.wait_for(
                    self._fetch_holder_count(key), timeout=self.refresh_timeout
                )
            except Exception as e:
                logger.error("holder_cache_refresh_failed", token_id=key, error=str(e))
                continue

            async with self._lock:
                entry = self._cache.get(key)
                if entry is None:
                    logger.info("holder_cache_refresh_dropped", token_id=key)
                    continue
                entry.count = count
                entry.fetched_at = self._clock()

            refreshed += 1
            logger.info("holder_cache_refreshed", token_id=key, holders=count)

        logger.info(
            "holder_cache_refresh_completed",
            refreshed=refreshed,
            failed=len(keys) - refreshed,
        )
        return refreshed

    async def list_resident(self) -> list[TokenStats]:
        """Snapshot every resident entry."""
        async with self._lock:
            return [entry.snapshot(served_from_cache=True) for entry in self._cache.values()]

    async def stats(self) -> CacheStats:
        """Aggregate counters over resident entries."""
        async with self._lock:
            return CacheStats(
                resident_count=len(self._cache),
                total_requests=sum(e.request_count for e in self._cache.values()),
                capacity=self.capacity,
            )

    async def close(self) -> None:
        """Cancel fetches still running for abandoned readers."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()


# Singleton instance
_holder_cache: HolderCache | None = None
# False when the RPC client was passed in by the caller, who then closes it
_owns_rpc_client = False


def get_holder_cache(
    settings: Settings | None = None,
    rpc_client: SolanaRPCClient | None = None,
) -> HolderCache:
    """Get or create holder cache singleton.

    A client passed in stays owned by the caller and is not closed by
    close_holder_cache().
    """
    global _holder_cache, _owns_rpc_client
    if _holder_cache is None:
        settings = settings or get_settings()
        _owns_rpc_client = rpc_client is None
        _holder_cache = HolderCache(
            rpc_client or SolanaRPCClient(settings),
            capacity=settings.cache_capacity,
            api_timeout=settings.api_timeout,
            refresh_timeout=settings.refresh_timeout,
            ttl_seconds=settings.cache_ttl,
        )
    return _holder_cache


async def close_holder_cache() -> None:
    """Close the singleton cache, and its RPC client if the cache created it."""
    global _holder_cache, _owns_rpc_client
    if _holder_cache is not None:
        await _holder_cache.close()
        if _owns_rpc_client:
            await _holder_cache.rpc_client.close()
        _holder_cache = None
        _owns_rpc_client = False
