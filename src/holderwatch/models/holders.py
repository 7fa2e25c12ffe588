"""Holder tracking domain models.

All models use Pydantic BaseModel. Cache entries are mutable and owned by
the cache; everything handed to callers is a frozen snapshot.
"""

from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, ConfigDict, Field

log = structlog.get_logger(__name__)


class CacheEntry(BaseModel):
    """One resident token in the holder cache.

    Attributes:
        token_id: Token mint address (base58).
        count: Most recently computed holder count.
        fetched_at: When ``count`` was computed; drives TTL and eviction.
        request_count: Lookups served for this key while resident.
        first_seen: Insertion time, preserved across refreshes.
    """

    token_id: str
    count: int = Field(..., ge=0)
    fetched_at: datetime
    request_count: int = Field(default=1, ge=0)
    first_seen: datetime

    def is_expired(self, ttl_seconds: float, now: datetime) -> bool:
        """Check if the entry is older than ``ttl_seconds``."""
        return (now - self.fetched_at).total_seconds() >= ttl_seconds

    def snapshot(self, served_from_cache: bool) -> "TokenStats":
        """Copy the entry into an immutable snapshot for callers."""
        return TokenStats(
            token_id=self.token_id,
            holder_count=self.count,
            last_fetch_timestamp=self.fetched_at,
            request_count=self.request_count,
            first_seen=self.first_seen,
            served_from_cache=served_from_cache,
        )


class TokenStats(BaseModel):
    """Snapshot of a cache entry, safe to share outside the cache lock."""

    model_config = ConfigDict(frozen=True)

    token_id: str
    holder_count: int
    last_fetch_timestamp: datetime
    request_count: int
    first_seen: datetime
    served_from_cache: bool = False


class CacheStats(BaseModel):
    """Aggregate cache counters."""

    resident_count: int = Field(..., ge=0)
    total_requests: int = Field(..., ge=0)
    capacity: int = Field(..., ge=1)


class HolderCountResponse(BaseModel):
    """Response body for ``GET /holders/{token_id}``."""

    token_id: str
    holder_count: int
    last_fetch_timestamp: int = Field(description="Unix seconds of the fetch")
    served_from_cache: bool

    @classmethod
    def from_snapshot(cls, snapshot: TokenStats) -> "HolderCountResponse":
        """Build the API payload from a cache snapshot."""
        return cls(
            token_id=snapshot.token_id,
            holder_count=snapshot.holder_count,
            last_fetch_timestamp=int(snapshot.last_fetch_timestamp.timestamp()),
            served_from_cache=snapshot.served_from_cache,
        )


class HolderStats(BaseModel):
    """Holder count of one poll and its change versus the previous poll."""

    model_config = ConfigDict(frozen=True)

    count: int = Field(..., ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    change: int = 0
    change_percent: float = 0.0


class Metrics(BaseModel):
    """Process-lifetime aggregates of the monitoring loop."""

    total_polls: int = 0
    min_holders: int | None = None
    max_holders: int | None = None
    total_holders_sum: int = 0
    alerts: list[str] = Field(default_factory=list)

    def update(self, holder_count: int) -> None:
        """Record one successful poll."""
        self.total_polls += 1
        self.total_holders_sum += holder_count

        if self.min_holders is None or holder_count < self.min_holders:
            self.min_holders = holder_count
        if self.max_holders is None or holder_count > self.max_holders:
            self.max_holders = holder_count

    def average_holders(self) -> float:
        """Mean holder count over all polls, 0.0 before the first poll."""
        if self.total_polls == 0:
            return 0.0
        return self.total_holders_sum / self.total_polls

    def add_alert(self, message: str) -> None:
        """Append an alert to the run log."""
        log.warning("holder_alert", message=message)
        self.alerts.append(message)
