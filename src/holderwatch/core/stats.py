"""Holder count statistics and alerting.

Pure functions over the current and previous holder counts. Alerts are
appended to the run's Metrics and never deduplicated.
"""

from datetime import UTC, datetime

from holderwatch.constants.holders import DROP_ALERT_PERCENT, GROWTH_ALERT_PERCENT
from holderwatch.models.holders import HolderStats, Metrics


def calculate_stats(
    current_count: int,
    previous_count: int | None,
    now: datetime | None = None,
) -> HolderStats:
    """Compute signed and percentage change versus the previous poll.

    A zero previous count is treated as a full increase (100%) when holders
    appeared, and as no change when there are still none. The first
    observation (no previous count) reports no change.
    """
    timestamp = now or datetime.now(UTC)

    if previous_count is None:
        return HolderStats(count=current_count, timestamp=timestamp)

    change = current_count - previous_count
    if previous_count > 0:
        change_percent = change * 100.0 / previous_count
    elif current_count > 0:
        change_percent = 100.0
    else:
        change_percent = 0.0

    return HolderStats(
        count=current_count,
        timestamp=timestamp,
        change=change,
        change_percent=change_percent,
    )


def check_alerts(
    stats: HolderStats,
    previous_count: int | None,
    metrics: Metrics,
) -> list[str]:
    """Record growth and drop alerts for one poll.

    Returns:
        The alert messages added to ``metrics`` by this call.
    """
    if previous_count is None:
        return []

    raised: list[str] = []

    if stats.change_percent >= GROWTH_ALERT_PERCENT:
        raised.append(
            f"SIGNIFICANT GROWTH: +{stats.change} holders "
            f"(+{stats.change_percent:.1f}%) | {previous_count} -> {stats.count}"
        )

    if stats.change_percent <= DROP_ALERT_PERCENT:
        raised.append(
            f"SIGNIFICANT DROP: {stats.change} holders "
            f"({stats.change_percent:.1f}%) | {previous_count} -> {stats.count}"
        )

    for message in raised:
        metrics.add_alert(message)
    return raised


def format_timestamp(value: datetime) -> str:
    """Format a timestamp for console output."""
    return value.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
