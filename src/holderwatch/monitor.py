"""Single-token holder monitoring loop.

Polls the RPC endpoint directly (bypassing the cache) on a fixed interval,
prints one status line per poll and keeps run metrics and alerts.
"""

import asyncio
import sys
import time
from typing import TextIO

import structlog

from holderwatch.constants.holders import SLOW_CYCLE_SECONDS
from holderwatch.core.identifiers import parse_token_identifier
from holderwatch.core.stats import calculate_stats, check_alerts, format_timestamp
from holderwatch.models.holders import HolderStats, Metrics
from holderwatch.services.solana.account_parser import extract_holders
from holderwatch.services.solana.rpc_client import SolanaRPCClient

log = structlog.get_logger(__name__)


class HolderMonitor:
    """Poll one token's holder count and track how it changes.

    Attributes:
        mint: Token being monitored.
        interval: Seconds between poll starts.
        metrics: Aggregates over every successful poll of this run.
        previous_count: Holder count of the last successful poll.

    Example:
        monitor = HolderMonitor(client, "EPjFWdd5...", interval=30)
        metrics = await monitor.run(stop_event)
        monitor.print_final_metrics()
    """

    def __init__(
        self,
        rpc_client: SolanaRPCClient,
        token_id: str,
        interval: float,
        out: TextIO | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be greater than 0")

        self.rpc_client = rpc_client
        self.mint = parse_token_identifier(token_id)
        self.interval = interval
        self.metrics = Metrics()
        self.previous_count: int | None = None
        self._out = out or sys.stdout

    async def run_cycle(self) -> HolderStats:
        """Run one poll: fetch, extract, compute stats, alert, print.

        Raises:
            HolderWatchError: If the fetch fails; metrics and the previous
                count are left unchanged.
        """
        start = time.monotonic()

        accounts = await self.rpc_client.fetch_token_accounts(self.mint)
        fetch_elapsed = time.monotonic() - start

        extract_start = time.monotonic()
        holder_count = len(extract_holders(accounts))
        extract_elapsed = time.monotonic() - extract_start

        elapsed = time.monotonic() - start
        if elapsed > SLOW_CYCLE_SECONDS:
            log.warning(
                "monitor_slow_cycle",
                total_seconds=round(elapsed, 2),
                fetch_seconds=round(fetch_elapsed, 2),
                extract_seconds=round(extract_elapsed, 2),
                accounts=len(accounts),
            )

        stats = calculate_stats(holder_count, self.previous_count)
        self.metrics.update(holder_count)
        check_alerts(stats, self.previous_count, self.metrics)
        self.print_status(stats, elapsed)

        self.previous_count = holder_count
        return stats

    async def run(self, stop_event: asyncio.Event) -> Metrics:
        """Poll until ``stop_event`` is set.

        A failed poll is logged and the loop waits for the next interval.
        """
        loop = asyncio.get_running_loop()
        next_run = loop.time()

        log.info(
            "monitor_started",
            token_mint=str(self.mint),
            interval_seconds=self.interval,
            rpc_url=self.rpc_client.base_url,
        )

        while not stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception as e:
                log.error("monitor_cycle_failed", token_mint=str(self.mint), error=str(e))

            next_run += self.interval
            delay = next_run - loop.time()
            if delay < 0:
                # Cycle overran the interval; start the next one right away
                next_run = loop.time()
                delay = 0

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except TimeoutError:
                pass

        log.info("monitor_stopped", total_polls=self.metrics.total_polls)
        return self.metrics

    def print_status(self, stats: HolderStats, elapsed: float) -> None:
        """Print one console line for a poll."""
        if stats.change == 0:
            change_str = "±0"
        elif stats.change > 0:
            change_str = f"+{stats.change}"
        else:
            change_str = str(stats.change)

        change_percent_str = (
            "" if stats.change_percent == 0.0 else f" ({stats.change_percent:+.1f}%)"
        )

        print(
            f"MINT: {self.mint} | Holders: {stats.count} | "
            f"Δ: {change_str}{change_percent_str} | "
            f"Time: {format_timestamp(stats.timestamp)} | Fetch: {elapsed:.2f}s",
            file=self._out,
            flush=True,
        )

    def print_final_metrics(self) -> None:
        """Print the run summary."""
        metrics = self.metrics
        separator = "=" * 80
        lines = [
            "",
            separator,
            f"FINAL METRICS for {self.mint}",
            separator,
            f"Total polls: {metrics.total_polls}",
        ]
        if metrics.min_holders is not None:
            lines.append(f"Min holders: {metrics.min_holders}")
        if metrics.max_holders is not None:
            lines.append(f"Max holders: {metrics.max_holders}")
        lines.append(f"Average holders: {metrics.average_holders():.2f}")

        if metrics.alerts:
            lines.append("")
            lines.append("ALERTS TRIGGERED:")
            lines.extend(f"  - {alert}" for alert in metrics.alerts)

        lines.append(separator)
        print("\n".join(lines), file=self._out, flush=True)
