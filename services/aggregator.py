"""
Price Aggregator

Runs one refresh cycle:

1. Read the Active Interval once (a change mid-cycle applies to the next cycle)
2. For every tracked symbol, concurrently: fetch the 24h quote, then the close
   history. A failed quote skips the symbol; a failed history becomes [].
3. Join all symbol tasks, bounded by the cycle deadline. Tasks still running
   at the deadline are cancelled and counted as failed.
4. Merge every success into the snapshot store, tagged with the interval used
5. Broadcast the full snapshot, even when nothing was updated

Cycles never overlap: the scheduler and interval-change requests both go
through refresh(), which holds a lock for the whole cycle.
"""

import asyncio
import time
from typing import Dict, Iterable, List, Optional, Set, Tuple

from core.errors import UpstreamError
from core.logging import get_logger
from core.schemas import CoinState, CycleReport, PriceQuote
from core.utils.time import current_utc_datetime
from services.subscriber_registry import SubscriberRegistry
from storage.snapshot_store import SnapshotStore


class PriceAggregator:
    """
    Refresh cycle orchestrator.

    Args:
        client: Upstream client exposing fetch_quote(symbol, timeout) and
            fetch_history(symbol, interval, timeout)
        store: Shared snapshot store
        registry: Subscriber registry used for the broadcast
        symbols: Tracked Symbol Set
        cycle_timeout: Deadline for the whole cycle in seconds
    """

    def __init__(
        self,
        client,
        store: SnapshotStore,
        registry: SubscriberRegistry,
        symbols: Iterable[str],
        cycle_timeout: float = 10.0
    ) -> None:
        self._client = client
        self._store = store
        self._registry = registry
        self._symbols: Tuple[str, ...] = tuple(s.upper() for s in symbols)
        self._cycle_timeout = cycle_timeout
        self._cycle_lock = asyncio.Lock()
        self._logger = get_logger(__name__)

        self.cycles_completed = 0
        self.last_report: Optional[CycleReport] = None

    @property
    def symbols(self) -> Tuple[str, ...]:
        return self._symbols

    # ============================================
    # Public API
    # ============================================

    async def refresh(self) -> CycleReport:
        """Run one full refresh cycle and return its report."""
        async with self._cycle_lock:
            return await self._run_cycle()

    async def change_interval(self, label: str) -> CycleReport:
        """
        Switch the Active Interval and refresh immediately.

        If a cycle is in flight, the new one starts right after it finishes.

        Raises:
            UnknownInterval: If the label is not supported (nothing changes)
        """
        await self._store.set_active_interval(label)
        return await self.refresh()

    # ============================================
    # Cycle
    # ============================================

    async def _run_cycle(self) -> CycleReport:
        loop = asyncio.get_running_loop()
        started = time.monotonic()
        deadline = loop.time() + self._cycle_timeout
        interval = await self._store.get_active_interval()

        report = CycleReport(interval=interval, started_at=current_utc_datetime())
        self._logger.debug(f"Refresh cycle starting: {len(self._symbols)} symbols, interval={interval}")

        tasks: Dict[asyncio.Task, str] = {
            asyncio.create_task(
                self._fetch_symbol(symbol, interval, deadline),
                name=f"refresh:{symbol}"
            ): symbol
            for symbol in self._symbols
        }

        results: Dict[str, CoinState] = {}
        done: Set[asyncio.Task] = set()
        if tasks:
            try:
                done, pending = await asyncio.wait(tasks, timeout=self._cycle_timeout)
                for task in pending:
                    self._logger.warning(f"{tasks[task]}: abandoned, cycle deadline reached")
            finally:
                # also reached when the cycle itself is cancelled
                unfinished = [task for task in tasks if not task.done()]
                for task in unfinished:
                    task.cancel()
                if unfinished:
                    await asyncio.gather(*unfinished, return_exceptions=True)

            for task in done:
                symbol = tasks[task]
                error = task.exception()
                if error is not None:
                    self._logger.error(f"{symbol}: unexpected refresh error: {error!r}")
                    continue
                state = task.result()
                if state is not None:
                    results[symbol] = state

        for symbol in self._symbols:
            if symbol in results:
                await self._store.merge_one(symbol, results[symbol])
                report.updated.append(symbol)
            else:
                report.failed.append(symbol)

        report.delivered = await self._registry.broadcast(await self._store.to_payload())
        report.duration_seconds = round(time.monotonic() - started, 3)

        self.cycles_completed += 1
        self.last_report = report

        log = self._logger.info if report.updated else self._logger.warning
        log(
            f"Refresh cycle done in {report.duration_seconds:.2f}s: "
            f"{len(report.updated)} updated, {len(report.failed)} failed, "
            f"interval={interval}, delivered to {report.delivered} subscribers"
        )
        return report

    async def _fetch_symbol(self, symbol: str, interval: str, deadline: float) -> Optional[CoinState]:
        """
        Quote then history for one symbol.

        Returns:
            The new CoinState, or None if the quote could not be fetched
        """
        loop = asyncio.get_running_loop()

        try:
            quote: PriceQuote = await self._client.fetch_quote(symbol, timeout=deadline - loop.time())
        except UpstreamError as e:
            self._logger.warning(f"{symbol}: quote fetch failed, skipping this cycle: {e}")
            return None

        history: List[float]
        try:
            history = await self._client.fetch_history(symbol, interval, timeout=deadline - loop.time())
        except UpstreamError as e:
            self._logger.warning(f"{symbol}: history fetch failed, sending price only: {e}")
            history = []

        return CoinState.from_quote(quote, history, interval)
