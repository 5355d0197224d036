"""
Refresh Scheduler

Background task that drives refresh cycles on a fixed period.

Nothing is fetched until the first subscriber connects. After that first
cycle the scheduler keeps firing every period for the life of the process,
whether or not anyone is still connected, so the snapshot stays warm for
reconnecting clients.
"""

import asyncio
import contextlib
from typing import Optional

from core.logging import get_logger
from services.aggregator import PriceAggregator
from services.subscriber_registry import SubscriberRegistry


class RefreshScheduler:
    """
    Fixed-period refresh driver.

    The period is measured start-to-start: a cycle that takes 3s with a 10s
    period is followed by a 7s sleep. A cycle that overruns the period is
    followed immediately by the next one.
    """

    def __init__(
        self,
        aggregator: PriceAggregator,
        registry: SubscriberRegistry,
        period_seconds: float = 10.0
    ) -> None:
        self._aggregator = aggregator
        self._registry = registry
        self._period = period_seconds
        self._running = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._logger = get_logger(__name__)

    @property
    def running(self) -> bool:
        return self._running.is_set()

    async def start(self) -> None:
        if self._running.is_set():
            return
        self._running.set()
        self._logger.info(f"Starting refresh scheduler (period {self._period:g}s)...")
        self._task = asyncio.create_task(self._run(), name="refresh_scheduler")

    async def stop(self) -> None:
        if not self._running.is_set():
            return
        self._logger.info("Stopping refresh scheduler...")
        self._running.clear()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    # ============================================
    # Core Loop
    # ============================================

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()

        self._logger.info("Waiting for the first subscriber before fetching")
        await self._registry.wait_for_subscriber()

        while self._running.is_set():
            cycle_start = loop.time()
            try:
                await self._aggregator.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._logger.error(f"Refresh cycle error: {e!r}")

            elapsed = loop.time() - cycle_start
            await asyncio.sleep(max(0.0, self._period - elapsed))
