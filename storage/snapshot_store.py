"""
Snapshot Store

The single shared in-memory state of the service:
- symbol -> CoinState for every tracked symbol fetched at least once
- the Active Interval used for history fetches

All reads and writes go through one asyncio.Lock. CoinState objects are
immutable and replaced wholesale, so a reader holding a copy of the mapping
never sees a half-written record.

Entries are never evicted: a symbol that fails to refresh keeps its last
good state until the next success.
"""

import asyncio
from typing import Any, Dict, Iterable

from core.errors import UnknownInterval
from core.intervals import is_supported_interval
from core.logging import get_logger
from core.schemas import CoinState


class SnapshotStore:
    """
    Guarded symbol -> CoinState mapping plus the Active Interval.

    Example:
        >>> store = SnapshotStore(["BTC", "ETH"], active_interval="5m")
        >>> await store.merge_one("BTC", state)
        >>> snapshot = await store.get()
    """

    def __init__(self, symbols: Iterable[str], active_interval: str = "5m") -> None:
        if not is_supported_interval(active_interval):
            raise UnknownInterval(active_interval)

        self._symbols = frozenset(s.upper() for s in symbols)
        self._coins: Dict[str, CoinState] = {}
        self._active_interval = active_interval
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @property
    def symbols(self) -> frozenset:
        return self._symbols

    async def get(self) -> Dict[str, CoinState]:
        """Return a point-in-time copy of the snapshot."""
        async with self._lock:
            return dict(self._coins)

    async def merge_one(self, symbol: str, state: CoinState) -> None:
        """
        Store the latest state for one symbol, replacing any previous entry.

        Raises:
            ValueError: If the symbol is not tracked
        """
        key = symbol.upper()
        if key not in self._symbols:
            raise ValueError(f"Symbol '{symbol}' is not tracked")

        async with self._lock:
            self._coins[key] = state

    async def get_active_interval(self) -> str:
        async with self._lock:
            return self._active_interval

    async def set_active_interval(self, label: str) -> None:
        """
        Change the interval used by subsequent refresh cycles.

        Raises:
            UnknownInterval: If the label is not in the interval table
        """
        if not is_supported_interval(label):
            raise UnknownInterval(label)

        async with self._lock:
            previous, self._active_interval = self._active_interval, label

        if previous != label:
            self._logger.info(f"Active interval changed: {previous} -> {label}")

    async def to_payload(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot in the JSON shape sent to subscribers."""
        snapshot = await self.get()
        return {symbol: state.model_dump(mode="json") for symbol, state in snapshot.items()}
