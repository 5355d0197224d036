"""
Unit Tests for the Snapshot Store

Run with:
    pytest tests/unit/test_snapshot_store.py -v
"""

import asyncio

import pytest

from core.errors import UnknownInterval
from core.schemas import CoinState
from storage.snapshot_store import SnapshotStore


SYMBOLS = ["BTC", "ETH", "SOL", "XRP", "DOGE", "ADA", "TRX", "SUI"]


def state(price="1.0", interval="5m", history=None):
    return CoinState(price=price, volume="2.0", change24h="0.5", history=history or [], interval=interval)


class TestMerge:

    @pytest.mark.asyncio
    async def test_starts_empty(self):
        store = SnapshotStore(SYMBOLS)
        assert await store.get() == {}

    @pytest.mark.asyncio
    async def test_concurrent_merges_keep_every_symbol(self):
        """N concurrent merges for N distinct symbols leave N entries"""
        store = SnapshotStore(SYMBOLS)

        await asyncio.gather(*(store.merge_one(sym, state(price=str(i))) for i, sym in enumerate(SYMBOLS)))

        snapshot = await store.get()
        assert set(snapshot) == set(SYMBOLS)
        assert [snapshot[sym].price for sym in SYMBOLS] == [str(i) for i in range(len(SYMBOLS))]

    @pytest.mark.asyncio
    async def test_merge_replaces_previous_entry(self):
        store = SnapshotStore(SYMBOLS)
        await store.merge_one("BTC", state(price="1"))
        await store.merge_one("BTC", state(price="2"))

        assert (await store.get())["BTC"].price == "2"

    @pytest.mark.asyncio
    async def test_untracked_symbol_rejected(self):
        store = SnapshotStore(["BTC"])

        with pytest.raises(ValueError):
            await store.merge_one("PEPE", state())

        assert await store.get() == {}

    @pytest.mark.asyncio
    async def test_get_returns_a_copy(self):
        store = SnapshotStore(SYMBOLS)
        await store.merge_one("BTC", state())

        snapshot = await store.get()
        snapshot.pop("BTC")

        assert "BTC" in await store.get()

    @pytest.mark.asyncio
    async def test_payload_shape(self):
        store = SnapshotStore(SYMBOLS)
        await store.merge_one("eth", state(price="3000.5", interval="1h", history=[1.0, 2.5]))

        assert await store.to_payload() == {
            "ETH": {
                "price": "3000.5",
                "volume": "2.0",
                "change24h": "0.5",
                "history": [1.0, 2.5],
                "interval": "1h"
            }
        }


class TestActiveInterval:

    @pytest.mark.asyncio
    async def test_default_and_change(self):
        store = SnapshotStore(SYMBOLS, active_interval="15m")
        assert await store.get_active_interval() == "15m"

        await store.set_active_interval("1d")
        assert await store.get_active_interval() == "1d"

    @pytest.mark.asyncio
    async def test_unknown_label_rejected(self):
        store = SnapshotStore(SYMBOLS)

        with pytest.raises(UnknownInterval):
            await store.set_active_interval("3m")

        assert await store.get_active_interval() == "5m"

    def test_unknown_initial_interval_rejected(self):
        with pytest.raises(UnknownInterval):
            SnapshotStore(SYMBOLS, active_interval="7m")
