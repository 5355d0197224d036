"""
Unit Tests for the Subscriber Registry & Broadcaster

Run with:
    pytest tests/unit/test_subscriber_registry.py -v
"""

import asyncio

import pytest

from core.errors import ClientDisconnected
from core.schemas import CoinState
from services.subscriber_registry import SubscriberRegistry
from storage.snapshot_store import SnapshotStore

from fakes import FakeConnection, StalledConnection


@pytest.fixture
def store():
    return SnapshotStore(["BTC", "ETH"])


@pytest.fixture
def registry(store):
    return SubscriberRegistry(store)


class TestRegistration:

    @pytest.mark.asyncio
    async def test_join_receives_current_snapshot(self, store, registry):
        """A new subscriber gets the snapshot without waiting for a cycle"""
        await store.merge_one("BTC", CoinState(price="1", volume="2", change24h="3", interval="5m"))
        conn = FakeConnection()

        await registry.register(conn)

        assert len(registry) == 1
        assert conn.sent == [await store.to_payload()]
        assert "BTC" in conn.sent[0]

    @pytest.mark.asyncio
    async def test_join_with_empty_snapshot(self, registry):
        conn = FakeConnection()

        await registry.register(conn)

        assert conn.sent == [{}]

    @pytest.mark.asyncio
    async def test_failed_initial_send_raises(self, registry):
        conn = FakeConnection(fail=True)

        with pytest.raises(ClientDisconnected):
            await registry.register(conn)

        await registry.unregister(conn)
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_stalled_initial_send_raises(self, store):
        registry = SubscriberRegistry(store, send_timeout=0.05)
        conn = StalledConnection(accept=0)

        with pytest.raises(ClientDisconnected, match="timed out"):
            await asyncio.wait_for(registry.register(conn), timeout=1.0)

    @pytest.mark.asyncio
    async def test_unregister_is_idempotent(self, registry):
        conn = FakeConnection()
        await registry.register(conn)

        await registry.unregister(conn)
        await registry.unregister(conn)

        assert len(registry) == 0


class TestBroadcast:

    @pytest.mark.asyncio
    async def test_broadcast_reaches_all(self, registry):
        conns = [FakeConnection() for _ in range(3)]
        for conn in conns:
            await registry.register(conn)

        delivered = await registry.broadcast({"BTC": {"price": "1"}})

        assert delivered == 3
        assert all(conn.sent[-1] == {"BTC": {"price": "1"}} for conn in conns)

    @pytest.mark.asyncio
    async def test_failing_connection_is_isolated(self, registry):
        """One broken subscriber neither blocks others nor gets unregistered"""
        good = FakeConnection()
        bad = FakeConnection()
        await registry.register(good)
        await registry.register(bad)
        bad.fail = True

        delivered = await registry.broadcast({"x": 1})

        assert delivered == 1
        assert good.sent[-1] == {"x": 1}
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_stalled_connection_does_not_block_broadcast(self, store):
        """A subscriber that stops reading is skipped once send_timeout expires"""
        registry = SubscriberRegistry(store, send_timeout=0.05)
        good = FakeConnection()
        stalled = StalledConnection()
        await registry.register(good)
        await registry.register(stalled)

        first = await asyncio.wait_for(registry.broadcast({"x": 1}), timeout=1.0)
        second = await asyncio.wait_for(registry.broadcast({"x": 2}), timeout=1.0)

        assert first == 1
        assert second == 1
        assert good.sent[-2:] == [{"x": 1}, {"x": 2}]
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_broadcast_without_subscribers(self, registry):
        assert await registry.broadcast({}) == 0


class TestWaitForSubscriber:

    @pytest.mark.asyncio
    async def test_wakes_on_first_registration(self, registry):
        waiter = asyncio.create_task(registry.wait_for_subscriber())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        await registry.register(FakeConnection())

        await asyncio.wait_for(waiter, timeout=1.0)

    @pytest.mark.asyncio
    async def test_returns_immediately_when_populated(self, registry):
        await registry.register(FakeConnection())

        await asyncio.wait_for(registry.wait_for_subscriber(), timeout=1.0)
