"""
Tests for the HTTP and WebSocket Surface

The app's shared components are swapped for fresh ones backed by a stub
upstream client, so nothing here touches the network. The lifespan (and with
it the scheduler) is not started.

Run with:
    pytest tests/unit/test_api.py -v
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

import app.main as main
from core.errors import DecodeError, NetworkError, UnknownInterval
from core.schemas import CoinState
from services.aggregator import PriceAggregator
from services.subscriber_registry import SubscriberRegistry
from storage.snapshot_store import SnapshotStore

from fakes import StubClient, make_quote


SYMBOLS = ["BTC", "ETH"]


@pytest.fixture
def stub_client():
    return StubClient(
        quotes={s: make_quote(s, price="42.0") for s in SYMBOLS},
        histories={s: [1.0, 2.0, 3.0] for s in SYMBOLS}
    )


@pytest.fixture
def components(monkeypatch, stub_client):
    store = SnapshotStore(SYMBOLS)
    registry = SubscriberRegistry(store)
    aggregator = PriceAggregator(stub_client, store, registry, SYMBOLS, cycle_timeout=2.0)

    monkeypatch.setattr(main, "client", stub_client)
    monkeypatch.setattr(main, "store", store)
    monkeypatch.setattr(main, "registry", registry)
    monkeypatch.setattr(main, "aggregator", aggregator)
    return store, registry, aggregator


@pytest.fixture
def http(components):
    return TestClient(main.app)


# ============================================
# REST Endpoints
# ============================================

class TestCoins:

    def test_lists_tracked_symbols(self, http):
        response = http.get("/coins")

        assert response.status_code == 200
        assert response.json() == SYMBOLS


class TestHistory:

    def test_returns_closes(self, http, stub_client):
        response = http.get("/history", params={"symbol": "BTC", "interval": "1h"})

        assert response.status_code == 200
        assert response.json() == [1.0, 2.0, 3.0]
        assert stub_client.history_calls == [("BTC", "1h")]

    @pytest.mark.parametrize("params", [
        {"symbol": "BTC"},
        {"interval": "1h"},
        {"symbol": "", "interval": "1h"},
        {},
    ])
    def test_missing_parameter_is_client_error(self, http, params):
        response = http.get("/history", params=params)

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing symbol or interval"

    def test_unknown_interval_is_client_error(self, http, stub_client):
        stub_client.histories["BTC"] = UnknownInterval("2h")

        response = http.get("/history", params={"symbol": "BTC", "interval": "2h"})

        assert response.status_code == 400

    @pytest.mark.parametrize("error", [NetworkError("refused"), DecodeError("garbage")])
    def test_upstream_failure_is_server_error(self, http, stub_client, error):
        stub_client.histories["BTC"] = error

        response = http.get("/history", params={"symbol": "BTC", "interval": "5m"})

        assert response.status_code == 500
        assert response.json()["detail"] == str(error)


class TestHealth:

    def test_ok_before_any_cycle(self, http):
        body = http.get("/health").json()

        assert body["status"] == "ok"
        assert body["subscribers"] == 0
        assert body["active_interval"] == "5m"
        assert body["cycles_completed"] == 0
        assert body["last_cycle"] is None


# ============================================
# WebSocket Endpoint
# ============================================

class TestWebSocket:

    def test_snapshot_sent_on_connect(self, http, components):
        store, _, _ = components
        asyncio.run(store.merge_one(
            "BTC", CoinState(price="1", volume="2", change24h="3", history=[4.0], interval="5m")
        ))

        with http.websocket_connect("/ws") as ws:
            snapshot = ws.receive_json()

        assert snapshot == {
            "BTC": {"price": "1", "volume": "2", "change24h": "3", "history": [4.0], "interval": "5m"}
        }

    def test_empty_snapshot_sent_on_connect(self, http):
        with http.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {}

    def test_interval_change_triggers_refresh(self, http, components, stub_client):
        store, _, aggregator = components

        with http.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"interval": "1h"})
            snapshot = ws.receive_json()

        assert set(snapshot) == set(SYMBOLS)
        assert all(entry["interval"] == "1h" for entry in snapshot.values())
        assert snapshot["ETH"]["price"] == "42.0"
        assert aggregator.cycles_completed == 1
        assert asyncio.run(store.get_active_interval()) == "1h"

    def test_ignored_messages(self, http, components):
        """Unknown labels, empty labels and non-JSON text change nothing"""
        store, _, aggregator = components

        with http.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("hello")
            ws.send_json({"interval": ""})
            ws.send_json({"interval": "2h"})
            ws.send_json(["1h"])
            ws.send_json({"interval": "1d"})
            snapshot = ws.receive_json()

        assert all(entry["interval"] == "1d" for entry in snapshot.values())
        assert aggregator.cycles_completed == 1

    def test_disconnect_unregisters(self, http, components):
        _, registry, _ = components

        with http.websocket_connect("/ws") as ws:
            ws.receive_json()
            assert len(registry) == 1

        # the server side finishes its cleanup once the session thread exits
        assert len(registry) == 0
