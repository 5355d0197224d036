"""
FastAPI Application - Live Crypto Price Widget Backend

Keeps a snapshot of the latest Binance prices for the tracked coins and pushes
it to every connected widget over WebSocket.

Endpoints:
    - WS  /ws        Full snapshot on connect and after every refresh.
                     Send {"interval": "15m"} to switch the history interval.
    - GET /coins     Tracked symbols
    - GET /history   Close prices for ?symbol=BTC&interval=1h
    - GET /health    Subscriber count and last refresh cycle
    - /              Widget front-end (when the static directory exists)

Usage:
    uvicorn app.main:app --host 127.0.0.1 --port 8080
"""

import json
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.staticfiles import StaticFiles

from core.config import settings, validate_configuration
from core.errors import ClientDisconnected, UnknownInterval, UpstreamError
from core.logging import logger, log_websocket_event
from exchanges.binance.api_client import BinanceAPIClient
from services.aggregator import PriceAggregator
from services.scheduler import RefreshScheduler
from services.subscriber_registry import SubscriberRegistry, describe
from storage.snapshot_store import SnapshotStore


# ============================================
# Shared Components
# ============================================

client = BinanceAPIClient()
store = SnapshotStore(settings.symbols_list, active_interval=settings.default_interval)
registry = SubscriberRegistry(store, send_timeout=settings.send_timeout)
aggregator = PriceAggregator(
    client,
    store,
    registry,
    settings.symbols_list,
    cycle_timeout=settings.cycle_timeout_seconds
)
scheduler = RefreshScheduler(aggregator, registry, period_seconds=settings.refresh_period_seconds)


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await client.start()
        await scheduler.start()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await scheduler.stop()
    except Exception as e:
        logger.error(f"Error stopping scheduler: {e}")
    await client.close()
    logger.info("=== Shutdown Complete ===")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="PricePulse",
    description=(
        "Live crypto price snapshot for a desktop widget.\n\n"
        "- `GET /coins` - Tracked symbols\n"
        "- `GET /history?symbol=BTC&interval=1h` - Close prices\n"
        "- `GET /health` - Service status\n"
        "- `WS /ws` - Snapshot stream; send `{\"interval\": \"15m\"}` to switch interval"
    ),
    version="1.0.0",
    lifespan=lifespan
)


# ============================================
# REST Endpoints
# ============================================

@app.get("/coins", tags=["Market Data"])
async def list_coins():
    """Tracked Symbol Set, in configured order."""
    return list(aggregator.symbols)


@app.get("/history", tags=["Market Data"])
async def get_history(
    symbol: Optional[str] = Query(default=None, description="Ticker code (e.g., BTC)"),
    interval: Optional[str] = Query(default=None, description="Interval label (5m, 15m, 30m, 1h, 1d)")
):
    """
    Fetch close prices for one symbol straight from Binance.

    Errors:
        400: Missing symbol/interval or unsupported interval
        500: Upstream request failed
    """
    if not symbol or not interval:
        raise HTTPException(status_code=400, detail="Missing symbol or interval")

    try:
        return await client.fetch_history(symbol, interval)
    except UnknownInterval as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamError as e:
        logger.error(f"History fetch failed for {symbol}/{interval}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/health", tags=["System"])
async def health_check():
    """Subscriber count, active interval and last cycle outcome."""
    report = aggregator.last_report
    degraded = report is not None and not report.updated
    return {
        "status": "degraded" if degraded else "ok",
        "subscribers": len(registry),
        "active_interval": await store.get_active_interval(),
        "cycles_completed": aggregator.cycles_completed,
        "last_cycle": report.model_dump(mode="json") if report else None
    }


# ============================================
# WebSocket Endpoint
# ============================================

async def handle_client_message(raw: str, client_id: str) -> None:
    """
    Apply one inbound subscriber message.

    Only {"interval": "<label>"} is understood; anything else is ignored.
    A supported label switches the interval for everyone and triggers an
    immediate refresh.
    """
    try:
        data: Any = json.loads(raw)
    except ValueError:
        logger.debug(f"Ignoring non-JSON message from {client_id}")
        return

    if not isinstance(data, dict):
        return

    label = data.get("interval")
    if not isinstance(label, str) or not label:
        return

    logger.info(f"Interval change requested by {client_id}: {label}")
    try:
        await aggregator.change_interval(label)
    except UnknownInterval as e:
        logger.warning(f"Rejected interval change from {client_id}: {e}")


@app.websocket("/ws")
async def websocket_prices(websocket: WebSocket):
    """
    Snapshot stream.

    The full snapshot is sent on connect and after every refresh cycle.
    """
    await websocket.accept()
    client_id = describe(websocket)
    log_websocket_event("connected", client_id)

    try:
        await registry.register(websocket)
        while True:
            message = await websocket.receive_text()
            await handle_client_message(message, client_id)
    except WebSocketDisconnect:
        log_websocket_event("disconnected", client_id)
    except ClientDisconnected as e:
        log_websocket_event("error", client_id, str(e))
    except Exception as e:
        log_websocket_event("error", client_id, repr(e))
        try:
            await websocket.close(code=1011, reason="Internal error")
        except Exception:
            pass
    finally:
        await registry.unregister(websocket)


# ============================================
# Static Front-End
# ============================================

# Mounted last so the routes above take precedence over "/"
if os.path.isdir(settings.static_dir):
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
