#!/usr/bin/env python3
"""
WebSocket watch client for the /ws snapshot stream.

Prints one line per coin for every snapshot received. With --interval, asks
the server to switch the history interval right after connecting.

Usage examples:
  python scripts/ws_watch.py
  python scripts/ws_watch.py --host 127.0.0.1 --port 8080 --interval 1h --duration 60
"""

import asyncio
import argparse
import json
import sys
from typing import Optional

import websockets


def summarize(snapshot: dict) -> str:
    if not snapshot:
        return "  (empty snapshot)"
    lines = []
    for symbol, coin in sorted(snapshot.items()):
        history = coin.get("history") or []
        lines.append(
            f"  {symbol:<5} price={coin.get('price')} change24h={coin.get('change24h')}% "
            f"history={len(history)}x{coin.get('interval')}"
        )
    return "\n".join(lines)


async def stream_loop(url: str, interval: Optional[str] = None, duration: Optional[int] = None) -> None:
    """
    Connect to the snapshot stream and print incoming snapshots.
    Reconnects on error with exponential backoff.
    """
    attempt = 0
    end_time = (asyncio.get_running_loop().time() + duration) if duration else None

    while True:
        if end_time is not None and asyncio.get_running_loop().time() >= end_time:
            print("[watch] Duration reached; stopping.")
            return

        try:
            async with websockets.connect(url) as ws:
                attempt = 0
                print(f"[watch] Connected: {url}")
                if interval:
                    await ws.send(json.dumps({"interval": interval}))
                    print(f"[watch] Requested interval {interval}")
                while True:
                    msg = await asyncio.wait_for(ws.recv(), timeout=60)
                    try:
                        print(f"[watch] Snapshot:\n{summarize(json.loads(msg))}")
                    except (ValueError, AttributeError):
                        print(f"[watch] {msg}")
        except asyncio.TimeoutError:
            print("[watch] No snapshot for 60s; reconnecting...")
        except Exception as e:
            attempt += 1
            backoff = min(2 ** (attempt - 1), 30)
            print(f"[watch] Disconnected/error ({e}); reconnecting in {backoff}s...")
            try:
                await asyncio.sleep(backoff)
            except asyncio.CancelledError:
                return


async def main() -> None:
    parser = argparse.ArgumentParser(description="Watch the PricePulse snapshot stream")
    parser.add_argument("--host", default="127.0.0.1", help="Server host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8080, help="Server port (default: 8080)")
    parser.add_argument("--interval", default=None, help="Interval to request after connecting (e.g., 15m)")
    parser.add_argument("--duration", type=int, default=0, help="Seconds to run (0 = run indefinitely)")
    args = parser.parse_args()

    duration = args.duration if args.duration and args.duration > 0 else None
    await stream_loop(f"ws://{args.host}:{args.port}/ws", args.interval, duration)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[Info] Interrupted. Bye.")
        sys.exit(0)
