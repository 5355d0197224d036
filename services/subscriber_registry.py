"""
Subscriber Registry & Broadcaster

Tracks the live WebSocket connections and pushes the full snapshot to them.

- New connections get the current snapshot right away, so a late joiner does
  not wait for the next cycle.
- A failed or stalled send to one connection is logged and does not affect
  the others. Every send is bounded by send_timeout.
  Connections are only removed by their own read loop ending (unregister).
- wait_for_subscriber() lets the scheduler sleep until the first client
  arrives instead of polling.

Connections only need an async send_json(data) method (Starlette's WebSocket
has one).
"""

import asyncio
from typing import Any, Dict, Set

from core.errors import ClientDisconnected
from core.logging import get_logger
from storage.snapshot_store import SnapshotStore


def describe(conn: Any) -> str:
    """Printable client address for logs."""
    client = getattr(conn, "client", None)
    if client is not None and getattr(client, "host", None):
        return f"{client.host}:{client.port}"
    return f"conn-{id(conn):x}"


class SubscriberRegistry:
    """
    Live set of subscriber connections.

    Membership is guarded by an asyncio.Condition, which doubles as the
    "first subscriber arrived" signal.
    """

    def __init__(self, store: SnapshotStore, send_timeout: float = 5.0) -> None:
        self._store = store
        self._send_timeout = send_timeout
        self._connections: Set[Any] = set()
        self._condition = asyncio.Condition()
        self._logger = get_logger(__name__)

    def __len__(self) -> int:
        return len(self._connections)

    async def register(self, conn: Any) -> None:
        """
        Add a connection and send it the current snapshot.

        Raises:
            ClientDisconnected: If the initial snapshot cannot be delivered
                within send_timeout. The connection stays registered; the
                caller's cleanup unregisters it.
        """
        async with self._condition:
            self._connections.add(conn)
            self._condition.notify_all()
            total = len(self._connections)

        self._logger.info(f"Subscriber {describe(conn)} registered. total={total}")

        payload = await self._store.to_payload()
        try:
            await asyncio.wait_for(conn.send_json(payload), timeout=self._send_timeout)
        except asyncio.TimeoutError as e:
            raise ClientDisconnected(
                f"Initial snapshot to {describe(conn)} timed out after {self._send_timeout:g}s"
            ) from e
        except Exception as e:
            raise ClientDisconnected(f"Initial snapshot to {describe(conn)} failed: {e}") from e

    async def unregister(self, conn: Any) -> None:
        async with self._condition:
            if conn not in self._connections:
                return
            self._connections.discard(conn)
            total = len(self._connections)

        self._logger.info(f"Subscriber {describe(conn)} unregistered. total={total}")

    async def wait_for_subscriber(self) -> None:
        """Block until at least one connection is registered."""
        async with self._condition:
            await self._condition.wait_for(lambda: len(self._connections) > 0)

    async def broadcast(self, payload: Dict[str, Any]) -> int:
        """
        Send the payload to every registered connection.

        Returns:
            Number of connections the payload was delivered to
        """
        async with self._condition:
            targets = list(self._connections)

        if not targets:
            return 0

        results = await asyncio.gather(*(self._send(conn, payload) for conn in targets))
        delivered = sum(results)
        self._logger.debug(f"Broadcast delivered to {delivered}/{len(targets)} subscribers")
        return delivered

    async def _send(self, conn: Any, payload: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(conn.send_json(payload), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            self._logger.warning(
                f"Broadcast to {describe(conn)} timed out after {self._send_timeout:g}s; skipped"
            )
            return False
        except Exception as e:
            self._logger.warning(f"Failed to broadcast to {describe(conn)}: {e}")
            return False
