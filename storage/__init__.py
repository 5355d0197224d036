"""
Storage Package

Holds the in-memory snapshot of the latest market data. Nothing is persisted
across restarts.
"""

from storage.snapshot_store import SnapshotStore

__all__ = ["SnapshotStore"]
