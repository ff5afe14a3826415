"""Durable storage for user state snapshots."""

from .storage import SnapshotStorage, SQLiteSnapshotStorage

__all__ = ["SnapshotStorage", "SQLiteSnapshotStorage"]
