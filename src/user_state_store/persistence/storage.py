"""SQLite-backed persistence for the user state snapshot."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Protocol

from ..monitoring.logger import get_logger
from ..state.schemas import UserState
from ..utils.constants import current_timestamp

SCHEMA_VERSION = 2
SNAPSHOT_ROW_ID = 1

CREATE_USER_STATE_TABLE = """
CREATE TABLE IF NOT EXISTS user_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    payload TEXT NOT NULL,
    last_version TEXT,
    updated_at INTEGER NOT NULL
);
"""

CREATE_REJECTED_SNAPSHOT_TABLE = """
CREATE TABLE IF NOT EXISTS rejected_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    payload TEXT NOT NULL,
    error TEXT NOT NULL,
    rejected_at INTEGER NOT NULL
);
"""

CREATE_SCHEMA_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER NOT NULL
);
"""


class SnapshotStorage(Protocol):
    """Interface describing snapshot backends."""

    def load(self) -> Optional[UserState]:
        ...

    def save(self, state: UserState) -> None:
        ...

    def clear(self) -> None:
        ...


class SQLiteSnapshotStorage:
    """Keeps the latest user state snapshot as a single JSON row."""

    def __init__(self, database_path: Path) -> None:
        self._database_path = Path(database_path)
        self._logger = get_logger(__name__)
        self._initialize()

    @property
    def database_path(self) -> Path:
        return self._database_path

    def _initialize(self) -> None:
        self._database_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as con:
            con.execute(CREATE_USER_STATE_TABLE)
            con.execute(CREATE_REJECTED_SNAPSHOT_TABLE)
            con.execute(CREATE_SCHEMA_VERSION_TABLE)
            if self._get_schema_version(con) != SCHEMA_VERSION:
                con.execute("DELETE FROM schema_migrations")
                con.execute("INSERT INTO schema_migrations (version) VALUES (?)", (SCHEMA_VERSION,))
            con.commit()

    def _get_schema_version(self, con: sqlite3.Connection) -> int:
        row = con.execute("SELECT version FROM schema_migrations ORDER BY ROWID DESC LIMIT 1").fetchone()
        if row is None:
            return 0
        return int(row[0])

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        con = sqlite3.connect(self._database_path)
        try:
            yield con
        finally:
            con.close()

    def save(self, state: UserState) -> None:
        payload = json.dumps(state.to_dict(), separators=(",", ":"))
        with self._connect() as con:
            con.execute(
                """
                INSERT INTO user_state (id, payload, last_version, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    payload = excluded.payload,
                    last_version = excluded.last_version,
                    updated_at = excluded.updated_at
                """,
                (SNAPSHOT_ROW_ID, payload, state.last_version, state.timestamp),
            )
            con.commit()

    def load(self) -> Optional[UserState]:
        """Return the stored snapshot, or ``None`` if there is no usable one.

        An unreadable payload is moved to ``rejected_snapshots`` before
        ``None`` is returned, so a later :meth:`save` cannot destroy it.
        """

        with self._connect() as con:
            row = con.execute("SELECT payload FROM user_state WHERE id = ?", (SNAPSHOT_ROW_ID,)).fetchone()
            if row is None:
                return None
            try:
                return UserState.from_dict(json.loads(row[0]))
            except ValueError as exc:
                # json.JSONDecodeError is a ValueError as well.
                con.execute(
                    "INSERT INTO rejected_snapshots (payload, error, rejected_at) VALUES (?, ?, ?)",
                    (row[0], str(exc), current_timestamp()),
                )
                con.execute("DELETE FROM user_state WHERE id = ?", (SNAPSHOT_ROW_ID,))
                con.commit()
                self._logger.warning(
                    "Moved unreadable user state snapshot to rejected_snapshots",
                    exc_info=True,
                    extra={"database_path": str(self._database_path)},
                )
                return None

    def rejected_payloads(self) -> List[str]:
        """Raw payloads set aside by :meth:`load`, oldest first."""

        with self._connect() as con:
            rows = con.execute("SELECT payload FROM rejected_snapshots ORDER BY id").fetchall()
        return [row[0] for row in rows]

    def clear(self) -> None:
        with self._connect() as con:
            con.execute("DELETE FROM user_state")
            con.commit()


__all__ = ["SQLiteSnapshotStorage", "SnapshotStorage"]
