"""Key-value persistence for the tab history."""
from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Protocol

from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)

RECENT_TABS_KEY = "recent_tabs"
CURRENT_TAB_KEY = "current_tab"


SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;
PRAGMA temp_store=MEMORY;

CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);
"""


class Store(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def set_many(self, values: Mapping[str, Any]) -> None:
        """Write several keys; either all of them land or none do."""
        ...


class MemoryStore:
    """Process-local store. Values are JSON round-tripped so callers never share objects."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    def _dump(self, key: str, value: Any) -> str:
        return json.dumps(value)

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: Mapping[str, Any]) -> None:
        staged = dict(self._data)
        for key, value in values.items():
            staged[key] = self._dump(key, value)
        self._data = staged


def connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()


class SqliteStore:
    """SQLite-backed store; each call opens a short-lived connection in a worker thread."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._initialized = False

    def _conn(self) -> sqlite3.Connection:
        conn = connect(self.db_path)
        if not self._initialized:
            try:
                init_db(conn)
            except sqlite3.Error:
                conn.close()
                raise
            self._initialized = True
            logger.debug("tab store ready at %s", self.db_path)
        return conn

    def _get_sync(self, key: str) -> Any | None:
        conn = self._conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return json.loads(row["value"])

    def _set_many_sync(self, values: Mapping[str, Any]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        rows = [(key, json.dumps(value), now) for key, value in values.items()]
        conn = self._conn()
        try:
            # Commits on success, rolls back every row on failure.
            with conn:
                conn.executemany(
                    """
                    INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=excluded.updated_at
                    """,
                    rows,
                )
        finally:
            conn.close()

    async def get(self, key: str) -> Any | None:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to read {key!r} from {self.db_path}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: Mapping[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._set_many_sync, dict(values))
        except sqlite3.Error as e:
            keys = ", ".join(repr(k) for k in values)
            raise StoreUnavailableError(f"failed to write {keys} to {self.db_path}: {e}") from e
