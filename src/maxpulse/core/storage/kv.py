"""TTL key-value stores used by the client-side analysis mirror.

Both implementations hold JSON-serializable values and treat an expired key
as absent. The in-memory store suits a single process; the SQLite store
shares the analysis database file.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from maxpulse.core.storage.database import AnalysisDatabase
from maxpulse.core.storage.repository import to_iso, utc_now

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """get / set-with-TTL / delete over JSON-serializable values."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def purge_expired(self) -> int: ...


class InMemoryKeyValueStore:
    """Dict-backed store guarded by a lock."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._items: dict[str, tuple[Any, datetime | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at <= self._clock():
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        expires_at = None
        if ttl_seconds is not None:
            expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        # Round-trip through JSON so callers can't mutate stored state.
        snapshot = json.loads(json.dumps(value))
        with self._lock:
            self._items[key] = (snapshot, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def purge_expired(self) -> int:
        """Drop every expired key; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, (_, expires_at) in self._items.items()
                if expires_at is not None and expires_at <= now
            ]
            for key in expired:
                del self._items[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._items)


class SqliteKeyValueStore:
    """Store backed by the ``kv_store`` table of an :class:`AnalysisDatabase`."""

    def __init__(
        self, database: AnalysisDatabase, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._db = database
        self._clock = clock

    def get(self, key: str) -> Any | None:
        conn = self._db.connection
        row = conn.execute(
            "SELECT value_json, expires_at FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        if row["expires_at"] is not None and row["expires_at"] <= to_iso(self._clock()):
            self.delete(key)
            return None
        return json.loads(row["value_json"])

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        expires_at = None
        if ttl_seconds is not None:
            expires_at = to_iso(self._clock() + timedelta(seconds=ttl_seconds))
        conn = self._db.connection
        conn.execute(
            "INSERT OR REPLACE INTO kv_store (key, value_json, expires_at) VALUES (?, ?, ?)",
            (key, json.dumps(value, separators=(",", ":")), expires_at),
        )
        conn.commit()

    def delete(self, key: str) -> None:
        conn = self._db.connection
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()

    def purge_expired(self) -> int:
        """Delete every expired row; returns how many were removed."""
        conn = self._db.connection
        cursor = conn.execute(
            "DELETE FROM kv_store WHERE expires_at IS NOT NULL AND expires_at <= ?",
            (to_iso(self._clock()),),
        )
        conn.commit()
        if cursor.rowcount:
            logger.info("Purged %d expired key-value entries", cursor.rowcount)
        return cursor.rowcount
