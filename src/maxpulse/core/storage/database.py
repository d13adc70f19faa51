"""SQLite storage shared by the analysis cache, client-side key-value rows and the audit trail.

Schema changes are applied as ordered migrations; ``schema_version`` records
each one that has run.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

# (version, description, DDL). Append only.
MIGRATIONS: tuple[tuple[int, str, str], ...] = (
    (1, "analysis cache and key-value store", """
-- One row per pattern bucket; the hash covers the bucketed PatternKey only
CREATE TABLE IF NOT EXISTS ai_analysis_results (
    input_hash          TEXT PRIMARY KEY,
    assessment_type     TEXT NOT NULL,
    analysis_data       TEXT NOT NULL,
    analysis_encrypted  INTEGER NOT NULL DEFAULT 0,
    model_used          TEXT,
    processing_time_ms  REAL,
    cache_hits          INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT NOT NULL,
    expires_at          TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_analysis_expires ON ai_analysis_results(expires_at);
CREATE INDEX IF NOT EXISTS idx_analysis_type    ON ai_analysis_results(assessment_type);

-- Client-side cache entries and rate-limit counters
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value_json  TEXT NOT NULL,
    expires_at  TEXT
);
CREATE INDEX IF NOT EXISTS idx_kv_expires ON kv_store(expires_at);
"""),
    (2, "audit log", """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    input_hash      TEXT,
    assessment_type TEXT,
    source          TEXT,
    model           TEXT,
    llm_disclosed   INTEGER DEFAULT 0,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_source    ON audit_log(source);
"""),
)

SCHEMA_VERSION = MIGRATIONS[-1][0]


class DatabaseError(Exception):
    """Raised when database operations fail."""


class AnalysisDatabase:
    """One SQLite connection plus the migrations it needs.

    ``":memory:"`` gives a private throwaway database, which is what the
    tests use. Usable as a context manager::

        with AnalysisDatabase("~/.maxpulse/analysis.db") as db:
            db.connection.execute(...)
    """

    def __init__(self, db_path: str = MEMORY) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and bring the schema up to date. Idempotent."""
        if self._conn is not None:
            return
        self._conn = self._connect()
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._migrate()

    def _connect(self) -> sqlite3.Connection:
        target = self._db_path
        if target != MEMORY:
            db_file = Path(target).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_file)
        return sqlite3.connect(target, check_same_thread=False)

    def _migrate(self) -> None:
        conn = self.connection
        conn.executescript(_VERSION_TABLE)
        current = self.get_schema_version()
        for version, description, ddl in MIGRATIONS:
            if version <= current:
                continue
            conn.executescript(ddl)
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
            conn.commit()
            logger.info("Applied schema migration V%d: %s", version, description)

    def get_schema_version(self) -> int:
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Analysis database closed: %s", self._db_path)

    def __enter__(self) -> AnalysisDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
