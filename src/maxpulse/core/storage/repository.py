"""Analysis cache repository — lookup, store and eviction over SQLite.

Rows are keyed by the SHA-256 of a bucketed pattern key, so many distinct
users share one row. A row is served only while ``expires_at > now``.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from maxpulse.core.storage.database import AnalysisDatabase
from maxpulse.core.storage.encryption import EncryptionError, PayloadCipher
from maxpulse.core.storage.models import CacheEntry, CacheHit, CacheStats

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60


class RepositoryError(Exception):
    """Raised when the cache table cannot be read or written."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Fixed-width UTC ISO 8601, so stored timestamps compare lexicographically."""
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


class AnalysisCacheRepository:
    """Persisted pattern cache for generated analyses.

    Usage::

        db = AnalysisDatabase(":memory:")
        db.initialize()
        repo = AnalysisCacheRepository(db)

        repo.store(input_hash, "health", analysis, model_used="gpt-4o")
        hit = repo.lookup(input_hash)
    """

    def __init__(
        self,
        database: AnalysisDatabase,
        cipher: PayloadCipher | None = None,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = database
        self._cipher = cipher or PayloadCipher()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    # ------------------------------------------------------------------
    # Lookup / store
    # ------------------------------------------------------------------

    def lookup(self, input_hash: str) -> CacheHit | None:
        """Return the live entry for ``input_hash``, or None on a miss.

        A hit increments ``cache_hits``. Failing to persist the increment is
        logged and does not fail the read.

        Raises:
            RepositoryError: If the table cannot be queried.
        """
        now = to_iso(self._clock())
        try:
            row = self._db.connection.execute(
                """SELECT * FROM ai_analysis_results
                   WHERE input_hash = ? AND expires_at > ?""",
                (input_hash, now),
            ).fetchone()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Cache lookup failed: {exc}") from exc

        if row is None:
            return None

        try:
            analysis = self._cipher.open(row["analysis_data"], bool(row["analysis_encrypted"]))
        except EncryptionError as exc:
            logger.warning("Unreadable cache entry %s… treated as miss: %s", input_hash[:12], exc)
            return None

        hits = row["cache_hits"] + 1
        try:
            conn = self._db.connection
            conn.execute(
                "UPDATE ai_analysis_results SET cache_hits = cache_hits + 1 WHERE input_hash = ?",
                (input_hash,),
            )
            conn.commit()
        except sqlite3.Error:
            logger.warning("Failed to record cache hit for %s…", input_hash[:12], exc_info=True)

        return CacheHit(
            input_hash=input_hash,
            analysis_data=analysis,
            cache_hits=hits,
            model_used=row["model_used"] or "",
            expires_at=row["expires_at"],
        )

    def store(
        self,
        input_hash: str,
        assessment_type: str,
        analysis_data: dict[str, Any],
        *,
        model_used: str = "",
        processing_time_ms: float = 0.0,
    ) -> CacheEntry:
        """Write (or overwrite) the entry for ``input_hash`` with a fresh TTL.

        Concurrent misses for the same hash may both store; the last write wins.

        Raises:
            RepositoryError: If the payload cannot be serialized or written.
        """
        created = self._clock()
        entry = CacheEntry(
            input_hash=input_hash,
            assessment_type=assessment_type,
            analysis_data=analysis_data,
            model_used=model_used,
            processing_time_ms=processing_time_ms,
            cache_hits=0,
            created_at=to_iso(created),
            expires_at=to_iso(created + self._ttl),
        )
        try:
            stored, encrypted = self._cipher.seal(analysis_data)
            conn = self._db.connection
            conn.execute(
                """INSERT OR REPLACE INTO ai_analysis_results (
                    input_hash, assessment_type, analysis_data, analysis_encrypted,
                    model_used, processing_time_ms, cache_hits, created_at, expires_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry.input_hash,
                    entry.assessment_type,
                    stored,
                    1 if encrypted else 0,
                    entry.model_used,
                    entry.processing_time_ms,
                    entry.cache_hits,
                    entry.created_at,
                    entry.expires_at,
                ),
            )
            conn.commit()
        except (sqlite3.Error, EncryptionError) as exc:
            raise RepositoryError(f"Cache store failed: {exc}") from exc

        logger.info(
            "Cached analysis %s… (type=%s, model=%s, expires=%s)",
            input_hash[:12],
            assessment_type,
            model_used,
            entry.expires_at,
        )
        return entry

    def get_entry(self, input_hash: str) -> CacheEntry | None:
        """Return the stored row regardless of expiry (inspection only)."""
        row = self._db.connection.execute(
            "SELECT * FROM ai_analysis_results WHERE input_hash = ?", (input_hash,)
        ).fetchone()
        if row is None:
            return None
        return CacheEntry(
            input_hash=row["input_hash"],
            assessment_type=row["assessment_type"],
            analysis_data=self._cipher.open(row["analysis_data"], bool(row["analysis_encrypted"])),
            model_used=row["model_used"] or "",
            processing_time_ms=row["processing_time_ms"] or 0.0,
            cache_hits=row["cache_hits"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Delete entries whose ``expires_at`` has passed. Returns rows removed."""
        conn = self._db.connection
        cursor = conn.execute(
            "DELETE FROM ai_analysis_results WHERE expires_at <= ?",
            (to_iso(self._clock()),),
        )
        conn.commit()
        if cursor.rowcount:
            logger.info("Purged %d expired cache entries", cursor.rowcount)
        return cursor.rowcount

    def stats(self) -> CacheStats:
        """Return entry counts and accumulated hits."""
        conn = self._db.connection
        now = to_iso(self._clock())
        total, hits = conn.execute(
            "SELECT COUNT(*), COALESCE(SUM(cache_hits), 0) FROM ai_analysis_results"
        ).fetchone()
        live = conn.execute(
            "SELECT COUNT(*) FROM ai_analysis_results WHERE expires_at > ?", (now,)
        ).fetchone()[0]
        by_type = {
            row["assessment_type"]: row["n"]
            for row in conn.execute(
                """SELECT assessment_type, COUNT(*) AS n FROM ai_analysis_results
                   WHERE expires_at > ? GROUP BY assessment_type""",
                (now,),
            ).fetchall()
        }
        return CacheStats(
            total_entries=total,
            live_entries=live,
            expired_entries=total - live,
            total_hits=hits,
            by_assessment_type=by_type,
        )
