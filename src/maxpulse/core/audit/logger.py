"""Audit logger — one PHI-free row per analysis request.

Records where each analysis came from (pattern cache, external LLM or the
rule-based fallback) and whether assessment data left the service:

* ``input_hash``    — SHA-256 of the bucketed pattern key, never raw answers.
* ``llm_disclosed`` — True when the request was sent to an external LLM.
* ``source``        — 'cache' | 'llm' | 'fallback'.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from maxpulse.core.storage.database import AnalysisDatabase

logger = logging.getLogger(__name__)


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'analysis_request' | 'cache_purge'
    input_hash: str = ""
    assessment_type: str | None = None
    source: str | None = None            # 'cache' | 'llm' | 'fallback'
    model: str | None = None
    llm_disclosed: bool = False
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    All writes are committed immediately. A failed write is logged and
    never propagates into the request path.

    Usage::

        audit = AuditLogger(db)
        audit.log_analysis(
            input_hash=hash_,
            assessment_type="health",
            source="llm",
            model="gpt-4o",
            llm_disclosed=True,
        )
    """

    def __init__(self, database: AnalysisDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID, or "" if the write failed."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat(timespec="microseconds")

        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"))
            if event.metadata
            else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO audit_log
                   (id, timestamp, action, input_hash, assessment_type, source,
                    model, llm_disclosed, duration_ms, status, error_type, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.action,
                    event.input_hash or None,
                    event.assessment_type,
                    event.source,
                    event.model,
                    1 if event.llm_disclosed else 0,
                    event.duration_ms,
                    event.status,
                    event.error_type,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write audit event — event lost")
            return ""

        return event_id

    def log_analysis(
        self,
        *,
        input_hash: str,
        assessment_type: str,
        source: str,
        model: str | None = None,
        llm_disclosed: bool = False,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Convenience wrapper for one served analysis request."""
        return self.log_event(AuditEvent(
            action="analysis_request",
            input_hash=input_hash,
            assessment_type=assessment_type,
            source=source,
            model=model,
            llm_disclosed=llm_disclosed,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def log_cache_purge(self, count: int) -> str:
        """Log an eviction pass over the analysis cache."""
        return self.log_event(AuditEvent(
            action="cache_purge",
            metadata={"records_deleted": count},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        source: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events with optional filters, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if source:
            conditions.append("source = ?")
            params.append(source)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def _count(self, condition: str, params: tuple[Any, ...], since: str | None) -> int:
        if since:
            condition = f"{condition} AND timestamp >= ?"
            params = (*params, since)
        return self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log WHERE {condition}", params
        ).fetchone()[0]

    def count_events(self, *, source: str | None = None, since: str | None = None) -> int:
        """Count audit events, optionally for one source."""
        if source:
            return self._count("source = ?", (source,), since)
        return self._count("1 = 1", (), since)

    def count_disclosures(self, *, since: str | None = None) -> int:
        """How many requests sent assessment data to an external LLM."""
        return self._count("llm_disclosed = 1", (), since)

    def count_by_source(self, *, since: str | None = None) -> dict[str, int]:
        """Analysis requests per source ('cache', 'llm', 'fallback')."""
        query = "SELECT source, COUNT(*) AS n FROM audit_log WHERE action = 'analysis_request'"
        params: tuple[Any, ...] = ()
        if since:
            query += " AND timestamp >= ?"
            params = (since,)
        rows = self._db.connection.execute(f"{query} GROUP BY source", params).fetchall()
        return {row["source"]: row["n"] for row in rows}
