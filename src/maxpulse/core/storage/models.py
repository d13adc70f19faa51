"""Data models for the analysis cache persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CacheEntry:
    """One persisted analysis, keyed by the hash of its pattern bucket.

    Entries are written once per miss and only their hit counter changes
    afterwards. Expired rows stay inert until purged.
    """

    input_hash: str
    assessment_type: str
    analysis_data: dict[str, Any]
    model_used: str = ""
    processing_time_ms: float = 0.0
    cache_hits: int = 0
    created_at: str = ""  # ISO 8601, UTC
    expires_at: str = ""  # ISO 8601, UTC


@dataclass
class CacheHit:
    """Result of a successful lookup."""

    input_hash: str
    analysis_data: dict[str, Any]
    cache_hits: int
    model_used: str = ""
    expires_at: str = ""


@dataclass
class CacheStats:
    """Aggregate view of the cache table."""

    total_entries: int = 0
    live_entries: int = 0
    expired_entries: int = 0
    total_hits: int = 0
    by_assessment_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "live_entries": self.live_entries,
            "expired_entries": self.expired_entries,
            "total_hits": self.total_hits,
            "by_assessment_type": dict(self.by_assessment_type),
        }
