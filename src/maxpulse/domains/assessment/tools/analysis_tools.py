"""MCP tools for assessment analysis and cache maintenance."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from maxpulse.core.errors import ErrorKind
from maxpulse.domains.assessment.models import AnalysisInput, InvalidAnalysisInput

if TYPE_CHECKING:
    from maxpulse.core.audit.logger import AuditLogger
    from maxpulse.domains.assessment.service import AnalysisService

logger = logging.getLogger(__name__)


def register_analysis_tools(
    mcp: FastMCP,
    service: AnalysisService,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register analysis tools on the MCP server."""

    @mcp.tool
    async def analyze_assessment(
        ctx: Context,
        assessment: dict[str, Any],
    ) -> str:
        """Analyze a completed health/wealth assessment.

        Returns an overall grade and score, per-area insights for hydration,
        sleep, exercise and nutrition, and three priority actions. Results
        are shared across similar profiles for up to an hour.

        Args:
            assessment: ``{assessmentType, demographics: {age, weight, height,
                gender}, healthMetrics: {hydration, sleep, exercise,
                nutrition}, answers?: [...], sessionId?}``.
        """
        try:
            analysis_input = AnalysisInput.from_dict(assessment)
        except InvalidAnalysisInput as exc:
            return json.dumps({
                "status": "error",
                "code": ErrorKind.INVALID_INPUT.value,
                "message": str(exc),
            })

        outcome = await service.analyze(analysis_input)
        return json.dumps({"status": "ok", **outcome.to_response()}, indent=2)

    @mcp.tool
    async def analysis_cache_stats(ctx: Context) -> str:
        """Report entry and hit counts for the shared analysis cache."""
        stats = service.cache_stats()
        if stats is None:
            return json.dumps({
                "status": "disabled",
                "message": "Analysis cache is not configured.",
            })
        return json.dumps({"status": "ok", **stats.to_dict()}, indent=2)

    @mcp.tool
    async def purge_expired_analyses(ctx: Context) -> str:
        """Delete cached analyses whose one-hour validity has passed."""
        if service.repository is None:
            return json.dumps({
                "status": "disabled",
                "message": "Analysis cache is not configured.",
            })
        deleted = service.purge_expired()
        logger.info("Purged %d expired analyses", deleted)
        return json.dumps({"status": "ok", "records_deleted": deleted})

    if audit_logger is None:
        return

    @mcp.tool
    async def analysis_audit_summary(
        ctx: Context,
        days: int = 7,
    ) -> str:
        """View recent analysis requests and how often data reached an external LLM.

        The audit trail holds pattern hashes only, never assessment data.

        Args:
            days: Number of days to look back (default: 7).
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat(timespec="microseconds")
        events = audit_logger.get_events(action="analysis_request", since=since, limit=20)
        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": audit_logger.count_events(since=since),
            "llm_disclosures": audit_logger.count_disclosures(since=since),
            "by_source": audit_logger.count_by_source(since=since),
            "recent_events": [
                {
                    "timestamp": event.get("timestamp"),
                    "source": event.get("source"),
                    "assessment_type": event.get("assessment_type"),
                    "model": event.get("model"),
                    "llm_disclosed": bool(event.get("llm_disclosed")),
                    "status": event.get("status"),
                    "duration_ms": event.get("duration_ms"),
                }
                for event in events
            ],
        }, indent=2)
