"""Transport-neutral handler for ``POST /ai-analysis``."""

from __future__ import annotations

import logging
from typing import Any

from maxpulse.core.errors import ErrorKind
from maxpulse.domains.assessment.fallback import default_analysis, synthesize
from maxpulse.domains.assessment.models import AnalysisInput, InvalidAnalysisInput
from maxpulse.domains.assessment.service import AnalysisService

logger = logging.getLogger(__name__)


async def handle_analysis_request(
    service: AnalysisService, body: Any
) -> tuple[int, dict[str, Any]]:
    """Serve one request body of the form ``{"input": AnalysisInput}``.

    Returns:
        ``(status, payload)``. 200 with ``{analysis, cached, processingTime,
        cacheHits?}``; 400 with ``{error, code, fallback}`` when the body is
        unusable; 500 with ``{error, fallback}`` on any other failure.
    """
    raw = body.get("input") if isinstance(body, dict) else None
    try:
        analysis_input = AnalysisInput.from_dict(raw)
    except InvalidAnalysisInput as exc:
        logger.info("Rejected analysis request: %s", exc)
        return 400, {
            "error": str(exc),
            "code": ErrorKind.INVALID_INPUT.value,
            "fallback": default_analysis().to_dict(),
        }

    try:
        outcome = await service.analyze(analysis_input)
    except Exception as exc:
        logger.exception("Analysis request failed")
        return 500, {
            "error": str(exc) or type(exc).__name__,
            "fallback": synthesize(analysis_input).to_dict(),
        }
    return 200, outcome.to_response()
