"""Analysis service — pattern cache in front of the generator.

``analyze`` is the server-side pipeline: normalize → hash → lookup →
(generate → store) → audit. Cache infrastructure failures degrade to a
miss; the caller always gets an analysis.
"""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any

from maxpulse.core.audit.logger import AuditLogger
from maxpulse.core.storage.database import DatabaseError
from maxpulse.core.storage.models import CacheStats
from maxpulse.core.storage.repository import AnalysisCacheRepository, RepositoryError
from maxpulse.domains.assessment.fallback import FALLBACK_MODEL
from maxpulse.domains.assessment.generator import AnalysisGenerator
from maxpulse.domains.assessment.models import AnalysisInput, AnalysisResult
from maxpulse.domains.assessment.pattern import normalize, pattern_hash

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_LLM = "llm"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class AnalysisOutcome:
    """One served analysis plus how it was obtained."""

    analysis: dict[str, Any]
    cached: bool
    processing_time: int
    input_hash: str
    source: str
    cache_hits: int | None = None

    @property
    def result(self) -> AnalysisResult:
        return AnalysisResult.from_dict(self.analysis)

    def to_response(self) -> dict[str, Any]:
        """Wire shape: ``{analysis, cached, processingTime, cacheHits?}``."""
        body: dict[str, Any] = {
            "analysis": self.analysis,
            "cached": self.cached,
            "processingTime": self.processing_time,
        }
        if self.cache_hits is not None:
            body["cacheHits"] = self.cache_hits
        return body


class AnalysisService:
    """Serves analyses through the shared pattern cache.

    Usage::

        service = AnalysisService(generator, repository, audit)
        outcome = await service.analyze(analysis_input)
        payload = outcome.to_response()
    """

    def __init__(
        self,
        generator: AnalysisGenerator,
        repository: AnalysisCacheRepository | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self.generator = generator
        self.repository = repository
        self.audit = audit

    async def analyze(self, analysis_input: AnalysisInput) -> AnalysisOutcome:
        started = time.perf_counter()
        key = normalize(analysis_input)
        input_hash = pattern_hash(key)

        hit = self._lookup(input_hash)
        if hit is not None:
            analysis = copy.deepcopy(hit.analysis_data)
            analysis["cached"] = True
            analysis["processingTime"] = 0
            outcome = AnalysisOutcome(
                analysis=analysis,
                cached=True,
                processing_time=0,
                input_hash=input_hash,
                source=SOURCE_CACHE,
                cache_hits=hit.cache_hits,
            )
            logger.info("Analysis cache hit: hash=%s…, hits=%d", input_hash[:12], hit.cache_hits)
            self._audit(analysis_input, outcome, model=hit.model_used, started=started)
            return outcome

        result = await self.generator.generate(analysis_input)
        source = SOURCE_FALLBACK if result.model == FALLBACK_MODEL else SOURCE_LLM
        stored = result.to_dict()
        self._store(input_hash, analysis_input.assessment_type, stored, result)

        analysis = dict(stored)
        analysis["cached"] = False
        outcome = AnalysisOutcome(
            analysis=analysis,
            cached=False,
            processing_time=result.processing_time,
            input_hash=input_hash,
            source=source,
        )
        logger.info(
            "Analysis generated: hash=%s…, source=%s, %dms",
            input_hash[:12],
            source,
            result.processing_time,
        )
        self._audit(analysis_input, outcome, model=result.model, started=started)
        return outcome

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        if self.repository is None:
            return 0
        count = self.repository.purge_expired()
        if self.audit is not None and count:
            self.audit.log_cache_purge(count)
        return count

    def cache_stats(self) -> CacheStats | None:
        return self.repository.stats() if self.repository is not None else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, input_hash: str):
        if self.repository is None:
            return None
        try:
            return self.repository.lookup(input_hash)
        except (RepositoryError, DatabaseError):
            logger.warning("Cache lookup failed for %s…; treating as miss", input_hash[:12],
                           exc_info=True)
            return None

    def _store(
        self,
        input_hash: str,
        assessment_type: str,
        analysis: dict[str, Any],
        result: AnalysisResult,
    ) -> None:
        if self.repository is None:
            return
        try:
            self.repository.store(
                input_hash,
                assessment_type,
                analysis,
                model_used=result.model,
                processing_time_ms=result.processing_time,
            )
        except (RepositoryError, DatabaseError):
            logger.warning("Cache store failed for %s…; returning uncached result",
                           input_hash[:12], exc_info=True)

    def _audit(
        self,
        analysis_input: AnalysisInput,
        outcome: AnalysisOutcome,
        *,
        model: str,
        started: float,
    ) -> None:
        if self.audit is None:
            return
        self.audit.log_analysis(
            input_hash=outcome.input_hash,
            assessment_type=analysis_input.assessment_type,
            source=outcome.source,
            model=model or None,
            llm_disclosed=outcome.source == SOURCE_LLM
            or (outcome.source == SOURCE_FALLBACK and self.generator.uses_llm),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
