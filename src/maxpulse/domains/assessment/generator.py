"""Analysis generator — LLM first, rule-based fallback on any failure."""

from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from datetime import datetime, timezone

from maxpulse.core.llm.client import AnalysisLLMClient, LLMCallError
from maxpulse.domains.assessment.fallback import FALLBACK_MODEL, synthesize
from maxpulse.domains.assessment.models import AnalysisInput, AnalysisResult
from maxpulse.domains.assessment.prompts import (
    DEFAULT_MAX_ANSWER_CHARS,
    DEFAULT_MAX_ANSWERS,
    build_analysis_prompt,
)
from maxpulse.domains.assessment.response_parser import (
    AnalysisParseError,
    parse_analysis_response,
)

logger = logging.getLogger(__name__)

PARSE_ERROR = "PARSE_ERROR"


def new_analysis_id() -> str:
    """``analysis_<epoch ms>_<random>`` — unique per generated result."""
    return f"analysis_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def stamp(result: AnalysisResult, *, model: str, started: float) -> AnalysisResult:
    """Return a copy carrying fresh generation metadata."""
    return dataclasses.replace(
        result,
        generated_at=datetime.now(timezone.utc).isoformat(),
        analysis_id=new_analysis_id(),
        processing_time=int((time.perf_counter() - started) * 1000),
        model=model,
    )


class AnalysisGenerator:
    """Produces an AnalysisResult for every valid input.

    With no LLM client configured (e.g. no API key), every call goes
    straight to the rule-based synthesizer without touching the network.

    Usage::

        generator = AnalysisGenerator(AnalysisLLMClient(provider))
        result = await generator.generate(analysis_input)
    """

    def __init__(
        self,
        llm_client: AnalysisLLMClient | None = None,
        *,
        max_prompt_answers: int = DEFAULT_MAX_ANSWERS,
        max_answer_chars: int = DEFAULT_MAX_ANSWER_CHARS,
    ) -> None:
        self._llm = llm_client
        self._max_answers = max_prompt_answers
        self._max_answer_chars = max_answer_chars

    @property
    def uses_llm(self) -> bool:
        return self._llm is not None

    @property
    def model(self) -> str:
        return self._llm.model if self._llm is not None else FALLBACK_MODEL

    async def generate(self, analysis_input: AnalysisInput) -> AnalysisResult:
        """Generate an analysis. Never raises for a valid input."""
        started = time.perf_counter()

        if self._llm is None:
            return stamp(synthesize(analysis_input), model=FALLBACK_MODEL, started=started)

        prompt = build_analysis_prompt(
            analysis_input,
            max_answers=self._max_answers,
            max_answer_chars=self._max_answer_chars,
        )
        try:
            response = await self._llm.complete(prompt)
            result = parse_analysis_response(response.content)
        except LLMCallError as exc:
            logger.warning(
                "LLM analysis failed (%s after %d attempt(s)); using rule-based fallback",
                exc.kind.value,
                exc.attempts,
            )
        except AnalysisParseError as exc:
            logger.warning("LLM analysis rejected (%s: %s); using rule-based fallback",
                           PARSE_ERROR, exc)
        except Exception:
            logger.exception("Unexpected error in LLM analysis; using rule-based fallback")
        else:
            return stamp(result, model=response.model or self._llm.model, started=started)

        return stamp(synthesize(analysis_input), model=FALLBACK_MODEL, started=started)
