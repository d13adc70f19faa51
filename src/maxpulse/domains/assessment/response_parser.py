"""Parsing and strict validation of raw LLM analysis output.

The model's text is untrusted. Anything that fails validation raises
AnalysisParseError so the caller can switch to the rule-based fallback;
nothing is partially repaired beyond clamping ``overallScore`` and deriving
per-area grade/risk labels from a valid score.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from maxpulse.domains.assessment.grading import area_grade, risk_level, round_half_up
from maxpulse.domains.assessment.models import (
    AREAS,
    DISCLAIMER,
    GRADES,
    METRIC_MAX,
    METRIC_MIN,
    RISK_LEVELS,
    AnalysisResult,
    AreaInsight,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("overallGrade", "overallScore", "areaAnalysis", "priorityActions")

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class AnalysisParseError(ValueError):
    """Raised when LLM output is not a valid analysis."""


def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code fence (```json … ```), if any."""
    text = content.strip()
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _string_list(value: Any, field_name: str, *, required: bool = False) -> list[str]:
    if value is None and not required:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise AnalysisParseError(f"{field_name} must be a list of strings")
    items = [v.strip() for v in value if v.strip()]
    if required and not items:
        raise AnalysisParseError(f"{field_name} must not be empty")
    return items


def _text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise AnalysisParseError(f"{field_name} must be a string")
    return value.strip()


def _area_entries(raw: Any) -> dict[str, Any]:
    """Accept a mapping keyed by area, or a list of objects with an ``area`` key."""
    if isinstance(raw, dict):
        return {str(k).lower(): v for k, v in raw.items()}
    if isinstance(raw, list):
        entries = {}
        for item in raw:
            if isinstance(item, dict) and isinstance(item.get("area"), str):
                entries[item["area"].lower()] = item
        return entries
    raise AnalysisParseError("areaAnalysis must be an object")


def _parse_area(name: str, raw: Any) -> AreaInsight:
    if not isinstance(raw, dict):
        raise AnalysisParseError(f"areaAnalysis.{name} must be an object")
    score = raw.get("score")
    if not _is_number(score) or not METRIC_MIN <= score <= METRIC_MAX:
        raise AnalysisParseError(f"areaAnalysis.{name}.score must be a number in 0-10")

    grade = raw.get("grade")
    if grade not in GRADES:
        grade = area_grade(score)
    level = raw.get("riskLevel")
    if level not in RISK_LEVELS:
        level = risk_level(score)

    return AreaInsight(
        score=score,
        grade=grade,
        insights=_text(raw.get("insights"), f"areaAnalysis.{name}.insights"),
        recommendations=_string_list(
            raw.get("recommendations"), f"areaAnalysis.{name}.recommendations"
        ),
        risk_level=level,
        improvement_tips=_string_list(
            raw.get("improvementTips"), f"areaAnalysis.{name}.improvementTips"
        ),
    )


def validate_analysis(data: Any) -> AnalysisResult:
    """Validate a decoded payload and build an AnalysisResult (metadata blank)."""
    if not isinstance(data, dict):
        raise AnalysisParseError("analysis must be a JSON object")

    missing = [f for f in REQUIRED_FIELDS if data.get(f) is None]
    if missing:
        raise AnalysisParseError(f"Missing required field(s): {', '.join(missing)}")

    grade = data["overallGrade"]
    if grade not in GRADES:
        raise AnalysisParseError(f"overallGrade {grade!r} is not a valid grade")

    score = data["overallScore"]
    if not _is_number(score):
        raise AnalysisParseError("overallScore must be a number")
    clamped = max(0, min(100, round_half_up(score)))
    if clamped != score:
        logger.info("Clamped overallScore %s to %d", score, clamped)

    entries = _area_entries(data["areaAnalysis"])
    absent = [area for area in AREAS if area not in entries]
    if absent:
        raise AnalysisParseError(f"areaAnalysis missing area(s): {', '.join(absent)}")

    disclaimer = data.get("disclaimer")
    if not isinstance(disclaimer, str) or not disclaimer.strip():
        disclaimer = DISCLAIMER

    return AnalysisResult(
        overall_grade=grade,
        overall_score=clamped,
        area_analysis={area: _parse_area(area, entries[area]) for area in AREAS},
        priority_actions=_string_list(data["priorityActions"], "priorityActions", required=True),
        risk_factors=_string_list(data.get("riskFactors"), "riskFactors"),
        positive_aspects=_string_list(data.get("positiveAspects"), "positiveAspects"),
        personalized_message=_text(data.get("personalizedMessage"), "personalizedMessage"),
        improvement_potential=_text(data.get("improvementPotential"), "improvementPotential"),
        key_insights=_string_list(data.get("keyInsights"), "keyInsights"),
        disclaimer=disclaimer.strip(),
    )


def parse_analysis_response(content: str) -> AnalysisResult:
    """Strip fences, decode JSON and validate.

    Raises:
        AnalysisParseError: On empty, non-JSON or schema-violating output.
    """
    text = strip_code_fences(content or "")
    if not text:
        raise AnalysisParseError("Empty response")
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise AnalysisParseError(f"Response is not valid JSON: {exc}") from exc
    return validate_analysis(data)
