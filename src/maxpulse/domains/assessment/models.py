"""Assessment analysis data models and domain constants.

Wire format is camelCase JSON (``assessmentType``, ``healthMetrics`` …);
Python attributes are snake_case.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

AREAS = ("hydration", "sleep", "exercise", "nutrition")

ASSESSMENT_TYPES = ("health", "wealth", "hybrid")

GENDERS = ("male", "female", "other")

GRADES = ("A+", "A", "B+", "B", "C+", "C", "D+", "D", "F")

RISK_LEVELS = ("low", "medium", "high")

BMI_CATEGORIES = ("underweight", "normal", "overweight", "obese")

METRIC_MIN = 0
METRIC_MAX = 10

# Plausible body measurements; anything outside is a data-entry error.
WEIGHT_KG_RANGE = (2.0, 650.0)
HEIGHT_CM_RANGE = (40.0, 275.0)

DISCLAIMER = (
    "This analysis is for informational purposes only and should not replace "
    "professional medical advice. Consult healthcare providers for medical concerns."
)


class InvalidAnalysisInput(ValueError):
    """Raised when a submission cannot be turned into an AnalysisInput."""


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _first(data: dict[str, Any], *names: str) -> Any:
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return None


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Demographics:
    """Who answered the assessment."""

    age: int
    weight_kg: float
    height_cm: float
    gender: str = "other"

    @classmethod
    def from_dict(cls, data: Any) -> Demographics:
        if not isinstance(data, dict):
            raise InvalidAnalysisInput("demographics must be an object")

        age = _first(data, "age")
        weight = _first(data, "weight_kg", "weightKg", "weight")
        height = _first(data, "height_cm", "heightCm", "height")
        for name, value in (("age", age), ("weight", weight), ("height", height)):
            if not _is_number(value):
                raise InvalidAnalysisInput(f"demographics.{name} must be a number")
        if not 0 < age < 130:
            raise InvalidAnalysisInput("demographics.age out of range")
        if not WEIGHT_KG_RANGE[0] <= weight <= WEIGHT_KG_RANGE[1]:
            raise InvalidAnalysisInput("demographics.weight out of range")
        if not HEIGHT_CM_RANGE[0] <= height <= HEIGHT_CM_RANGE[1]:
            raise InvalidAnalysisInput("demographics.height out of range")

        gender = _first(data, "gender") or "other"
        gender = str(gender).strip().lower()
        if gender not in GENDERS:
            raise InvalidAnalysisInput(f"demographics.gender must be one of {GENDERS}")

        return cls(age=int(age), weight_kg=float(weight), height_cm=float(height), gender=gender)

    def to_dict(self) -> dict[str, Any]:
        return {
            "age": self.age,
            "weight": self.weight_kg,
            "height": self.height_cm,
            "gender": self.gender,
        }


@dataclass(frozen=True)
class HealthMetrics:
    """The four 0-10 lifestyle scores derived from the questionnaire."""

    hydration: int
    sleep: int
    exercise: int
    nutrition: int

    @classmethod
    def from_dict(cls, data: Any) -> HealthMetrics:
        if not isinstance(data, dict):
            raise InvalidAnalysisInput("healthMetrics must be an object")
        values: dict[str, int] = {}
        for area in AREAS:
            value = data.get(area)
            if not _is_number(value):
                raise InvalidAnalysisInput(f"healthMetrics.{area} must be a number")
            if not METRIC_MIN <= value <= METRIC_MAX:
                raise InvalidAnalysisInput(
                    f"healthMetrics.{area} must be between {METRIC_MIN} and {METRIC_MAX}"
                )
            values[area] = value
        return cls(**values)

    def as_dict(self) -> dict[str, int]:
        """Scores keyed by area, in AREAS order."""
        return {area: getattr(self, area) for area in AREAS}

    def average(self) -> float:
        return sum(self.as_dict().values()) / len(AREAS)


@dataclass(frozen=True)
class AssessmentAnswer:
    """One raw questionnaire answer, kept as LLM prompt material."""

    question_id: str
    answer: str | int | float | bool
    category: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> AssessmentAnswer:
        if not isinstance(data, dict):
            raise InvalidAnalysisInput("each answer must be an object")
        question_id = _first(data, "questionId", "question_id")
        if question_id is None or "answer" not in data:
            raise InvalidAnalysisInput("each answer needs questionId and answer")
        answer = data["answer"]
        if not isinstance(answer, (str, int, float, bool)):
            answer = str(answer)
        category = data.get("category")
        return cls(
            question_id=str(question_id),
            answer=answer,
            category=str(category) if category is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"questionId": self.question_id, "answer": self.answer}
        if self.category is not None:
            out["category"] = self.category
        return out


@dataclass(frozen=True)
class AnalysisInput:
    """A complete assessment submission. Immutable once constructed."""

    assessment_type: str
    demographics: Demographics
    health_metrics: HealthMetrics
    answers: tuple[AssessmentAnswer, ...] = ()
    session_id: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> AnalysisInput:
        """Parse the wire format.

        Raises:
            InvalidAnalysisInput: On missing fields or out-of-range values.
        """
        if not isinstance(data, dict):
            raise InvalidAnalysisInput("input must be an object")

        assessment_type = _first(data, "assessmentType", "assessment_type")
        if assessment_type not in ASSESSMENT_TYPES:
            raise InvalidAnalysisInput(f"assessmentType must be one of {ASSESSMENT_TYPES}")

        raw_answers = _first(data, "answers") or []
        if not isinstance(raw_answers, list):
            raise InvalidAnalysisInput("answers must be a list")

        session_id = _first(data, "sessionId", "session_id")
        return cls(
            assessment_type=assessment_type,
            demographics=Demographics.from_dict(_first(data, "demographics")),
            health_metrics=HealthMetrics.from_dict(
                _first(data, "healthMetrics", "health_metrics")
            ),
            answers=tuple(AssessmentAnswer.from_dict(a) for a in raw_answers),
            session_id=str(session_id) if session_id is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "assessmentType": self.assessment_type,
            "demographics": self.demographics.to_dict(),
            "healthMetrics": self.health_metrics.as_dict(),
            "answers": [a.to_dict() for a in self.answers],
        }
        if self.session_id is not None:
            out["sessionId"] = self.session_id
        return out


@dataclass(frozen=True)
class PatternKey:
    """Coarse bucket of an AnalysisInput; equal keys share one cached analysis."""

    assessment_type: str
    age_decade: int
    bmi_category: str
    gender: str
    metric_buckets: tuple[int, int, int, int]  # AREAS order

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessmentType": self.assessment_type,
            "ageGroup": self.age_decade,
            "bmiCategory": self.bmi_category,
            "gender": self.gender,
            "healthProfile": dict(zip(AREAS, self.metric_buckets)),
        }


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AreaInsight:
    """Analysis of one lifestyle area."""

    score: float
    grade: str
    insights: str
    recommendations: list[str] = field(default_factory=list)
    risk_level: str = "low"
    improvement_tips: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AreaInsight:
        return cls(
            score=data.get("score", 0),
            grade=data.get("grade", "F"),
            insights=data.get("insights", ""),
            recommendations=list(data.get("recommendations", [])),
            risk_level=data.get("riskLevel", "low"),
            improvement_tips=list(data.get("improvementTips", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "grade": self.grade,
            "insights": self.insights,
            "recommendations": list(self.recommendations),
            "riskLevel": self.risk_level,
            "improvementTips": list(self.improvement_tips),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """A complete analysis, fresh or cached. Treated as immutable."""

    overall_grade: str
    overall_score: int
    area_analysis: dict[str, AreaInsight]
    priority_actions: list[str]
    risk_factors: list[str] = field(default_factory=list)
    positive_aspects: list[str] = field(default_factory=list)
    personalized_message: str = ""
    improvement_potential: str = ""
    key_insights: list[str] = field(default_factory=list)
    disclaimer: str = DISCLAIMER
    generated_at: str = ""
    analysis_id: str = ""
    processing_time: int = 0
    model: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisResult:
        """Rebuild from the wire format (cache payloads, edge responses).

        Trusted input only; LLM output goes through the response parser.
        """
        areas = data.get("areaAnalysis") or {}
        return cls(
            overall_grade=data["overallGrade"],
            overall_score=int(data["overallScore"]),
            area_analysis={name: AreaInsight.from_dict(areas[name]) for name in areas},
            priority_actions=list(data.get("priorityActions", [])),
            risk_factors=list(data.get("riskFactors", [])),
            positive_aspects=list(data.get("positiveAspects", [])),
            personalized_message=data.get("personalizedMessage", ""),
            improvement_potential=data.get("improvementPotential", ""),
            key_insights=list(data.get("keyInsights", [])),
            disclaimer=(data.get("disclaimer") or "").strip() or DISCLAIMER,
            generated_at=data.get("generatedAt", ""),
            analysis_id=data.get("analysisId", ""),
            processing_time=int(data.get("processingTime") or 0),
            model=data.get("model", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallGrade": self.overall_grade,
            "overallScore": self.overall_score,
            "areaAnalysis": {name: a.to_dict() for name, a in self.area_analysis.items()},
            "priorityActions": list(self.priority_actions),
            "riskFactors": list(self.risk_factors),
            "positiveAspects": list(self.positive_aspects),
            "personalizedMessage": self.personalized_message,
            "improvementPotential": self.improvement_potential,
            "keyInsights": list(self.key_insights),
            "disclaimer": self.disclaimer.strip() or DISCLAIMER,
            "generatedAt": self.generated_at,
            "analysisId": self.analysis_id,
            "processingTime": self.processing_time,
            "model": self.model,
        }
