"""Tests for assessment input parsing and result serialization."""

from __future__ import annotations

import pytest

from maxpulse.domains.assessment.models import (
    DISCLAIMER,
    AnalysisInput,
    AnalysisResult,
    AreaInsight,
    InvalidAnalysisInput,
)

_WIRE = {
    "assessmentType": "health",
    "demographics": {"age": 42, "weight": 82, "height": 178, "gender": "Male"},
    "healthMetrics": {"hydration": 6, "sleep": 4, "exercise": 8, "nutrition": 7},
    "answers": [{"questionId": "h1", "answer": "2 glasses", "category": "hydration"}],
    "sessionId": "session_1",
}


def _wire(**section_overrides):
    data = {k: (dict(v) if isinstance(v, dict) else v) for k, v in _WIRE.items()}
    for section, values in section_overrides.items():
        if isinstance(values, dict):
            data[section].update(values)
        else:
            data[section] = values
    return data


class TestAnalysisInputParsing:
    def test_wire_format(self):
        parsed = AnalysisInput.from_dict(_WIRE)
        assert parsed.assessment_type == "health"
        assert parsed.demographics.weight_kg == 82.0
        assert parsed.demographics.gender == "male"
        assert parsed.health_metrics.sleep == 4
        assert parsed.answers[0].category == "hydration"
        assert parsed.session_id == "session_1"

    def test_snake_case_accepted(self):
        parsed = AnalysisInput.from_dict({
            "assessment_type": "wealth",
            "demographics": {"age": 30, "weight_kg": 60, "height_cm": 165},
            "health_metrics": {"hydration": 5, "sleep": 5, "exercise": 5, "nutrition": 5},
        })
        assert parsed.assessment_type == "wealth"
        assert parsed.demographics.gender == "other"
        assert parsed.answers == ()

    def test_is_immutable(self):
        parsed = AnalysisInput.from_dict(_WIRE)
        with pytest.raises(AttributeError):
            parsed.assessment_type = "wealth"

    @pytest.mark.parametrize("bad", [
        {"assessmentType": "fitness"},
        {"demographics": {"age": 0}},
        {"demographics": {"age": 150}},
        {"demographics": {"weight": -1}},
        {"demographics": {"height": "tall"}},
        {"demographics": {"weight": float("nan")}},
        {"demographics": {"weight": 1000}},
        {"demographics": {"height": 1e-300}},
        {"demographics": {"height": float("inf")}},
        {"healthMetrics": {"sleep": float("nan")}},
        {"demographics": {"gender": "unknown"}},
        {"healthMetrics": {"sleep": 11}},
        {"healthMetrics": {"hydration": -1}},
        {"healthMetrics": {"nutrition": True}},
        {"answers": "not a list"},
        {"answers": [{"answer": "no id"}]},
    ])
    def test_rejects_invalid(self, bad):
        with pytest.raises(InvalidAnalysisInput):
            AnalysisInput.from_dict(_wire(**bad))

    def test_rejects_non_object(self):
        with pytest.raises(InvalidAnalysisInput):
            AnalysisInput.from_dict(None)

    def test_to_dict_round_trip(self):
        parsed = AnalysisInput.from_dict(_WIRE)
        assert AnalysisInput.from_dict(parsed.to_dict()) == parsed


class TestAnalysisResult:
    def _result(self, **overrides):
        defaults = dict(
            overall_grade="B",
            overall_score=70,
            area_analysis={"sleep": AreaInsight(score=7, grade="B", insights="ok")},
            priority_actions=["a", "b", "c"],
        )
        defaults.update(overrides)
        return AnalysisResult(**defaults)

    def test_to_dict_uses_wire_names(self):
        d = self._result().to_dict()
        assert d["overallGrade"] == "B"
        assert d["areaAnalysis"]["sleep"]["riskLevel"] == "low"
        assert d["disclaimer"] == DISCLAIMER

    def test_blank_disclaimer_replaced_on_output(self):
        assert self._result(disclaimer="  ").to_dict()["disclaimer"] == DISCLAIMER

    def test_from_dict_restores_disclaimer(self):
        d = self._result().to_dict()
        d["disclaimer"] = ""
        assert AnalysisResult.from_dict(d).disclaimer == DISCLAIMER

    def test_from_dict_round_trip(self):
        result = self._result(analysis_id="analysis_1", model="gpt-4o")
        assert AnalysisResult.from_dict(result.to_dict()) == result
