"""Tests for the rule-based analysis synthesizer."""

from __future__ import annotations

import pytest

from maxpulse.domains.assessment.fallback import (
    FALLBACK_MODEL,
    HABITS_ACTION,
    SCREENING_ACTION,
    default_analysis,
    priority_actions,
    synthesize,
)
from maxpulse.domains.assessment.models import AREAS, DISCLAIMER, GRADES, RISK_LEVELS


class TestExampleProfile:
    """42-year-old male, 82kg / 178cm, metrics 6/4/8/7."""

    def test_score_and_grade(self, sample_input):
        result = synthesize(sample_input)
        assert result.overall_score == 63
        assert result.overall_grade == "C"

    def test_priority_actions(self, sample_input):
        actions = synthesize(sample_input).priority_actions
        assert len(actions) == 3
        assert "sleep" in actions[0].lower()
        assert "hydration" in actions[1].lower() or "nutrition" in actions[1].lower()
        assert actions[2] == SCREENING_ACTION

    def test_area_analysis(self, sample_input):
        areas = synthesize(sample_input).area_analysis
        assert set(areas) == set(AREAS)
        assert areas["sleep"].score == 4
        assert areas["sleep"].grade == "D+"
        assert areas["sleep"].risk_level == "medium"
        assert areas["exercise"].grade == "B+"
        assert areas["exercise"].risk_level == "low"

    def test_overweight_and_age_insights(self, sample_input):
        result = synthesize(sample_input)
        assert any("Weight management" in i for i in result.key_insights)
        assert any("Preventive" in i for i in result.key_insights)
        assert "BMI in the overweight range" in result.risk_factors
        assert "Strong exercise habits" in result.positive_aspects

    def test_prose_uses_decade_not_raw_age(self, sample_input):
        text = synthesize(sample_input).area_analysis["hydration"].insights
        assert "42" not in text


class TestDeterminism:
    def test_same_input_same_result(self, sample_input):
        assert synthesize(sample_input) == synthesize(sample_input)

    def test_metadata_left_for_caller(self, sample_input):
        result = synthesize(sample_input)
        assert result.model == FALLBACK_MODEL
        assert result.analysis_id == ""
        assert result.generated_at == ""


class TestPriorityActions:
    def test_always_three(self):
        for age in (25, 41, 70):
            assert len(priority_actions(
                {"hydration": 5, "sleep": 5, "exercise": 5, "nutrition": 5}, age
            )) == 3

    def test_ties_keep_area_order(self):
        actions = priority_actions({"hydration": 5, "sleep": 5, "exercise": 5, "nutrition": 5}, 30)
        assert "hydration" in actions[0].lower()
        assert "sleep" in actions[1].lower()

    def test_age_forty_builds_habits(self):
        scores = {"hydration": 9, "sleep": 9, "exercise": 2, "nutrition": 3}
        assert priority_actions(scores, 40)[2] == HABITS_ACTION
        assert priority_actions(scores, 41)[2] == SCREENING_ACTION

    def test_each_action_names_its_area(self):
        for lowest in AREAS:
            scores = {area: 9 for area in AREAS}
            scores[lowest] = 1
            assert lowest in priority_actions(scores, 30)[0].lower()


class TestInvariants:
    @pytest.mark.parametrize("metrics", [
        (0, 0, 0, 0),
        (10, 10, 10, 10),
        (9, 8, 9, 8),
        (3, 7, 5, 1),
    ])
    def test_well_formed(self, input_factory, metrics):
        hydration, sleep, exercise, nutrition = metrics
        result = synthesize(input_factory(
            hydration=hydration, sleep=sleep, exercise=exercise, nutrition=nutrition
        ))
        assert result.overall_grade in GRADES
        assert 0 <= result.overall_score <= 100
        assert result.disclaimer == DISCLAIMER
        assert len(result.priority_actions) == 3
        for insight in result.area_analysis.values():
            assert insight.grade in GRADES
            assert insight.risk_level in RISK_LEVELS
            assert insight.insights
            assert insight.recommendations

    def test_perfect_scores(self, input_factory):
        result = synthesize(input_factory(hydration=10, sleep=10, exercise=10, nutrition=10))
        assert result.overall_grade == "A+"
        assert result.overall_score == 100

    def test_zero_scores(self, input_factory):
        result = synthesize(input_factory(hydration=0, sleep=0, exercise=0, nutrition=0))
        assert result.overall_grade == "F"
        assert result.overall_score == 0
        assert len(result.risk_factors) >= 4

    def test_heavier_profile_gets_more_water(self, input_factory):
        normal = synthesize(input_factory(weight=70, hydration=5))
        heavy = synthesize(input_factory(weight=100, hydration=5))
        assert "8-10" in normal.area_analysis["hydration"].recommendations[0]
        assert "10-12" in heavy.area_analysis["hydration"].recommendations[0]


class TestBranchBoundaries:
    def test_sleep_advice_switches_above_forty(self, input_factory):
        forty = synthesize(input_factory(age=40, sleep=4)).area_analysis["sleep"]
        forty_one = synthesize(input_factory(age=41, sleep=4)).area_analysis["sleep"]
        assert forty.recommendations[0] == "Aim for 7-9 hours of quality sleep."
        assert forty_one.recommendations[0] == "Prioritize 7-8 hours nightly."

    def test_bmi_exactly_25(self, input_factory):
        # 25kg at 100cm is BMI 25.0: overweight category, but not above 25.
        result = synthesize(input_factory(weight=25, height=100, hydration=5, exercise=5))
        assert "8-10" in result.area_analysis["hydration"].recommendations[0]
        assert not any("Weight management" in i for i in result.key_insights)
        assert "walking" in result.area_analysis["exercise"].recommendations[0]

    def test_bmi_just_above_25(self, input_factory):
        result = synthesize(input_factory(weight=25.1, height=100, hydration=5))
        assert "10-12" in result.area_analysis["hydration"].recommendations[0]
        assert any("Weight management" in i for i in result.key_insights)


def test_default_analysis():
    result = default_analysis()
    assert result.overall_grade == "B"
    assert result.overall_score == 70
    assert set(result.area_analysis) == set(AREAS)
    assert len(result.priority_actions) == 3
    assert result.disclaimer == DISCLAIMER
