"""Rule-based analysis synthesizer.

Derives a complete AnalysisResult from the four metric scores and the
demographics alone. No I/O, no randomness: the same input always
yields the same grades, messages and actions. Metadata (id, timestamp,
timing, model) is left blank for the caller to stamp.
"""

from __future__ import annotations

from dataclasses import dataclass

from maxpulse.domains.assessment.grading import (
    area_grade,
    overall_grade,
    risk_level,
    round_half_up,
)
from maxpulse.domains.assessment.models import (
    AREAS,
    DISCLAIMER,
    AnalysisInput,
    AreaInsight,
    AnalysisResult,
)
from maxpulse.domains.assessment.pattern import age_decade, bmi_category, calculate_bmi

FALLBACK_MODEL = "rule-based-v1"

_HEAVY = ("overweight", "obese")
# Hydration and weight-insight branches compare the raw BMI, not the category.
_WEIGHT_BMI_ABOVE = 25.0
_SCREENING_AGE_ABOVE = 40


@dataclass(frozen=True)
class _Profile:
    age: int
    decade: int
    bmi: float
    bmi_category: str


# Score thresholds shared by every area template.
_STRONG = 8
_FAIR = 6

# ---------------------------------------------------------------------------
# Area templates
# ---------------------------------------------------------------------------


def _hydration(score: float, who: _Profile) -> tuple[str, list[str], list[str]]:
    glasses = 10 if who.bmi > _WEIGHT_BMI_ABOVE else 8
    if score >= _STRONG:
        message = (
            f"Excellent hydration habits! In your {who.decade}s, maintaining this level "
            "supports optimal cellular function."
        )
        recs = [f"Maintain your current intake of {glasses}+ glasses daily."]
    elif score >= _FAIR:
        message = "Good hydration foundation. Slight improvements could enhance your energy levels."
        recs = [f"Aim for {glasses}-{glasses + 2} glasses of water daily."]
    else:
        message = (
            f"Hydration needs attention. In your {who.decade}s, proper hydration becomes "
            "increasingly important for health."
        )
        recs = [
            f"Aim for {glasses}-{glasses + 2} glasses of water daily.",
            "Set hourly reminders initially.",
        ]
    tips = ["Drink a glass of water upon waking", "Keep a refillable bottle within reach"]
    return message, recs, tips


def _sleep(score: float, who: _Profile) -> tuple[str, list[str], list[str]]:
    if score >= _STRONG:
        message = f"Outstanding sleep quality! This is crucial for recovery in your {who.decade}s."
        recs = ["Maintain your excellent sleep routine and consistent schedule."]
    else:
        if score >= _FAIR:
            message = "Decent sleep patterns with room for optimization."
        else:
            message = (
                "Sleep quality needs significant improvement. This is especially "
                "important as we age."
            )
        if who.age > _SCREENING_AGE_ABOVE:
            recs = [
                "Prioritize 7-8 hours nightly.",
                "Consider a wind-down routine and limiting screens before bed.",
            ]
        else:
            recs = [
                "Aim for 7-9 hours of quality sleep.",
                "Establish a consistent bedtime routine.",
            ]
    tips = ["Keep the bedroom cool and dark", "Avoid caffeine after mid-afternoon"]
    return message, recs, tips


def _exercise(score: float, who: _Profile) -> tuple[str, list[str], list[str]]:
    if score >= _STRONG:
        message = f"Fantastic activity level! You're setting a great example for people in their {who.decade}s."
        recs = ["Maintain your excellent routine.", "Consider adding variety to prevent plateaus."]
    else:
        if score >= _FAIR:
            message = "Good exercise foundation. Small increases could yield significant benefits."
        else:
            message = "Exercise frequency needs attention. Regular activity becomes more crucial with age."
        if who.bmi_category in _HEAVY:
            recs = [
                "Start with 30 minutes of walking daily.",
                "Gradually add strength training 2x/week.",
            ]
        else:
            recs = [
                "Aim for 150 minutes of moderate exercise weekly.",
                "Mix cardio and strength training.",
            ]
    tips = ["Schedule workouts like appointments", "Take the stairs when you can"]
    return message, recs, tips


def _nutrition(score: float, who: _Profile) -> tuple[str, list[str], list[str]]:
    if score >= _STRONG:
        message = "Excellent nutritional choices! Your body is getting quality fuel."
        recs = ["Continue your excellent eating habits.", "Consider meal timing optimization."]
    else:
        if score >= _FAIR:
            message = "Good nutritional foundation with opportunities for enhancement."
        else:
            message = "Nutrition needs significant attention for optimal health outcomes."
        if who.bmi_category in _HEAVY:
            recs = [
                "Focus on whole foods, portion control, and reducing processed foods.",
                "Consider consulting a nutritionist.",
            ]
        else:
            recs = [
                "Emphasize whole foods, lean proteins, and plenty of vegetables.",
                "Plan meals in advance.",
            ]
    tips = ["Fill half your plate with vegetables", "Prepare meals for the week ahead"]
    return message, recs, tips


_AREA_TEMPLATES = {
    "hydration": _hydration,
    "sleep": _sleep,
    "exercise": _exercise,
    "nutrition": _nutrition,
}

# ---------------------------------------------------------------------------
# Priority actions
# ---------------------------------------------------------------------------

_LOWEST_ACTIONS = {
    "hydration": "Boost hydration: increase daily water intake to 8-10 glasses",
    "sleep": "Establish consistent sleep schedule (7-8 hours)",
    "exercise": "Add 30 minutes of daily exercise",
    "nutrition": "Improve nutrition by focusing on whole foods and reducing processed foods",
}

_SECOND_LOWEST_ACTIONS = {
    "hydration": "Set hourly hydration reminders",
    "sleep": "Create a relaxing bedtime routine for better sleep",
    "exercise": "Start exercise with 10-minute walks after meals",
    "nutrition": "Plan healthy meals in advance to support nutrition",
}

SCREENING_ACTION = "Consider comprehensive health screening"
HABITS_ACTION = "Build healthy habits for long-term wellness"


def priority_actions(scores: dict[str, float], age: int) -> list[str]:
    """Exactly three actions: lowest area, second-lowest area, age-based.

    Ties keep AREAS order.
    """
    ranked = sorted(AREAS, key=lambda area: scores[area])
    return [
        _LOWEST_ACTIONS[ranked[0]],
        _SECOND_LOWEST_ACTIONS[ranked[1]],
        SCREENING_ACTION if age > _SCREENING_AGE_ABOVE else HABITS_ACTION,
    ]


# ---------------------------------------------------------------------------
# Summary text
# ---------------------------------------------------------------------------


def _key_insights(average: float, who: _Profile) -> list[str]:
    if average >= 7.5:
        insights = ["You have a strong foundation for optimal health"]
    elif average >= 6.0:
        insights = ["You have good health awareness with room for improvement"]
    else:
        insights = ["Significant opportunity exists to enhance your wellness"]
    if who.bmi > _WEIGHT_BMI_ABOVE:
        insights.append("Weight management could enhance all other health areas")
    if who.age > 35:
        insights.append("Preventive health measures become increasingly important with age")
    return insights


def _personalized_message(grade: str) -> str:
    if grade.startswith("A"):
        return (
            "Exceptional health awareness! You're setting a fantastic example "
            "for others in your age group."
        )
    if grade.startswith("B"):
        return "Strong health foundation with excellent potential for optimization."
    if grade.startswith("C"):
        return "Good health awareness with clear opportunities for meaningful improvement."
    return "Every health journey is unique. You're taking the right first steps toward better wellness."


def _improvement_potential(grade: str, decade: int) -> str:
    if grade.startswith("A"):
        return (
            f"Outstanding! For someone in their {decade}s, you're in the top tier for health "
            "awareness. Small optimizations can make you feel even better."
        )
    if grade.startswith("B"):
        return "Great foundation! With focused improvements, you could achieve excellent health outcomes."
    if grade.startswith("C"):
        return "Good awareness with significant opportunity. Small, consistent changes can transform your health."
    return "Every journey starts with a single step. You have tremendous potential for positive change."


def _risk_factors(scores: dict[str, float], bmi_cat: str) -> list[str]:
    factors = [
        f"Low {area} score may be holding back your overall wellbeing"
        for area in AREAS
        if scores[area] < 5
    ]
    if bmi_cat in _HEAVY:
        factors.append(f"BMI in the {bmi_cat} range")
    elif bmi_cat == "underweight":
        factors.append("BMI in the underweight range")
    return factors


def _positive_aspects(scores: dict[str, float]) -> list[str]:
    aspects = [f"Strong {area} habits" for area in AREAS if scores[area] >= _STRONG]
    aspects.append("Taking proactive steps by completing the assessment")
    return aspects


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def synthesize(analysis_input: AnalysisInput) -> AnalysisResult:
    """Build a rule-based AnalysisResult. Total over valid inputs."""
    demo = analysis_input.demographics
    scores = analysis_input.health_metrics.as_dict()
    bmi = calculate_bmi(demo.weight_kg, demo.height_cm)
    who = _Profile(age=demo.age, decade=age_decade(demo.age), bmi=bmi, bmi_category=bmi_category(bmi))

    average = analysis_input.health_metrics.average()
    grade = overall_grade(average * 10)

    area_analysis: dict[str, AreaInsight] = {}
    for area in AREAS:
        score = scores[area]
        message, recs, tips = _AREA_TEMPLATES[area](score, who)
        area_analysis[area] = AreaInsight(
            score=score,
            grade=area_grade(score),
            insights=message,
            recommendations=recs,
            risk_level=risk_level(score),
            improvement_tips=tips,
        )

    return AnalysisResult(
        overall_grade=grade,
        overall_score=round_half_up(average * 10),
        area_analysis=area_analysis,
        priority_actions=priority_actions(scores, demo.age),
        risk_factors=_risk_factors(scores, who.bmi_category),
        positive_aspects=_positive_aspects(scores),
        personalized_message=_personalized_message(grade),
        improvement_potential=_improvement_potential(grade, who.decade),
        key_insights=_key_insights(average, who),
        disclaimer=DISCLAIMER,
        model=FALLBACK_MODEL,
    )


def default_analysis() -> AnalysisResult:
    """Static analysis for when not even the submission is usable."""
    neutral = {"hydration": 7, "sleep": 6, "exercise": 7, "nutrition": 6}
    messages = {
        "hydration": ("Hydration is fundamental to health", "Aim for 8-10 glasses of water daily"),
        "sleep": ("Quality sleep supports all health functions", "Establish a consistent sleep schedule"),
        "exercise": ("Regular activity is key to longevity", "Include both cardio and strength training"),
        "nutrition": (
            "Nutrition provides the foundation for wellness",
            "Focus on whole foods and balanced meals",
        ),
    }
    return AnalysisResult(
        overall_grade="B",
        overall_score=70,
        area_analysis={
            area: AreaInsight(
                score=neutral[area],
                grade=area_grade(neutral[area]),
                insights=messages[area][0],
                recommendations=[messages[area][1]],
                risk_level=risk_level(neutral[area]),
                improvement_tips=[],
            )
            for area in AREAS
        },
        priority_actions=[
            "Establish consistent daily routines",
            "Focus on one health area at a time",
            "Track progress with simple metrics",
        ],
        personalized_message=(
            "Thank you for completing the assessment. Our analysis system is temporarily "
            "unavailable, but your results show good health awareness."
        ),
        improvement_potential="You have excellent potential for positive health transformation!",
        key_insights=[
            "Small, consistent changes create lasting results",
            "Health is a journey, not a destination",
        ],
        disclaimer=DISCLAIMER,
        model=FALLBACK_MODEL,
    )
