"""Grade ladders and risk levels."""

from __future__ import annotations

import math

# Overall ladder on the 0-100 scale (average of the four metrics x 10).
OVERALL_GRADE_LADDER = (
    (85.0, "A+"),
    (80.0, "A"),
    (75.0, "B+"),
    (70.0, "B"),
    (65.0, "C+"),
    (60.0, "C"),
    (55.0, "D+"),
    (50.0, "D"),
)

# Per-area ladder on the 0-10 scale.
AREA_GRADE_LADDER = (
    (9.0, "A+"),
    (8.5, "A"),
    (8.0, "B+"),
    (7.0, "B"),
    (6.0, "C+"),
    (5.0, "C"),
    (4.0, "D+"),
    (3.0, "D"),
)


def _grade(value: float, ladder: tuple[tuple[float, str], ...]) -> str:
    for threshold, grade in ladder:
        if value >= threshold:
            return grade
    return "F"


def overall_grade(score: float) -> str:
    """Grade for an unrounded 0-100 score."""
    return _grade(score, OVERALL_GRADE_LADDER)


def area_grade(score: float) -> str:
    """Grade for a single 0-10 area score."""
    return _grade(score, AREA_GRADE_LADDER)


def risk_level(score: float) -> str:
    if score < 4:
        return "high"
    if score < 7:
        return "medium"
    return "low"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
