"""Pattern normalizer: collapse an AnalysisInput into a shared cache bucket.

Deterministic and side-effect free. Two inputs with equal PatternKeys are
served the same cached analysis while it is live.
"""

from __future__ import annotations

import hashlib
import json
import math

from maxpulse.domains.assessment.models import (
    AREAS,
    METRIC_MAX,
    METRIC_MIN,
    AnalysisInput,
    PatternKey,
)

# BMI thresholds (kg/m^2): below 18.5, below 25, below 30, otherwise obese.
BMI_UNDERWEIGHT_BELOW = 18.5
BMI_NORMAL_BELOW = 25.0
BMI_OVERWEIGHT_BELOW = 30.0


def calculate_bmi(weight_kg: float, height_cm: float) -> float:
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def bmi_category(bmi: float) -> str:
    if bmi < BMI_UNDERWEIGHT_BELOW:
        return "underweight"
    if bmi < BMI_NORMAL_BELOW:
        return "normal"
    if bmi < BMI_OVERWEIGHT_BELOW:
        return "overweight"
    return "obese"


def age_decade(age: int) -> int:
    return (age // 10) * 10


def bucket_metric(value: float) -> int:
    """Round to an even bucket, halves going down: 6-7 -> 6, 8-9 -> 8.

    Clamped to the 0-10 metric range.
    """
    bucket = math.ceil(value / 2 - 0.5) * 2
    return max(METRIC_MIN, min(METRIC_MAX, bucket))


def normalize(analysis_input: AnalysisInput) -> PatternKey:
    """Derive the PatternKey for ``analysis_input``."""
    demo = analysis_input.demographics
    metrics = analysis_input.health_metrics.as_dict()
    return PatternKey(
        assessment_type=analysis_input.assessment_type,
        age_decade=age_decade(demo.age),
        bmi_category=bmi_category(calculate_bmi(demo.weight_kg, demo.height_cm)),
        gender=demo.gender,
        metric_buckets=tuple(bucket_metric(metrics[area]) for area in AREAS),
    )


def pattern_hash(key: PatternKey) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``key``."""
    canonical = json.dumps(key.to_dict(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
