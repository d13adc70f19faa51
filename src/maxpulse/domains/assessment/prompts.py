"""Prompt construction for the analysis model."""

from __future__ import annotations

from maxpulse.domains.assessment.models import AnalysisInput, AssessmentAnswer
from maxpulse.domains.assessment.pattern import bmi_category, calculate_bmi

DEFAULT_MAX_ANSWERS = 10
DEFAULT_MAX_ANSWER_CHARS = 200

_AREA_FORMAT = """{
      "score": 0-10,
      "grade": "A+|A|B+|B|C+|C|D+|D|F",
      "insights": "what this score means for health",
      "recommendations": ["rec1", "rec2"],
      "riskLevel": "low|medium|high",
      "improvementTips": ["tip1", "tip2"]
    }"""


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)].rstrip() + "…"


def format_answers(
    answers: tuple[AssessmentAnswer, ...],
    max_answers: int = DEFAULT_MAX_ANSWERS,
    max_answer_chars: int = DEFAULT_MAX_ANSWER_CHARS,
) -> str:
    """Numbered answer lines, capped in count and length."""
    if not answers:
        return "No specific answers provided - analysis based on health metrics only."

    lines = []
    for index, answer in enumerate(answers[:max_answers], start=1):
        label = answer.question_id
        if answer.category:
            label = f"{label} [{answer.category}]"
        lines.append(f"{index}. {label}: {_truncate(str(answer.answer), max_answer_chars)}")

    omitted = len(answers) - max_answers
    if omitted > 0:
        lines.append(f"({omitted} further answers omitted)")
    return "\n".join(lines)


def build_analysis_prompt(
    analysis_input: AnalysisInput,
    *,
    max_answers: int = DEFAULT_MAX_ANSWERS,
    max_answer_chars: int = DEFAULT_MAX_ANSWER_CHARS,
) -> str:
    """Render the user message sent to the analysis model."""
    demo = analysis_input.demographics
    metrics = analysis_input.health_metrics
    bmi = calculate_bmi(demo.weight_kg, demo.height_cm)
    answers = format_answers(analysis_input.answers, max_answers, max_answer_chars)

    return f"""Analyze this health assessment data and provide personalized insights.

USER PROFILE:
- Age: {demo.age} years
- Weight: {demo.weight_kg:g}kg
- Height: {demo.height_cm:g}cm
- BMI: {bmi:.1f} ({bmi_category(bmi)})
- Gender: {demo.gender}

HEALTH SCORES (0-10 scale):
- Hydration: {metrics.hydration}/10
- Sleep Quality: {metrics.sleep}/10
- Exercise Level: {metrics.exercise}/10
- Nutrition Quality: {metrics.nutrition}/10

ASSESSMENT TYPE: {analysis_input.assessment_type.upper()}

ASSESSMENT ANSWERS:
{answers}

PROVIDE ANALYSIS IN THIS EXACT JSON FORMAT:
{{
  "overallGrade": "A+|A|B+|B|C+|C|D+|D|F",
  "overallScore": 0-100,
  "areaAnalysis": {{
    "hydration": {_AREA_FORMAT},
    "sleep": {_AREA_FORMAT},
    "exercise": {_AREA_FORMAT},
    "nutrition": {_AREA_FORMAT}
  }},
  "priorityActions": ["action1", "action2", "action3"],
  "riskFactors": ["risk1", "risk2"],
  "positiveAspects": ["positive1", "positive2"],
  "personalizedMessage": "encouraging message based on profile",
  "improvementPotential": "what could be achieved with changes",
  "keyInsights": ["insight1", "insight2", "insight3"]
}}

REQUIREMENTS:
- Be encouraging yet realistic
- Focus on actionable recommendations
- Consider age, BMI, and current health status
- Highlight both strengths and improvement areas
- Keep language simple and motivating"""
