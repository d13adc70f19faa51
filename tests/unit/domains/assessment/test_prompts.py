"""Tests for the analysis prompt builder."""

from __future__ import annotations

from maxpulse.domains.assessment.prompts import build_analysis_prompt, format_answers


def test_embeds_profile_and_scores(sample_input):
    prompt = build_analysis_prompt(sample_input)
    assert "Age: 42 years" in prompt
    assert "BMI: 25.9 (overweight)" in prompt
    assert "Sleep Quality: 4/10" in prompt
    assert "ASSESSMENT TYPE: HEALTH" in prompt
    assert '"overallGrade"' in prompt
    assert '"nutrition"' in prompt


def test_no_answers(sample_input):
    assert "health metrics only" in build_analysis_prompt(sample_input)


def test_answers_capped(input_factory):
    answers = [{"questionId": f"q{i}", "answer": "yes"} for i in range(15)]
    prompt = build_analysis_prompt(input_factory(answers=answers), max_answers=10)
    assert "10. q9: yes" in prompt
    assert "q10:" not in prompt
    assert "(5 further answers omitted)" in prompt


def test_long_answer_truncated(input_factory):
    answers = [{"questionId": "story", "answer": "x" * 500, "category": "lifestyle"}]
    text = format_answers(input_factory(answers=answers).answers, max_answer_chars=50)
    line = text.splitlines()[0]
    assert line.startswith("1. story [lifestyle]: ")
    assert len(line.split(": ", 1)[1]) == 50
