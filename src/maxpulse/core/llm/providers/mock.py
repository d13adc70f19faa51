"""Mock LLM provider for testing and offline demos."""

from __future__ import annotations

import asyncio
import json

from maxpulse.core.llm.provider import ProviderResponse

# A well-formed analysis in the exact shape the prompt asks the model for.
MOCK_ANALYSIS: dict = {
    "overallGrade": "B+",
    "overallScore": 78,
    "areaAnalysis": {
        "hydration": {
            "score": 7,
            "grade": "B",
            "insights": "Good hydration habits with room for improvement",
            "recommendations": ["Drink water upon waking", "Set hourly water reminders"],
            "riskLevel": "low",
            "improvementTips": ["Track daily water intake", "Add electrolytes during exercise"],
        },
        "sleep": {
            "score": 6,
            "grade": "C+",
            "insights": "Sleep quality could be enhanced for better recovery",
            "recommendations": ["Establish consistent bedtime", "Limit screen time before bed"],
            "riskLevel": "medium",
            "improvementTips": ["Create sleep-friendly environment", "Practice relaxation techniques"],
        },
        "exercise": {
            "score": 8,
            "grade": "B+",
            "insights": "Excellent exercise routine supporting overall health",
            "recommendations": ["Continue current routine", "Add flexibility training"],
            "riskLevel": "low",
            "improvementTips": ["Vary workout intensity", "Include recovery days"],
        },
        "nutrition": {
            "score": 7,
            "grade": "B",
            "insights": "Solid nutritional foundation with optimization opportunities",
            "recommendations": ["Increase vegetable intake", "Plan balanced meals"],
            "riskLevel": "low",
            "improvementTips": ["Meal prep on weekends", "Focus on whole foods"],
        },
    },
    "priorityActions": [
        "Establish a consistent sleep schedule",
        "Increase daily water intake to 8-10 glasses",
        "Add more vegetables to each meal",
    ],
    "riskFactors": ["Inconsistent sleep patterns may affect recovery"],
    "positiveAspects": [
        "Strong exercise routine",
        "Good baseline health awareness",
        "Motivated to improve",
    ],
    "personalizedMessage": (
        "You're doing great with exercise! Focus on sleep consistency and "
        "hydration to unlock your full potential."
    ),
    "improvementPotential": (
        "With better sleep and hydration, you could see 15-20% improvement "
        "in energy and recovery."
    ),
    "keyInsights": [
        "Exercise is your strongest health pillar",
        "Sleep optimization will amplify other improvements",
        "Small hydration changes can yield big results",
    ],
}


class MockProvider:
    """Mock provider for testing — returns a canned analysis or raises a canned error."""

    def __init__(
        self,
        response_content: str | None = None,
        *,
        error: Exception | None = None,
        delay_seconds: float = 0.0,
        model: str = "mock",
    ) -> None:
        self.response_content = (
            response_content if response_content is not None else json.dumps(MOCK_ANALYSIS)
        )
        self.error = error
        self.delay_seconds = delay_seconds
        self.model = model
        self.last_system_message: str = ""
        self.last_user_message: str = ""
        self.call_count: int = 0

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        self.last_system_message = system_message
        self.last_user_message = user_message
        self.call_count += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return ProviderResponse(
            content=self.response_content,
            input_tokens=len(system_message.split()) + len(user_message.split()),
            output_tokens=len(self.response_content.split()),
            model=self.model,
            latency_ms=self.delay_seconds * 1000,
        )
