"""Tests for AnalysisLLMClient — timeout, classification, retry."""

from __future__ import annotations

import asyncio

import pytest

from maxpulse.core.errors import ErrorKind
from maxpulse.core.llm.client import AnalysisLLMClient, LLMCallError
from maxpulse.core.llm.provider import ProviderError, ProviderResponse, create_provider
from maxpulse.core.llm.providers.mock import MockProvider
from maxpulse.core.llm.retry import RetryPolicy
from maxpulse.core.llm.system_prompt import ANALYST_SYSTEM_PROMPT


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FlakyProvider:
    """Fails with the given errors in order, then succeeds."""

    model = "flaky"

    def __init__(self, errors):
        self._errors = list(errors)
        self.call_count = 0

    async def generate(self, system_message, user_message, max_tokens=1500, temperature=0.3):
        self.call_count += 1
        if self._errors:
            raise self._errors.pop(0)
        return ProviderResponse(
            content="{}", input_tokens=1, output_tokens=1, model=self.model, latency_ms=0.0
        )


_FAST_RETRY = RetryPolicy(max_attempts=3, base_delay_seconds=0)


class TestComplete:
    def test_success_returns_response(self, mock_provider):
        client = AnalysisLLMClient(mock_provider)
        response = _run(client.complete("analyze this"))
        assert response.model == "mock"
        assert mock_provider.call_count == 1

    def test_system_prompt_always_sent(self, mock_provider):
        client = AnalysisLLMClient(mock_provider)
        _run(client.complete("hi", system_message="Be brief."))
        assert mock_provider.last_system_message.startswith(ANALYST_SYSTEM_PROMPT)
        assert "Be brief." in mock_provider.last_system_message
        assert mock_provider.last_user_message == "hi"

    def test_timeout_classified(self):
        provider = MockProvider(delay_seconds=0.5)
        client = AnalysisLLMClient(provider, timeout_seconds=0.01, retry_policy=_FAST_RETRY)
        with pytest.raises(LLMCallError) as excinfo:
            _run(client.complete("x"))
        assert excinfo.value.kind is ErrorKind.TIMEOUT
        assert excinfo.value.attempts == 3

    def test_provider_error_kind_preserved(self):
        provider = MockProvider(error=ProviderError(ErrorKind.NETWORK_ERROR, "down"))
        client = AnalysisLLMClient(provider, retry_policy=RetryPolicy(max_attempts=1))
        with pytest.raises(LLMCallError) as excinfo:
            _run(client.complete("x"))
        assert excinfo.value.kind is ErrorKind.NETWORK_ERROR

    def test_unknown_exception_is_api_error(self):
        provider = MockProvider(error=RuntimeError("boom"))
        client = AnalysisLLMClient(provider, retry_policy=RetryPolicy(max_attempts=1))
        with pytest.raises(LLMCallError) as excinfo:
            _run(client.complete("x"))
        assert excinfo.value.kind is ErrorKind.API_ERROR

    def test_rate_limit_not_retried(self):
        provider = MockProvider(error=ProviderError(ErrorKind.RATE_LIMIT, "quota"))
        client = AnalysisLLMClient(provider, retry_policy=_FAST_RETRY)
        with pytest.raises(LLMCallError) as excinfo:
            _run(client.complete("x"))
        assert excinfo.value.kind is ErrorKind.RATE_LIMIT
        assert provider.call_count == 1

    def test_retries_then_succeeds(self):
        provider = FlakyProvider([
            ProviderError(ErrorKind.API_ERROR, "502"),
            ProviderError(ErrorKind.TIMEOUT, "slow"),
        ])
        client = AnalysisLLMClient(provider, retry_policy=_FAST_RETRY)
        response = _run(client.complete("x"))
        assert response.model == "flaky"
        assert provider.call_count == 3


class TestProviderFactory:
    def test_mock(self):
        provider = create_provider("mock")
        assert isinstance(provider, MockProvider)

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            create_provider("cohere")

    def test_provider_name(self, mock_provider):
        assert AnalysisLLMClient(mock_provider).provider_name == "mock"
