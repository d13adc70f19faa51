"""LLM provider protocol — abstract interface for analysis completions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from maxpulse.core.errors import ErrorKind


@dataclass
class ProviderResponse:
    """Response from an LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


class ProviderError(Exception):
    """Raised by provider adapters with the SDK failure mapped to an ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for chat-completion calls."""

    model: str

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ) -> ProviderResponse: ...


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
    timeout: float = 10.0,
) -> LLMProvider:
    """Factory function to create an LLM provider by name.

    Args:
        provider_name: "openai", "anthropic", or "mock"
        api_key: API key for the provider.
        model: Model identifier override.
        timeout: Per-request SDK timeout in seconds.

    Returns:
        An LLMProvider instance.
    """
    if provider_name == "openai":
        from maxpulse.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key, model=model or "gpt-4o", timeout=timeout)
    elif provider_name == "anthropic":
        from maxpulse.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(
            api_key=api_key, model=model or "claude-sonnet-4-5-20250929", timeout=timeout
        )
    elif provider_name == "mock":
        from maxpulse.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
