"""LLM provider implementations."""

from maxpulse.core.llm.providers.anthropic import AnthropicProvider
from maxpulse.core.llm.providers.mock import MockProvider
from maxpulse.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "MockProvider", "OpenAIProvider"]
