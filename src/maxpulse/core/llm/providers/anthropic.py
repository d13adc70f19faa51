"""Anthropic Claude provider."""

from __future__ import annotations

import time

import anthropic

from maxpulse.core.errors import ErrorKind
from maxpulse.core.llm.provider import ProviderError, ProviderResponse


class AnthropicProvider:
    """Claude provider using the Anthropic SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        timeout: float = 10.0,
    ) -> None:
        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        start = time.monotonic()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_message,
                messages=[{"role": "user", "content": user_message}],
            )
        except anthropic.APITimeoutError as exc:
            raise ProviderError(ErrorKind.TIMEOUT, str(exc)) from exc
        except anthropic.APIConnectionError as exc:
            raise ProviderError(ErrorKind.NETWORK_ERROR, str(exc)) from exc
        except anthropic.RateLimitError as exc:
            raise ProviderError(ErrorKind.RATE_LIMIT, str(exc)) from exc
        except anthropic.APIError as exc:
            raise ProviderError(ErrorKind.API_ERROR, str(exc)) from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        content = response.content[0].text if response.content else ""
        return ProviderResponse(
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
            latency_ms=elapsed_ms,
        )
