"""OpenAI chat-completions provider."""

from __future__ import annotations

import time

import openai

from maxpulse.core.errors import ErrorKind
from maxpulse.core.llm.provider import ProviderError, ProviderResponse


class OpenAIProvider:
    """OpenAI provider using the async OpenAI SDK."""

    def __init__(self, api_key: str, model: str = "gpt-4o", timeout: float = 10.0) -> None:
        # Retries are owned by AnalysisLLMClient, not the SDK.
        self.client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
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
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system_message},
                    {"role": "user", "content": user_message},
                ],
            )
        # APITimeoutError subclasses APIConnectionError, so order matters.
        except openai.APITimeoutError as exc:
            raise ProviderError(ErrorKind.TIMEOUT, str(exc)) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError(ErrorKind.NETWORK_ERROR, str(exc)) from exc
        except openai.RateLimitError as exc:
            raise ProviderError(ErrorKind.RATE_LIMIT, str(exc)) from exc
        except openai.APIError as exc:
            raise ProviderError(ErrorKind.API_ERROR, str(exc)) from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content or "") if choice else ""
        usage = response.usage
        return ProviderResponse(
            content=content,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self.model,
            latency_ms=elapsed_ms,
        )
