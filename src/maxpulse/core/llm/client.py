"""Analysis LLM client — timeout, retry and error classification around a provider."""

from __future__ import annotations

import asyncio
import logging

from maxpulse.core.errors import ErrorKind
from maxpulse.core.llm.provider import LLMProvider, ProviderError, ProviderResponse
from maxpulse.core.llm.retry import RetryPolicy
from maxpulse.core.llm.system_prompt import build_full_system_prompt

logger = logging.getLogger(__name__)


class LLMCallError(Exception):
    """Raised when an LLM call fails after all permitted attempts."""

    def __init__(self, kind: ErrorKind, message: str = "", attempts: int = 1) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.attempts = attempts


class AnalysisLLMClient:
    """Invokes the analysis model with a bounded deadline per attempt.

    Usage::

        client = AnalysisLLMClient(provider, timeout_seconds=10)
        response = await client.complete(prompt)
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        timeout_seconds: float = 10.0,
        max_tokens: int = 1500,
        temperature: float = 0.3,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.retry_policy = retry_policy or RetryPolicy()

    @property
    def model(self) -> str:
        return getattr(self.provider, "model", "unknown")

    @property
    def provider_name(self) -> str:
        return type(self.provider).__name__.removesuffix("Provider").lower()

    async def complete(self, user_message: str, system_message: str = "") -> ProviderResponse:
        """Run one completion, retrying retryable failures.

        Raises:
            LLMCallError: With the classified kind of the last failure.
        """
        full_system = build_full_system_prompt(system_message)
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await asyncio.wait_for(
                    self.provider.generate(
                        system_message=full_system,
                        user_message=user_message,
                        max_tokens=self.max_tokens,
                        temperature=self.temperature,
                    ),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                kind, detail = ErrorKind.TIMEOUT, f"no response within {self.timeout_seconds}s"
            except ProviderError as exc:
                kind, detail = exc.kind, str(exc)
            except Exception as exc:  # noqa: BLE001 - any SDK/transport failure
                kind, detail = ErrorKind.API_ERROR, f"{type(exc).__name__}: {exc}"
            else:
                logger.info(
                    "LLM call: model=%s, tokens=%d+%d, latency=%.0fms, attempt=%d",
                    response.model,
                    response.input_tokens,
                    response.output_tokens,
                    response.latency_ms,
                    attempt,
                )
                return response

            if not self.retry_policy.should_retry(kind, attempt):
                logger.warning(
                    "LLM call failed: kind=%s, attempts=%d, detail=%s",
                    kind.value,
                    attempt,
                    detail,
                )
                raise LLMCallError(kind, detail, attempts=attempt)

            delay = self.retry_policy.calculate_backoff(attempt + 1)
            logger.info(
                "LLM call attempt %d failed (%s); retrying in %.2fs",
                attempt,
                kind.value,
                delay,
            )
            if delay:
                await asyncio.sleep(delay)
