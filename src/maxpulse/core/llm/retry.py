"""Bounded retry with exponential backoff and jitter for LLM calls."""

from __future__ import annotations

import random
from dataclasses import dataclass

from maxpulse.core.errors import ErrorKind


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy configuration."""

    max_attempts: int = 3
    """Maximum number of attempts (including initial attempt)."""

    base_delay_seconds: float = 0.5
    """Base delay in seconds for exponential backoff."""

    max_delay_seconds: float = 4.0
    """Maximum delay in seconds between retries."""

    jitter_factor: float = 0.3
    """Jitter factor (0.0 to 1.0) for randomizing backoff delay."""

    def calculate_backoff(self, attempt_number: int) -> float:
        """Delay before ``attempt_number`` (1-indexed, so 2 = first retry)."""
        if attempt_number <= 1 or self.base_delay_seconds <= 0:
            return 0.0

        delay = min(
            self.base_delay_seconds * (2 ** (attempt_number - 2)),
            self.max_delay_seconds,
        )
        jitter_range = delay * self.jitter_factor
        return max(0.0, delay - jitter_range + random.random() * 2 * jitter_range)

    def should_retry(self, kind: ErrorKind, attempt_number: int) -> bool:
        """Retry only retryable kinds, and never past ``max_attempts``."""
        if attempt_number >= self.max_attempts:
            return False
        return kind.retryable

    @classmethod
    def from_retries(cls, max_retries: int, base_delay_seconds: float = 0.5) -> RetryPolicy:
        return cls(max_attempts=max(1, max_retries + 1), base_delay_seconds=base_delay_seconds)
