"""Per-key request counter with a fixed reset window."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from maxpulse.core.errors import AnalysisRequestError, ErrorKind
from maxpulse.core.storage.kv import KeyValueStore
from maxpulse.core.storage.repository import utc_now

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "maxpulse-ai-rate-limit"


class RateLimitPolicy:
    """Allow at most ``max_requests`` per ``window_seconds`` for each key.

    State is ``{"count": n, "resetTime": iso}`` in the given store. A disabled
    policy never refuses and never writes.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_requests: int = 50,
        window_seconds: int = 3600,
        enabled: bool = True,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self._prefix = key_prefix
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def _state(self, key: str) -> dict | None:
        state = self._store.get(self._key(key))
        if not isinstance(state, dict):
            return None
        try:
            reset = datetime.fromisoformat(state["resetTime"])
        except (KeyError, TypeError, ValueError):
            return None
        if reset <= self._clock():
            return None
        return state

    def remaining(self, key: str) -> int:
        state = self._state(key)
        used = int(state["count"]) if state else 0
        return max(0, self.max_requests - used)

    def check(self, key: str) -> None:
        """Raise ``AnalysisRequestError(RATE_LIMIT)`` if ``key`` is exhausted."""
        if not self.enabled:
            return
        if self.remaining(key) <= 0:
            logger.warning("Rate limit reached for %s", key)
            raise AnalysisRequestError.from_kind(ErrorKind.RATE_LIMIT)

    def record(self, key: str) -> None:
        """Count one request against ``key``."""
        if not self.enabled:
            return
        state = self._state(key)
        if state is None:
            reset = self._clock() + timedelta(seconds=self.window_seconds)
            state = {"count": 0, "resetTime": reset.isoformat()}
        state["count"] = int(state["count"]) + 1
        self._store.set(self._key(key), state, ttl_seconds=self.window_seconds)

    def reset(self, key: str) -> None:
        self._store.delete(self._key(key))
