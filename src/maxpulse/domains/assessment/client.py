"""Client-side analysis mirror: coarse local cache, rate limit, retry state.

``ClientAnalysisManager`` fronts any analysis backend (the in-process
service, a bare generator, or an HTTP call) with a cheap local cache keyed by
assessment type and an age window, an optional rate limit and a deadline.
``AnalysisSession`` is the per-submission request state a UI drives:
``run`` once, ``retry`` while ``can_retry``, ``reset`` to start over.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from maxpulse.core.config.settings import Settings, get_settings
from maxpulse.core.errors import AnalysisError, AnalysisRequestError, ErrorKind
from maxpulse.core.storage.kv import KeyValueStore
from maxpulse.core.storage.repository import utc_now
from maxpulse.domains.assessment.fallback import FALLBACK_MODEL, synthesize
from maxpulse.domains.assessment.generator import AnalysisGenerator, new_analysis_id
from maxpulse.domains.assessment.models import AnalysisInput, InvalidAnalysisInput
from maxpulse.domains.assessment.rate_limit import RateLimitPolicy
from maxpulse.domains.assessment.service import AnalysisService

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "maxpulse-ai-analysis"
ANONYMOUS = "anonymous"
DEFAULT_MAX_RETRIES = 3

AnalysisBackend = Callable[[AnalysisInput], Awaitable[dict[str, Any]]]


def service_backend(service: AnalysisService) -> AnalysisBackend:
    """Backend that goes through the server-side pattern cache."""

    async def call(analysis_input: AnalysisInput) -> dict[str, Any]:
        outcome = await service.analyze(analysis_input)
        return outcome.analysis

    return call


def generator_backend(generator: AnalysisGenerator) -> AnalysisBackend:
    """Backend that calls the generator directly, with no shared cache."""

    async def call(analysis_input: AnalysisInput) -> dict[str, Any]:
        result = await generator.generate(analysis_input)
        return result.to_dict()

    return call


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a backend failure onto the shared error taxonomy.

    Only a rejected submission is INVALID_INPUT. Any other ValueError, such
    as an undecodable response body, is an API_ERROR and stays retryable.
    """
    if isinstance(exc, AnalysisRequestError):
        return exc.error.code
    if isinstance(exc, asyncio.TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (ConnectionError, OSError)):
        return ErrorKind.NETWORK_ERROR
    if isinstance(exc, InvalidAnalysisInput):
        return ErrorKind.INVALID_INPUT
    return ErrorKind.API_ERROR


class ClientAnalysisManager:
    """Local cache + rate limit + deadline in front of an analysis backend."""

    def __init__(
        self,
        backend: AnalysisBackend,
        store: KeyValueStore,
        *,
        cache_enabled: bool = True,
        cache_ttl_seconds: int = 3600,
        age_window: int = 5,
        rate_limit: RateLimitPolicy | None = None,
        timeout_seconds: float = 10.0,
        fallback_on_error: bool = True,
        dedupe: bool = True,
        max_retries: int = DEFAULT_MAX_RETRIES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._backend = backend
        self._store = store
        self.cache_enabled = cache_enabled
        self.cache_ttl_seconds = cache_ttl_seconds
        self.age_window = age_window
        self.rate_limit = rate_limit
        self.timeout_seconds = timeout_seconds
        self.fallback_on_error = fallback_on_error
        self.dedupe = dedupe
        self.max_retries = max_retries
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        backend: AnalysisBackend,
        store: KeyValueStore,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> ClientAnalysisManager:
        """Manager configured from the ``client_*`` settings (env / .env)."""
        settings = settings or get_settings()
        rate_limit = RateLimitPolicy(
            store,
            max_requests=settings.client_rate_limit_max_requests,
            window_seconds=settings.client_rate_limit_window_seconds,
            enabled=settings.client_rate_limit_enabled,
            clock=clock,
        )
        return cls(
            backend,
            store,
            cache_enabled=settings.client_cache_enabled,
            cache_ttl_seconds=settings.client_cache_ttl_seconds,
            age_window=settings.client_cache_age_window,
            rate_limit=rate_limit,
            timeout_seconds=settings.client_timeout_seconds,
            dedupe=settings.client_dedupe_enabled,
            max_retries=settings.client_max_retries,
            clock=clock,
        )

    def session(self, analysis_input: AnalysisInput) -> AnalysisSession:
        """New request state for one submission, using this manager's retry policy."""
        return AnalysisSession(
            self, analysis_input, dedupe=self.dedupe, max_retries=self.max_retries
        )

    # ------------------------------------------------------------------
    # Coarse cache
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(assessment_type: str) -> str:
        return f"{CACHE_KEY_PREFIX}:{assessment_type}"

    def get_cached(self, analysis_input: AnalysisInput) -> dict[str, Any] | None:
        """Cached analysis for the same type and an age within the window."""
        if not self.cache_enabled:
            return None
        key = self.cache_key(analysis_input.assessment_type)
        entry = self._store.get(key)
        if not isinstance(entry, dict):
            return None
        try:
            expires_at = datetime.fromisoformat(entry["expiresAt"])
            cached_age = int(entry["age"])
            result = entry["result"]
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed client cache entry %s", key)
            self._store.delete(key)
            return None
        if expires_at <= self._clock():
            self._store.delete(key)
            return None
        if abs(cached_age - analysis_input.demographics.age) >= self.age_window:
            return None
        return dict(result)

    def cache(self, analysis_input: AnalysisInput, analysis: dict[str, Any]) -> None:
        if not self.cache_enabled:
            return
        now = self._clock()
        entry = {
            "age": analysis_input.demographics.age,
            "result": analysis,
            "timestamp": now.isoformat(),
            "expiresAt": (now + timedelta(seconds=self.cache_ttl_seconds)).isoformat(),
        }
        self._store.set(
            self.cache_key(analysis_input.assessment_type),
            entry,
            ttl_seconds=self.cache_ttl_seconds,
        )

    def clear_cache(self, assessment_type: str) -> None:
        self._store.delete(self.cache_key(assessment_type))

    def purge_expired(self) -> int:
        """Evict expired cache entries and rate-limit windows from the store."""
        return self._store.purge_expired()

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    async def analyze(self, analysis_input: AnalysisInput) -> dict[str, Any]:
        """Return an analysis dict for ``analysis_input``.

        Raises:
            AnalysisRequestError: On a rate-limit refusal, or on a backend
                failure when ``fallback_on_error`` is off.
        """
        cached = self.get_cached(analysis_input)
        if cached is not None:
            logger.debug("Client cache hit for %s", analysis_input.assessment_type)
            return cached

        limit_key = analysis_input.session_id or ANONYMOUS
        if self.rate_limit is not None:
            self.rate_limit.check(limit_key)

        started = time.perf_counter()
        try:
            analysis = await asyncio.wait_for(
                self._backend(analysis_input), timeout=self.timeout_seconds
            )
        except Exception as exc:
            kind = classify_error(exc)
            if not self.fallback_on_error or kind is ErrorKind.RATE_LIMIT:
                logger.warning("Analysis backend failed (%s): %s", kind.value, exc)
                raise AnalysisRequestError.from_kind(kind) from exc
            logger.warning("Analysis backend failed (%s); using rule-based fallback", kind.value)
            result = dataclasses.replace(
                synthesize(analysis_input),
                generated_at=self._clock().isoformat(),
                analysis_id=new_analysis_id(),
                processing_time=int((time.perf_counter() - started) * 1000),
                model=FALLBACK_MODEL,
            )
            analysis = result.to_dict()

        if self.rate_limit is not None:
            self.rate_limit.record(limit_key)
        self.cache(analysis_input, analysis)
        return analysis


# ---------------------------------------------------------------------------
# Request state
# ---------------------------------------------------------------------------

class RequestState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


class AnalysisSession:
    """Request state for one submission.

    A second ``run`` while a request is in flight awaits the same task
    instead of issuing another request (when ``dedupe`` is on). ``run`` after
    completion returns the settled analysis without calling the backend.
    """

    def __init__(
        self,
        manager: ClientAnalysisManager,
        analysis_input: AnalysisInput,
        *,
        dedupe: bool = True,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._manager = manager
        self._input = analysis_input
        self._dedupe = dedupe
        self.max_retries = max_retries
        self.state = RequestState.IDLE
        self.analysis: dict[str, Any] | None = None
        self.error: AnalysisError | None = None
        self.retry_count = 0
        self._task: asyncio.Task | None = None

    @property
    def loading(self) -> bool:
        return self.state is RequestState.IN_FLIGHT

    @property
    def can_retry(self) -> bool:
        return (
            self.state is RequestState.FAILED
            and self.error is not None
            and self.error.retryable
            and self.retry_count < self.max_retries
        )

    async def run(self) -> dict[str, Any] | None:
        """Start (or join) the request. Returns the analysis, or None on failure."""
        if self.state is RequestState.IN_FLIGHT and self._task is not None and self._dedupe:
            return await asyncio.shield(self._task)
        if self.state is RequestState.DONE:
            return self.analysis
        if self.state is RequestState.FAILED:
            return None
        return await self._start()

    async def retry(self) -> dict[str, Any] | None:
        """Re-issue a failed request while the retry budget allows it."""
        if not self.can_retry:
            return None
        return await self._start()

    def reset(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.state = RequestState.IDLE
        self.analysis = None
        self.error = None
        self.retry_count = 0

    async def _start(self) -> dict[str, Any] | None:
        self.state = RequestState.IN_FLIGHT
        self.error = None
        self._task = asyncio.ensure_future(self._execute())
        return await asyncio.shield(self._task)

    async def _execute(self) -> dict[str, Any] | None:
        try:
            analysis = await self._manager.analyze(self._input)
        except AnalysisRequestError as exc:
            self._fail(exc.error)
            return None
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Analysis session failed")
            self._fail(AnalysisError.from_kind(classify_error(exc)))
            return None
        self.analysis = analysis
        self.state = RequestState.DONE
        return analysis

    def _fail(self, error: AnalysisError) -> None:
        self.error = error
        self.retry_count += 1
        self.state = RequestState.FAILED
