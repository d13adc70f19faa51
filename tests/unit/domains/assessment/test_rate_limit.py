"""Tests for RateLimitPolicy."""

from __future__ import annotations

import pytest

from maxpulse.core.errors import AnalysisRequestError, ErrorKind
from maxpulse.core.storage.kv import InMemoryKeyValueStore
from maxpulse.domains.assessment.rate_limit import RateLimitPolicy


@pytest.fixture
def store(clock):
    return InMemoryKeyValueStore(clock)


def test_allows_until_limit(store, clock):
    policy = RateLimitPolicy(store, max_requests=3, clock=clock)
    for _ in range(3):
        policy.check("user")
        policy.record("user")
    with pytest.raises(AnalysisRequestError) as excinfo:
        policy.check("user")
    assert excinfo.value.error.code is ErrorKind.RATE_LIMIT
    assert excinfo.value.error.retryable is False


def test_window_resets(store, clock):
    policy = RateLimitPolicy(store, max_requests=1, window_seconds=60, clock=clock)
    policy.record("user")
    with pytest.raises(AnalysisRequestError):
        policy.check("user")
    clock.advance(61)
    policy.check("user")
    assert policy.remaining("user") == 1


def test_keys_are_independent(store, clock):
    policy = RateLimitPolicy(store, max_requests=1, clock=clock)
    policy.record("a")
    policy.check("b")


def test_state_shape(store, clock):
    policy = RateLimitPolicy(store, clock=clock)
    policy.record("user")
    policy.record("user")
    state = store.get("maxpulse-ai-rate-limit:user")
    assert state["count"] == 2
    assert state["resetTime"] > clock.now.isoformat()


def test_disabled_policy(store, clock):
    policy = RateLimitPolicy(store, max_requests=0, enabled=False, clock=clock)
    policy.record("user")
    policy.check("user")
    assert store.get("maxpulse-ai-rate-limit:user") is None


def test_reset(store, clock):
    policy = RateLimitPolicy(store, max_requests=1, clock=clock)
    policy.record("user")
    policy.reset("user")
    policy.check("user")
