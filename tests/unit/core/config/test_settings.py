"""Tests for environment-driven settings."""

from __future__ import annotations

from maxpulse.core.config.settings import Settings, get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    s = Settings(_env_file=None)
    assert s.llm_provider == "openai"
    assert s.llm_timeout_seconds == 10.0
    assert s.cache_ttl_seconds == 3600
    assert s.maxpulse_host == "127.0.0.1"


def test_disabled_policies_default_to_enabled():
    s = Settings(_env_file=None)
    assert s.client_rate_limit_enabled is True
    assert s.client_cache_enabled is True
    assert s.client_dedupe_enabled is True
    assert s.client_max_retries == 3


def test_env_override(monkeypatch):
    monkeypatch.setenv("CACHE_TTL_SECONDS", "120")
    monkeypatch.setenv("CLIENT_RATE_LIMIT_ENABLED", "false")
    s = get_settings()
    assert s.cache_ttl_seconds == 120
    assert s.client_rate_limit_enabled is False


def test_hermetic_provider():
    assert get_settings().llm_provider == "mock"
