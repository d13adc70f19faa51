"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """MaxPulse analysis service configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; the analysis endpoint has no auth layer of its own.
    maxpulse_host: str = "127.0.0.1"
    maxpulse_port: int = 8001
    maxpulse_log_level: str = "info"
    maxpulse_allow_insecure_bind: bool = False

    # LLM
    llm_provider: Literal["openai", "anthropic", "mock"] = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    llm_timeout_seconds: float = 10.0
    llm_max_tokens: int = 1500
    llm_temperature: float = 0.3
    llm_max_retries: int = 2
    llm_retry_base_delay_seconds: float = 0.5

    # Prompt limits
    prompt_max_answers: int = 10
    prompt_max_answer_chars: int = 200

    # Pattern cache (server side)
    cache_enabled: bool = True
    cache_db_path: str = "~/.maxpulse/analysis.db"
    cache_ttl_seconds: int = 3600
    # Optional Fernet key; cached analyses are stored as plain JSON without it.
    cache_encryption_key: str = ""

    # Client mirror policies
    client_cache_enabled: bool = True
    client_cache_ttl_seconds: int = 3600
    client_cache_age_window: int = 5
    client_rate_limit_enabled: bool = True
    client_rate_limit_max_requests: int = 50
    client_rate_limit_window_seconds: int = 3600
    client_dedupe_enabled: bool = True
    client_timeout_seconds: float = 10.0
    client_max_retries: int = 3

    # Audit
    audit_enabled: bool = True


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
