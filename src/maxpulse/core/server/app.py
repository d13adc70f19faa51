"""MaxPulse analysis server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
import sqlite3

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from maxpulse.core.audit.logger import AuditLogger
from maxpulse.core.config.settings import Settings, get_settings
from maxpulse.core.llm.client import AnalysisLLMClient
from maxpulse.core.llm.provider import LLMProvider, create_provider
from maxpulse.core.llm.retry import RetryPolicy
from maxpulse.core.storage.database import AnalysisDatabase, DatabaseError
from maxpulse.core.storage.encryption import EncryptionError, PayloadCipher
from maxpulse.core.storage.repository import AnalysisCacheRepository
from maxpulse.domains.assessment.endpoint import handle_analysis_request
from maxpulse.domains.assessment.fallback import default_analysis
from maxpulse.domains.assessment.generator import AnalysisGenerator
from maxpulse.domains.assessment.service import AnalysisService
from maxpulse.domains.assessment.tools.analysis_tools import register_analysis_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "MaxPulse AI Analysis"
SERVER_VERSION = "0.1.0"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _select_provider(settings: Settings) -> LLMProvider | None:
    """Provider for the configured backend, or None when no key is set."""
    if settings.llm_provider == "mock":
        return create_provider("mock")
    if settings.llm_provider == "anthropic":
        api_key, model = settings.anthropic_api_key, settings.anthropic_model
    elif settings.llm_provider == "openai":
        api_key, model = settings.openai_api_key, settings.openai_model
    else:  # pragma: no cover
        raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r}")

    if not api_key:
        logger.warning(
            "No API key configured for provider '%s'; all analyses use the rule-based fallback",
            settings.llm_provider,
        )
        return None
    return create_provider(
        provider_name=settings.llm_provider,
        api_key=api_key,
        model=model,
        timeout=settings.llm_timeout_seconds,
    )


def create_app(
    *,
    provider_override: LLMProvider | None = None,
    repository_override: AnalysisCacheRepository | None = None,
    audit_logger_override: AuditLogger | None = None,
    settings_override: Settings | None = None,
) -> FastMCP:
    """Create and configure the MaxPulse analysis server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Creates the LLM client (or none, when no credentials are configured)
    3. Opens the analysis database for the pattern cache and audit trail
    4. Wires the analysis service
    5. Registers tools and the ``POST /ai-analysis`` HTTP route
    """
    settings = settings_override or get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "MaxPulse assessment analysis server. Turns a completed health "
            "assessment into graded, personalized insights, sharing results "
            "across similar profiles and falling back to rule-based analysis "
            "whenever the language model is unavailable."
        ),
    )

    # --- LLM ---
    provider = provider_override if provider_override is not None else _select_provider(settings)
    llm_client: AnalysisLLMClient | None = None
    if provider is not None:
        llm_client = AnalysisLLMClient(
            provider,
            timeout_seconds=settings.llm_timeout_seconds,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            retry_policy=RetryPolicy.from_retries(
                settings.llm_max_retries, settings.llm_retry_base_delay_seconds
            ),
        )
        logger.info("LLM client configured: model=%s", llm_client.model)

    generator = AnalysisGenerator(
        llm_client,
        max_prompt_answers=settings.prompt_max_answers,
        max_answer_chars=settings.prompt_max_answer_chars,
    )

    # --- Storage (pattern cache + audit trail) ---
    repository = repository_override
    audit_logger = audit_logger_override
    need_cache = repository is None and settings.cache_enabled
    need_audit = audit_logger is None and settings.audit_enabled
    if need_cache or need_audit:
        try:
            database = AnalysisDatabase(settings.cache_db_path)
            database.initialize()
            logger.info(
                "Analysis database initialized: %s (schema v%d)",
                settings.cache_db_path,
                database.get_schema_version(),
            )
            if need_cache:
                repository = AnalysisCacheRepository(
                    database,
                    PayloadCipher(settings.cache_encryption_key),
                    ttl_seconds=settings.cache_ttl_seconds,
                )
            if need_audit:
                audit_logger = AuditLogger(database)
        except (DatabaseError, EncryptionError, sqlite3.Error, OSError) as exc:
            logger.error("Failed to initialize analysis storage: %s", exc)
            logger.warning("Continuing without cache or audit trail")

    service = AnalysisService(generator, repository, audit_logger)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "llm_enabled": generator.uses_llm,
            "model": generator.model,
            "cache_enabled": repository is not None,
            "audit_enabled": audit_logger is not None,
        }
        if repository is not None:
            status["cache_ttl_seconds"] = repository.ttl_seconds
        return status

    register_analysis_tools(server, service, audit_logger)
    logger.info("Analysis tools registered")

    # --- Register HTTP route ---
    @server.custom_route("/ai-analysis", methods=["POST", "OPTIONS"])
    async def ai_analysis(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response("ok", headers=CORS_HEADERS)
        try:
            body = await request.json()
        except ValueError:
            body = None
        try:
            status, payload = await handle_analysis_request(service, body)
        except Exception as exc:
            logger.exception("Unhandled error in /ai-analysis")
            status, payload = 500, {"error": str(exc), "fallback": default_analysis().to_dict()}
        return JSONResponse(payload, status_code=status, headers=CORS_HEADERS)

    return server


# Module-level instance for FastMCP discovery ("server": "...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
