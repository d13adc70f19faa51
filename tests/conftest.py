"""Shared test fixtures for MaxPulse analysis tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("CACHE_DB_PATH", str(tmp_path / "analysis.db"))
    monkeypatch.setenv("CACHE_ENCRYPTION_KEY", "")
    monkeypatch.setenv("LLM_RETRY_BASE_DELAY_SECONDS", "0")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from maxpulse.domains.assessment.models import AnalysisInput  # noqa: E402


class FakeClock:
    """Settable UTC clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_input(**overrides) -> AnalysisInput:
    """Build an AnalysisInput from wire-format defaults plus overrides.

    Overrides use wire keys: ``age``, ``weight``, ``height``, ``gender``,
    the four metric names, ``assessmentType``, ``answers``, ``sessionId``.
    """
    demographics = {
        "age": overrides.pop("age", 42),
        "weight": overrides.pop("weight", 82),
        "height": overrides.pop("height", 178),
        "gender": overrides.pop("gender", "male"),
    }
    metrics = {
        "hydration": overrides.pop("hydration", 6),
        "sleep": overrides.pop("sleep", 4),
        "exercise": overrides.pop("exercise", 8),
        "nutrition": overrides.pop("nutrition", 7),
    }
    data = {
        "assessmentType": overrides.pop("assessmentType", "health"),
        "demographics": demographics,
        "healthMetrics": metrics,
        "answers": overrides.pop("answers", []),
    }
    data.update(overrides)
    return AnalysisInput.from_dict(data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_input() -> AnalysisInput:
    """Age 42, 82kg, 178cm, male; hydration 6, sleep 4, exercise 8, nutrition 7."""
    return make_input()


@pytest.fixture
def input_factory():
    return make_input


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def analysis_db():
    """Create an in-memory AnalysisDatabase for testing."""
    from maxpulse.core.storage.database import AnalysisDatabase

    db = AnalysisDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def cache_repository(analysis_db, clock):
    """AnalysisCacheRepository on in-memory SQLite with a fake clock."""
    from maxpulse.core.storage.repository import AnalysisCacheRepository

    return AnalysisCacheRepository(analysis_db, clock=clock)


@pytest.fixture
def audit_logger(analysis_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from maxpulse.core.audit.logger import AuditLogger

    return AuditLogger(analysis_db)


# ---------------------------------------------------------------------------
# LLM fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_provider():
    from maxpulse.core.llm.providers.mock import MockProvider

    return MockProvider()


@pytest.fixture
def no_retry():
    from maxpulse.core.llm.retry import RetryPolicy

    return RetryPolicy(max_attempts=1, base_delay_seconds=0)
