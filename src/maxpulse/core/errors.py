"""Error taxonomy shared by the LLM layer, the analysis service and its clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Failure kinds surfaced by the analysis pipeline."""

    TIMEOUT = "TIMEOUT"
    API_ERROR = "API_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    INVALID_INPUT = "INVALID_INPUT"
    NETWORK_ERROR = "NETWORK_ERROR"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self]


_RETRYABLE = frozenset({ErrorKind.TIMEOUT, ErrorKind.API_ERROR, ErrorKind.NETWORK_ERROR})

_USER_MESSAGES = {
    ErrorKind.TIMEOUT: "Analysis timed out. Please try again.",
    ErrorKind.API_ERROR: "AI analysis temporarily unavailable. Please try again later.",
    ErrorKind.RATE_LIMIT: "Too many requests. Please try again in an hour.",
    ErrorKind.INVALID_INPUT: "The assessment data could not be analyzed.",
    ErrorKind.NETWORK_ERROR: "Network problem while contacting the analysis service.",
}


@dataclass(frozen=True)
class AnalysisError:
    """Typed error object handed to UI-facing callers instead of a raw exception."""

    code: ErrorKind
    message: str
    retryable: bool
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @classmethod
    def from_kind(cls, kind: ErrorKind, message: str | None = None) -> AnalysisError:
        return cls(code=kind, message=message or kind.user_message, retryable=kind.retryable)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "timestamp": self.timestamp,
        }


class AnalysisRequestError(Exception):
    """Raised by outer request wrappers when no analysis can be returned."""

    def __init__(self, error: AnalysisError) -> None:
        super().__init__(f"{error.code.value}: {error.message}")
        self.error = error

    @classmethod
    def from_kind(cls, kind: ErrorKind, message: str | None = None) -> AnalysisRequestError:
        return cls(AnalysisError.from_kind(kind, message))
