"""Tests for the shared error taxonomy."""

from __future__ import annotations

import pytest

from maxpulse.core.errors import AnalysisError, AnalysisRequestError, ErrorKind


class TestErrorKind:
    @pytest.mark.parametrize("kind", [ErrorKind.TIMEOUT, ErrorKind.API_ERROR, ErrorKind.NETWORK_ERROR])
    def test_transient_kinds_are_retryable(self, kind):
        assert kind.retryable is True

    @pytest.mark.parametrize("kind", [ErrorKind.RATE_LIMIT, ErrorKind.INVALID_INPUT])
    def test_terminal_kinds_are_not_retryable(self, kind):
        assert kind.retryable is False

    def test_every_kind_has_user_message(self):
        for kind in ErrorKind:
            assert kind.user_message

    def test_string_value(self):
        assert ErrorKind("TIMEOUT") is ErrorKind.TIMEOUT
        assert ErrorKind.TIMEOUT == "TIMEOUT"


class TestAnalysisError:
    def test_from_kind_copies_retryable(self):
        err = AnalysisError.from_kind(ErrorKind.TIMEOUT)
        assert err.code is ErrorKind.TIMEOUT
        assert err.retryable is True
        assert err.message == ErrorKind.TIMEOUT.user_message

    def test_custom_message(self):
        err = AnalysisError.from_kind(ErrorKind.API_ERROR, "upstream 502")
        assert err.message == "upstream 502"

    def test_to_dict(self):
        d = AnalysisError.from_kind(ErrorKind.RATE_LIMIT).to_dict()
        assert d["code"] == "RATE_LIMIT"
        assert d["retryable"] is False
        assert d["timestamp"]


class TestAnalysisRequestError:
    def test_carries_error(self):
        exc = AnalysisRequestError.from_kind(ErrorKind.INVALID_INPUT)
        assert exc.error.code is ErrorKind.INVALID_INPUT
        assert "INVALID_INPUT" in str(exc)
