"""
Tests for the report-spine error hierarchy.

Tests cover:
- Category and retry defaults per error family
- Context attachment and serialization
- The user-facing messages sources record on failure
- is_retryable / categorize_error on foreign exceptions
"""

import httpx
import pytest

from reportspine.core.errors import (
    ConfigError,
    EmptySourceError,
    ErrorCategory,
    ErrorContext,
    MalformedResponseError,
    MissingLocatorError,
    NetworkError,
    NoDataError,
    PermanentError,
    RateLimitError,
    ReportSpineError,
    SchemaError,
    SourceRejectedError,
    TransientError,
    UpstreamServerError,
    categorize_error,
    is_retryable,
)


class TestErrorContext:
    """Tests for ErrorContext dataclass."""

    def test_empty_context_serializes_to_empty_dict(self):
        assert ErrorContext().to_dict() == {}

    def test_to_dict_skips_none_and_merges_metadata(self):
        ctx = ErrorContext(source_id="analytics", http_status=503, metadata={"attempt": 3})
        assert ctx.to_dict() == {"source_id": "analytics", "http_status": 503, "attempt": 3}


class TestReportSpineError:
    """Tests for the base error."""

    def test_defaults(self):
        error = ReportSpineError("boom")
        assert str(error) == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.retry_after is None

    def test_with_context_sets_known_fields_and_metadata(self):
        error = ReportSpineError("boom").with_context(source_id="ads", tab="Ads", attempt=2)
        assert error.context.source_id == "ads"
        assert error.context.tab == "Ads"
        assert error.context.metadata == {"attempt": 2}

    def test_with_context_returns_same_instance(self):
        error = ReportSpineError("boom")
        assert error.with_context(source_id="x") is error

    def test_cause_is_chained(self):
        original = ValueError("bad")
        error = ReportSpineError("wrapped", cause=original)
        assert error.cause is original
        assert error.__cause__ is original

    def test_to_dict(self):
        error = RateLimitError(retry_after=5).with_context(source_id="users")
        data = error.to_dict()
        assert data["error_type"] == "RateLimitError"
        assert data["category"] == "NETWORK"
        assert data["retryable"] is True
        assert data["retry_after"] == 5
        assert data["context"] == {"source_id": "users"}


class TestTransientErrors:
    """Transport failures are retryable network errors."""

    @pytest.mark.parametrize("cls", [NetworkError, UpstreamServerError, RateLimitError])
    def test_retryable(self, cls):
        error = cls("temporary")
        assert isinstance(error, TransientError)
        assert error.retryable is True
        assert error.category == ErrorCategory.NETWORK

    def test_rate_limit_default_message(self):
        assert str(RateLimitError()) == "Rate limit exceeded"


class TestPermanentErrors:
    """Payload failures are never retried."""

    @pytest.mark.parametrize("cls", [EmptySourceError, MalformedResponseError, SourceRejectedError])
    def test_not_retryable(self, cls):
        error = cls("nope")
        assert isinstance(error, PermanentError)
        assert error.retryable is False
        assert error.category == ErrorCategory.SOURCE

    def test_no_data_message(self):
        assert str(NoDataError()) == "No data found. Check source."


class TestSchemaError:
    """Missing-header messages are stable and ordered."""

    def test_message_lists_headers_in_order(self):
        error = SchemaError(["Clients", "Date"])
        assert str(error) == "Missing required headers: Clients, Date."
        assert error.missing_headers == ("Clients", "Date")
        assert error.category == ErrorCategory.VALIDATION

    def test_to_dict_includes_missing_headers(self):
        assert SchemaError(("PPC",)).to_dict()["missing_headers"] == ["PPC"]


class TestConfigErrors:
    """Configuration problems."""

    def test_missing_locator_message(self):
        error = MissingLocatorError("analytics")
        assert isinstance(error, ConfigError)
        assert str(error) == "Please provide a valid Spreadsheet ID and Sheet Name."
        assert error.source_id == "analytics"
        assert error.context.source_id == "analytics"
        assert error.retryable is False


class TestHelpers:
    """is_retryable and categorize_error."""

    def test_is_retryable_for_own_errors(self):
        assert is_retryable(NetworkError("x")) is True
        assert is_retryable(SchemaError(("a",))) is False

    def test_httpx_transport_errors_are_retryable(self):
        assert is_retryable(httpx.ConnectError("refused")) is True
        assert is_retryable(httpx.ReadTimeout("slow")) is True

    def test_foreign_errors_are_not_retryable(self):
        assert is_retryable(ValueError("x")) is False

    def test_categorize(self):
        assert categorize_error(MissingLocatorError("a")) == ErrorCategory.CONFIG
        assert categorize_error(httpx.ConnectError("refused")) == ErrorCategory.NETWORK
        assert categorize_error(KeyError("x")) == ErrorCategory.INTERNAL
