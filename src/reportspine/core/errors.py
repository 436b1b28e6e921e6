"""
Structured error types for the report-spine ingestion pipeline.

Every failure a source can hit during a refresh is expressed as a typed
error carrying its category, its retry semantics and the locator it was
raised for. The resilient fetcher consults ``retryable`` to decide whether
to back off and try again; the orchestrator records ``str(error)`` as the
source's user-facing message.

Manifesto:
    - **Typed Error Hierarchy:** Transport, payload and schema failures are
      different classes, never a generic ``Exception``
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry the source id, tab and HTTP status
    - **Error Chaining:** Underlying exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      ReportSpineError                           │
        │  (category, retryable, retry_after, context, cause)            │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  TransientError       PermanentError        SchemaError         │
        │  (retryable=True)     (SOURCE)              (VALIDATION)        │
        │       │                    │                                    │
        │  NetworkError         EmptySourceError      ConfigError         │
        │  RateLimitError       MalformedResponseError (CONFIG)           │
        │  UpstreamServerError  SourceRejectedError        │              │
        │                       NoDataError           MissingLocatorError │
        └─────────────────────────────────────────────────────────────────┘

    Row-level problems have no class on purpose: malformed rows are dropped
    by the normalizer and never reported.

Examples:
    >>> error = TransientError("Connection reset")
    >>> error.retryable
    True

    >>> error = SchemaError(("Clients", "Date"))
    >>> str(error)
    'Missing required headers: Clients, Date.'

    >>> error = PermanentError("Sheet is empty").with_context(source_id="budget_status")
    >>> error.context.source_id
    'budget_status'

Usage:
    from reportspine.core.errors import TransientError, PermanentError

    try:
        response = await client.get(url)
    except httpx.TransportError as e:
        raise NetworkError(str(e), cause=e)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    - **NETWORK:** transport failures, 5xx and 429 responses (retryable)
    - **SOURCE:** the fetch succeeded but the payload is unusable
    - **VALIDATION:** the payload is usable but mandatory columns are missing
    - **CONFIG:** locators or settings are missing or invalid
    - **INTERNAL:** anything else
    """

    NETWORK = "NETWORK"
    SOURCE = "SOURCE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error for logging.

    Attributes:
        source_id: Pipeline source the error belongs to (e.g. "analytics")
        tab: Tab or range name inside the remote spreadsheet
        url: URL that was being accessed
        http_status: HTTP status code if applicable
        refresh_id: Refresh cycle identifier
        metadata: Additional key-value pairs
    """

    source_id: str | None = None
    tab: str | None = None
    url: str | None = None
    http_status: int | None = None
    refresh_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["source_id", "tab", "url", "http_status", "refresh_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ReportSpineError(Exception):
    """
    Base exception for all report-spine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    only pass a message in the common case. ``str(error)`` is the message
    shown to the user for the failing source, so it must be readable on its
    own.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: float | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ReportSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PermanentError("Sheet is empty").with_context(
                source_id="analytics", tab="GA4"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Retryable)
# =============================================================================


class TransientError(ReportSpineError):
    """
    Temporary transport condition that may succeed on retry.

    Raised for connection failures, timeouts, HTTP 5xx and rate limiting.
    The resilient fetcher retries these and only lets the last one escape
    once its attempts are exhausted.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """Connection, DNS or timeout failure below HTTP."""


class UpstreamServerError(TransientError):
    """The remote API answered with a 5xx status."""


class RateLimitError(TransientError):
    """The remote API answered 429."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: float | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, retry_after=retry_after, **kwargs)


# =============================================================================
# PERMANENT ERRORS (fetch succeeded, payload unusable)
# =============================================================================


class PermanentError(ReportSpineError):
    """
    The remote call completed but its payload cannot be used.

    Never retried: asking again returns the same empty sheet or the same
    403.
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class EmptySourceError(PermanentError):
    """No ``values``, no header row, or too few rows for a load-bearing source."""


class MalformedResponseError(PermanentError):
    """Response body is not JSON or ``values`` is not a list of rows."""


class SourceRejectedError(PermanentError):
    """HTTP 4xx other than 429: permissions, bad id, bad tab name."""


class NoDataError(PermanentError):
    """A load-bearing source normalized to zero records."""

    def __init__(self, message: str = "No data found. Check source.", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# SCHEMA ERRORS
# =============================================================================


class SchemaError(ReportSpineError):
    """
    The header row lacks one or more mandatory columns.

    ``missing_headers`` keeps the order the schema declares them in, so the
    message is identical on every run for the same sheet.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(self, missing_headers: tuple[str, ...] | list[str], message: str | None = None, **kwargs: Any):
        self.missing_headers = tuple(missing_headers)
        super().__init__(
            message or f"Missing required headers: {', '.join(self.missing_headers)}.",
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["missing_headers"] = list(self.missing_headers)
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(ReportSpineError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingLocatorError(ConfigError):
    """A source has no spreadsheet id or tab name configured."""

    def __init__(self, source_id: str, message: str | None = None):
        self.source_id = source_id
        super().__init__(message or "Please provide a valid Spreadsheet ID and Sheet Name.")
        self.context.source_id = source_id


# =============================================================================
# HELPERS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """
    Return True if an exception describes a retryable transport condition.

    Raw ``httpx`` transport failures and timeouts count as retryable even
    when they were not wrapped in a :class:`TransientError`.
    """
    if isinstance(error, ReportSpineError):
        return error.retryable
    return isinstance(error, (httpx.TransportError, httpx.TimeoutException))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Return the category of an exception, INTERNAL for foreign ones."""
    if isinstance(error, ReportSpineError):
        return error.category
    if isinstance(error, (httpx.TransportError, httpx.TimeoutException)):
        return ErrorCategory.NETWORK
    return ErrorCategory.INTERNAL
