"""
Logging context management using contextvars.

Refresh-aware context (refresh id, source id, step, attempt) is attached to
every log entry without passing it through each call. contextvars are
asyncio-compatible, so a coroutine suspended at a fetch keeps its own
context when it resumes.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass
from typing import Any

import structlog


def generate_span_id() -> str:
    """Generate a short span ID (8 hex chars)."""
    return uuid.uuid4().hex[:8]


@dataclass
class LogContext:
    """
    Context attached to all log entries.

    Attributes:
        refresh_id: Identifier of the running refresh cycle
        source_id: Source currently being processed
        step: Current processing step name
        span_id: Current span identifier
        parent_span_id: Parent span for nested operations
        attempt: Fetch attempt number (default 1)
    """

    refresh_id: str | None = None
    source_id: str | None = None
    step: str | None = None
    span_id: str | None = None
    parent_span_id: str | None = None
    attempt: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict (excludes attempt=1 default)."""
        result = {}
        for k, v in asdict(self).items():
            if v is None:
                continue
            if k == "attempt" and v == 1:
                continue
            result[k] = v
        return result

    def merge(self, **kwargs: Any) -> LogContext:
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None and k in current})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("reportspine_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def set_context(
    refresh_id: str | None = None,
    source_id: str | None = None,
    step: str | None = None,
    attempt: int = 1,
) -> LogContext:
    """
    Replace the current log context.

    Use bind_context() to add to the existing one instead.
    """
    ctx = LogContext(refresh_id=refresh_id, source_id=source_id, step=step, attempt=attempt)
    _log_context.set(ctx)
    return ctx


def bind_context(**kwargs: Any) -> LogContext:
    """Merge values into the current context and return it."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Reset the current context to empty."""
    _log_context.set(LogContext())


class ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token: Token[LogContext]):
        self._token = token

    def restore(self) -> None:
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs: Any) -> ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(source_id="analytics")
        try:
            await processor.run()
        finally:
            token.restore()
    """
    updated = get_context().merge(**kwargs)
    return ContextToken(_log_context.set(updated))


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that adds the current context to every entry."""
    for key, value in get_context().to_dict().items():
        if key not in event_dict:
            event_dict[key] = value
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)
