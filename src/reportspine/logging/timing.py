"""
Timing utilities that log step start/end with duration and span ids.

Usage:
    with log_step("refresh.source", source_id="analytics") as timer:
        outcome = await processor.run(context)
        timer.add_metric("records", outcome.record_count)

    # DEBUG refresh.source.start span_id=a1b2c3d4 source_id=analytics
    # INFO  refresh.source.end   span_id=a1b2c3d4 duration_ms=812.4 records=37
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from reportspine.logging.context import generate_span_id, get_context, get_logger, push_context


@dataclass
class TimingResult:
    """Result of a timed operation with tracing support."""

    step: str
    span_id: str = field(default_factory=generate_span_id)
    parent_span_id: str | None = None
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    status: str = "ok"
    error_info: dict[str, Any] | None = None

    def stop(self) -> TimingResult:
        """Record end time."""
        if self.ended_at is None:
            self.ended_at = time.perf_counter()
        return self

    @property
    def duration_ms(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000

    def add_metric(self, key: str, value: Any) -> TimingResult:
        """Add a metric to include in the log output."""
        self.metrics[key] = value
        return self

    def set_error(self, e: BaseException) -> TimingResult:
        """Record error information."""
        self.status = "error"
        self.error_info = {"error_type": type(e).__name__, "error": str(e)}
        return self

    def to_log_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "duration_ms": round(self.duration_ms, 2),
            "span_id": self.span_id,
            "status": self.status,
        }
        if self.parent_span_id:
            result["parent_span_id"] = self.parent_span_id
        result.update(self.metrics)
        if self.error_info:
            result.update(self.error_info)
        return result


@contextmanager
def log_step(
    event: str,
    log_start: bool = True,
    level: str = "info",
    log_errors: bool = True,
    **extra_metrics: Any,
) -> Iterator[TimingResult]:
    """
    Context manager that logs ``<event>.start`` (debug) and ``<event>.end``.

    On an exception the end entry is logged at error level as
    ``<event>.error`` and the exception propagates. Callers that report the
    failure themselves pass ``log_errors=False``; the timer still records it.
    """
    log = get_logger("reportspine.timing")
    parent_span = get_context().span_id
    timer = TimingResult(step=event, parent_span_id=parent_span, metrics=dict(extra_metrics))
    token = push_context(span_id=timer.span_id, parent_span_id=parent_span, step=event)

    try:
        if log_start:
            log.debug(f"{event}.start", span_id=timer.span_id, **extra_metrics)
        yield timer
    except Exception as e:
        timer.stop()
        timer.set_error(e)
        if log_errors:
            log.error(f"{event}.error", **timer.to_log_dict())
        raise
    finally:
        timer.stop()
        token.restore()

    getattr(log, level)(f"{event}.end", **timer.to_log_dict())
