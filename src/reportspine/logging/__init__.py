"""
Structured, refresh-aware logging.

Usage:
    from reportspine.logging import configure_logging, get_logger, log_step

    configure_logging()
    log = get_logger(__name__)

    with log_step("normalize", source_id="analytics"):
        ...
"""

from reportspine.logging.config import configure_logging, is_configured
from reportspine.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
    set_context,
)
from reportspine.logging.timing import TimingResult, log_step

__all__ = [
    "configure_logging",
    "is_configured",
    "get_logger",
    "set_context",
    "bind_context",
    "clear_context",
    "get_context",
    "push_context",
    "LogContext",
    "TimingResult",
    "log_step",
]
