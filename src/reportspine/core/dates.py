"""
Lenient date parsing for sheet cells.

Different people maintain different sheets, so the same column may hold
``2025-08-01``, ``8/1/2025`` or ``August 2025``. :func:`parse_date` tries each
known format in turn and returns ``None`` rather than raising.
"""

from __future__ import annotations

from datetime import datetime

# Ordered by specificity
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%B %Y",
    "%b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
]


def parse_date(value: object) -> datetime | None:
    """Parse a cell into a naive datetime, or None if no format matches."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def date_sort_key(value: object) -> tuple[int, datetime]:
    """Sort key placing unparsable dates first, then chronological order."""
    parsed = parse_date(value)
    if parsed is None:
        return (0, datetime.min)
    return (1, parsed)
