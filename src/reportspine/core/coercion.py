"""
Cell coercion functions.

Sheets maintained by hand mix ``$1,234.50``, ``1234.5`` and ``-`` in the
same column. Every function here is total: empty, missing or unparsable
input becomes ``0`` instead of raising, so one garbled cell never costs the
whole row.

Parsing follows the permissive "leading number" rule: the longest numeric
prefix of the cleaned text is used (``"12abc"`` -> ``12.0``) and text with no
numeric prefix is ``0``.

Usage:
    from reportspine.core.coercion import to_currency, to_percentage

    to_currency("$1,234.50")   # 1234.5
    to_percentage("40%")       # 40.0
    to_currency("-")           # 0
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Callable

Cell = str | int | float | None

_LEADING_FLOAT = re.compile(r"[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")
_LEADING_INT = re.compile(r"[+-]?\d+")


class CoercionKind(str, Enum):
    """How a mapped cell is converted into a typed value."""

    STRING = "string"
    INTEGER = "integer"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    FLOAT = "float"


def _as_text(value: Cell) -> str:
    # Falsy input (None, "", 0) reads as "0"
    if not value:
        return "0"
    return str(value)


def _leading_float(text: str) -> float:
    match = _LEADING_FLOAT.match(text.lstrip())
    if match is None:
        return 0
    result = float(match.group(0))
    if math.isnan(result) or math.isinf(result) or result == 0:
        return 0
    return result


def to_integer(value: Cell) -> int:
    """Parse the leading integer after removing thousands separators."""
    match = _LEADING_INT.match(_as_text(value).replace(",", "").lstrip())
    if match is None:
        return 0
    return int(match.group(0))


def to_currency(value: Cell) -> float:
    """Strip ``$`` and ``,`` and parse the leading float."""
    return _leading_float(re.sub(r"[$,]", "", _as_text(value)))


def to_float(value: Cell) -> float:
    """Strip ``,`` and parse the leading float."""
    return _leading_float(_as_text(value).replace(",", ""))


def to_percentage(value: Cell) -> float:
    """Strip the ``%`` sign and parse the leading float (``"40%"`` -> ``40.0``)."""
    return _leading_float(_as_text(value).replace("%", "", 1))


def to_string(value: Cell) -> str:
    """Return the cell text, or an empty string for a missing cell."""
    if value is None:
        return ""
    return str(value)


COERCIONS: dict[CoercionKind, Callable[[Cell], Any]] = {
    CoercionKind.STRING: to_string,
    CoercionKind.INTEGER: to_integer,
    CoercionKind.CURRENCY: to_currency,
    CoercionKind.PERCENTAGE: to_percentage,
    CoercionKind.FLOAT: to_float,
}


def coerce(kind: CoercionKind, value: Cell) -> Any:
    """Apply the coercion function registered for ``kind``."""
    return COERCIONS[kind](value)
