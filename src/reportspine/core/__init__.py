"""Report Spine core: errors, result envelope, coercion, dates, settings.

Architecture::

    errors.py      Typed error hierarchy (TransientError / PermanentError / SchemaError)
    result.py      Result[T] envelope (Ok / Err)
    coercion.py    Total cell coercions (integer, currency, percentage, float)
    dates.py       Lenient date parsing and sort keys
    settings.py    pydantic-settings configuration (REPORTSPINE_*)

``settings`` is not re-exported here; import it from
``reportspine.core.settings``.
"""

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
from reportspine.core.result import Err, Ok, Result
from reportspine.core.coercion import (
    CoercionKind,
    coerce,
    to_currency,
    to_float,
    to_integer,
    to_percentage,
    to_string,
)
from reportspine.core.dates import date_sort_key, parse_date

__all__ = [
    "ConfigError",
    "EmptySourceError",
    "ErrorCategory",
    "ErrorContext",
    "MalformedResponseError",
    "MissingLocatorError",
    "NetworkError",
    "NoDataError",
    "PermanentError",
    "RateLimitError",
    "ReportSpineError",
    "SchemaError",
    "SourceRejectedError",
    "TransientError",
    "UpstreamServerError",
    "categorize_error",
    "is_retryable",
    "Err",
    "Ok",
    "Result",
    "CoercionKind",
    "coerce",
    "to_currency",
    "to_float",
    "to_integer",
    "to_percentage",
    "to_string",
    "date_sort_key",
    "parse_date",
]
