"""
Result envelope for normalization outcomes.

The normalizer returns ``Ok(records)`` or ``Err(SchemaError(...))`` instead
of raising, so a schema problem is a value the processor inspects rather
than control flow that might escape a refresh. The processor calls
``unwrap()`` at the boundary where a failure becomes a per-source error.

Examples:
    >>> from reportspine.core.result import Ok, Err
    >>> Ok(10).unwrap()
    10

    Pattern matching on an outcome:

    >>> match normalize(schema, table):
    ...     case Ok(records):
    ...         publish(records)
    ...     case Err(error):
    ...         record_error(str(error))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    ``unwrap`` re-raises the wrapped exception unchanged.
    """

    error: Exception

    def unwrap(self) -> T:
        """Raise the wrapped error."""
        raise self.error

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]
