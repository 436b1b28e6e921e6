"""
Header matching strategies.

A source schema declares *what* fields it wants; a :class:`HeaderMatcher`
decides *which columns* supply them. Two strategies exist:

``ExactSet``
    Trimmed, case-sensitive equality between the sheet header and the
    declared header text. A header may feed several columns (duplicates)
    and several declared headers may feed one field (``Clients`` /
    ``Client Name``).

``PatternSet``
    Each declared header is a *role* resolved by a case-insensitive regular
    expression searched in the trimmed header text. The first matching
    column wins. Used by sheets whose column titles drift between
    maintainers (``Client Name`` vs ``Clients``, ``Check Date`` vs
    ``Last Checked``).

Both return the same binding shape, so the normalizer never branches on
which strategy a schema uses.

Example:
    >>> matcher = PatternSet([HeaderPattern("client", r"client(s| name)", "Clients")])
    >>> matcher.missing(["Client Name", "Status"])
    ()
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence


class HeaderMatcher(ABC):
    """Resolves declared header names to column indices."""

    @abstractmethod
    def missing(self, headers: Sequence[str]) -> tuple[str, ...]:
        """Labels of mandatory headers absent from ``headers``, in declaration order."""
        ...

    @abstractmethod
    def columns_for(self, name: str, headers: Sequence[str]) -> list[int]:
        """Column indices supplying the declared header ``name``."""
        ...

    def bind(self, names: Sequence[str], headers: Sequence[str]) -> list[tuple[int, str]]:
        """
        Resolve every declared name against ``headers``.

        Returns ``(column_index, name)`` pairs ordered by column, so a later
        column feeding the same field overwrites an earlier one.
        """
        pairs = [(index, name) for name in names for index in self.columns_for(name, headers)]
        return sorted(pairs, key=lambda pair: pair[0])


@dataclass(frozen=True)
class ExactSet(HeaderMatcher):
    """
    Exact trimmed-header matching.

    Attributes:
        required: Headers that must all be present.
        one_of: Groups where at least one header of each group must be
            present, e.g. ``(("Clients", "Client Name"),)``.
    """

    required: tuple[str, ...] = ()
    one_of: tuple[tuple[str, ...], ...] = ()

    def missing(self, headers: Sequence[str]) -> tuple[str, ...]:
        present = {h.strip() for h in headers}
        missing = [name for name in self.required if name not in present]
        for group in self.one_of:
            if not any(name in present for name in group):
                missing.append(" or ".join(group))
        return tuple(missing)

    def columns_for(self, name: str, headers: Sequence[str]) -> list[int]:
        return [i for i, header in enumerate(headers) if header.strip() == name]


@dataclass(frozen=True)
class HeaderPattern:
    """One pattern-resolved role.

    Attributes:
        role: Name the schema's field specs refer to.
        pattern: Regular expression searched case-insensitively.
        label: Human-readable header name used in error messages.
        required: Whether the role must resolve.
    """

    role: str
    pattern: str
    label: str
    required: bool = True

    def matches(self, header: str) -> bool:
        return re.search(self.pattern, header.strip(), re.IGNORECASE) is not None


class PatternSet(HeaderMatcher):
    """Case-insensitive regular-expression matching, first column wins."""

    def __init__(self, patterns: Sequence[HeaderPattern] = ()):
        self.patterns: tuple[HeaderPattern, ...] = tuple(patterns)

    def __repr__(self) -> str:
        return f"PatternSet({[p.role for p in self.patterns]!r})"

    def pattern_for(self, role: str) -> HeaderPattern | None:
        for pattern in self.patterns:
            if pattern.role == role:
                return pattern
        return None

    def find(self, role: str, headers: Sequence[str]) -> int | None:
        """Index of the first header matching ``role``, or None."""
        pattern = self.pattern_for(role)
        if pattern is None:
            return None
        for i, header in enumerate(headers):
            if pattern.matches(header):
                return i
        return None

    def find_all(self, role: str, headers: Sequence[str]) -> list[int]:
        """Indices of every header matching ``role``."""
        pattern = self.pattern_for(role)
        if pattern is None:
            return []
        return [i for i, header in enumerate(headers) if pattern.matches(header)]

    def missing(self, headers: Sequence[str]) -> tuple[str, ...]:
        return tuple(
            p.label for p in self.patterns if p.required and self.find(p.role, headers) is None
        )

    def columns_for(self, name: str, headers: Sequence[str]) -> list[int]:
        index = self.find(name, headers)
        return [] if index is None else [index]
