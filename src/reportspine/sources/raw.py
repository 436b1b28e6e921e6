"""
Raw tables: the literal result of a fetch before any interpretation.

Two inputs produce a :class:`RawTable`:

- the remote values API, whose body is ``{"values": [[...], ...]}`` with the
  first row as headers (:meth:`RawTable.from_payload`);
- a user-supplied CSV blob (:func:`parse_csv_text`), so a source can be
  loaded from a file instead of the remote API.
"""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from typing import Any, Sequence

from reportspine.core.errors import EmptySourceError, MalformedResponseError


def _cell_text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell)


@dataclass(frozen=True)
class RawTable:
    """Header row plus data rows, all cells as text.

    Data rows may be ragged: the values API omits trailing empty cells.
    """

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...] = ()

    @classmethod
    def from_rows(cls, headers: Sequence[Any], rows: Sequence[Sequence[Any]] = ()) -> RawTable:
        return cls(
            headers=tuple(_cell_text(h) for h in headers),
            rows=tuple(tuple(_cell_text(c) for c in row) for row in rows),
        )

    @classmethod
    def from_payload(cls, payload: Any, *, tab: str = "", require_data_rows: bool = False) -> RawTable:
        """Build a table from a values API response body.

        Raises:
            MalformedResponseError: The body is not an object, or ``values``
                is not a list of lists.
            EmptySourceError: ``values`` is missing or empty, or
                ``require_data_rows`` is set and there is no data row.
        """
        if not isinstance(payload, dict):
            raise MalformedResponseError(f'Sheet "{tab}" returned an unexpected response body.')

        values = payload.get("values")
        if not values:
            raise EmptySourceError(f'Sheet "{tab}" is empty or has no data.')
        if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
            raise MalformedResponseError(f'Sheet "{tab}" returned values that are not a list of rows.')

        if len(values) < 2 and require_data_rows:
            raise EmptySourceError(f'Sheet "{tab}" requires at least one header row and one data row.')

        return cls.from_rows(values[0], values[1:])

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def __len__(self) -> int:
        return len(self.rows)


def parse_csv_text(text: str) -> RawTable:
    """
    Parse a delimited-text blob into a RawTable.

    Lines are split on ``\\r?\\n`` and blank lines dropped before parsing, so
    quoted fields cannot span lines. Quoting follows RFC 4180 (``""`` is an
    escaped quote) and every cell is trimmed. A blob with fewer than two
    non-blank lines yields a table with no data rows.
    """
    lines = [line for line in re.split(r"\r?\n", text.strip()) if line.strip()]
    if not lines:
        return RawTable(headers=())

    reader = csv.reader(lines, delimiter=",", quotechar='"', doublequote=True, skipinitialspace=True)
    parsed = [[cell.strip() for cell in row] for row in reader]
    if len(parsed) < 2:
        return RawTable.from_rows(parsed[0])
    return RawTable.from_rows(parsed[0], parsed[1:])
