"""
Normalizer: apply a SourceSchema to a RawTable.

``normalize(schema, table)`` returns ``Ok(NormalizedRecords)`` or
``Err(SchemaError)``; it never raises for bad data.

Rules, in order:

1. Every mandatory header must resolve, otherwise ``Err(SchemaError)``
   naming exactly the missing headers in declaration order. No partial
   data is returned.
2. A row whose cells are all blank is skipped.
3. Each bound column is coerced into its target field; unbound columns
   are ignored. Cells past the end of a ragged row read as missing.
4. The schema's ``finalize`` hook may enrich the record or drop it.
5. A record whose key field is blank is dropped.
6. Grouping: single-record sources keep the last row per key;
   multi-valued sources keep every row per key, stable-sorted by
   ``date_field`` when one is declared.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from reportspine.core.coercion import coerce
from reportspine.core.dates import date_sort_key
from reportspine.core.errors import SchemaError
from reportspine.core.result import Err, Ok, Result
from reportspine.logging import get_logger
from reportspine.schema.registry import OutputShape, RowView, SourceSchema, TypedRecord
from reportspine.sources.raw import RawTable

logger = get_logger(__name__)


def is_blank_row(row: tuple[str, ...] | list[str]) -> bool:
    """True for an empty row or one whose cells are all whitespace."""
    return all(not cell or not cell.strip() for cell in row)


@dataclass(frozen=True)
class NormalizedRecords:
    """
    Typed records for one source.

    Attributes:
        records: Kept records in row order.
        grouped: ``key -> record`` (single) or ``key -> [records]`` (multi-valued).
        skipped_blank: Fully blank rows skipped.
        skipped_keyless: Rows dropped for a blank key or by ``finalize``.
    """

    schema: SourceSchema
    records: tuple[TypedRecord, ...] = ()
    grouped: dict[str, Any] = field(default_factory=dict)
    skipped_blank: int = 0
    skipped_keyless: int = 0

    def __len__(self) -> int:
        return len(self.records)

    def as_list(self) -> list[TypedRecord]:
        """
        Flatten to a list.

        Single-record sources give one record per key. Multi-valued sources
        give every record; with a ``date_field`` they come key by key in date
        order, otherwise in row order.
        """
        if not self.schema.multi_valued:
            return list(self.grouped.values())
        if self.schema.date_field is None:
            return list(self.records)
        return [record for history in self.grouped.values() for record in history]

    def published(self) -> Any:
        """The value a consumer reads for this source."""
        if self.schema.output is OutputShape.LIST:
            return self.as_list()
        return dict(self.grouped)


def build_record(schema: SourceSchema, bindings: list[tuple[int, str]], row: tuple[str, ...]) -> TypedRecord:
    record: TypedRecord = {}
    for index, header in bindings:
        cell = row[index] if index < len(row) else None
        for spec in schema.specs_for(header):
            record[spec.field] = coerce(spec.kind, cell)
    return record


def empty_result(schema: SourceSchema) -> NormalizedRecords:
    return NormalizedRecords(schema=schema)


def normalize(schema: SourceSchema, table: RawTable) -> Result[NormalizedRecords]:
    """Normalize ``table`` under ``schema``."""
    missing = schema.matcher.missing(table.headers)
    if missing:
        if schema.lenient_headers:
            logger.debug("normalize.headers_missing", source_id=schema.source_id, missing=list(missing))
            return Ok(empty_result(schema))
        error = SchemaError(missing).with_context(source_id=schema.source_id)
        logger.warning("normalize.schema_error", source_id=schema.source_id, missing=list(missing))
        return Err(error)

    bindings = schema.matcher.bind(schema.headers, table.headers)
    records: list[TypedRecord] = []
    skipped_blank = 0
    skipped_keyless = 0

    for row in table.rows:
        if is_blank_row(row):
            skipped_blank += 1
            continue

        record = build_record(schema, bindings, row)
        if schema.finalize is not None:
            record = schema.finalize(record, RowView(table.headers, row, schema.matcher))
            if record is None:
                skipped_keyless += 1
                continue

        key = record.get(schema.key_field)
        if not isinstance(key, str) or not key.strip():
            skipped_keyless += 1
            continue
        records.append(record)

    if skipped_keyless:
        logger.debug("normalize.rows_dropped", source_id=schema.source_id, dropped=skipped_keyless)

    return Ok(
        NormalizedRecords(
            schema=schema,
            records=tuple(records),
            grouped=group_records(schema, records),
            skipped_blank=skipped_blank,
            skipped_keyless=skipped_keyless,
        )
    )


def group_records(schema: SourceSchema, records: list[TypedRecord]) -> dict[str, Any]:
    """Group records by key: last row wins, or ordered lists for multi-valued sources."""
    if not schema.multi_valued:
        grouped: dict[str, TypedRecord] = {}
        for record in records:
            grouped[record[schema.key_field]] = record
        return grouped

    history: dict[str, list[TypedRecord]] = {}
    for record in records:
        history.setdefault(record[schema.key_field], []).append(record)
    if schema.date_field is not None:
        date_field = schema.date_field
        for items in history.values():
            items.sort(key=lambda r: date_sort_key(r.get(date_field)))
    return history
