"""
Declarative source schemas and the registry that holds them.

A :class:`SourceSchema` is everything the normalizer needs to turn one
sheet into typed records: which headers are mandatory (via its
:class:`~reportspine.schema.matching.HeaderMatcher`), which header feeds
which field with which coercion (:class:`FieldSpec`), the key field rows
are grouped by, and whether a key owns one record or an ordered history.

Schemas are built once at import time and never mutated.

Usage:
    registry = SchemaRegistry()
    registry.register(SourceSchema(
        source_id="key_contacts",
        matcher=ExactSet(required=("Clients",)),
        fields=(FieldSpec("Clients", "ClientName"), FieldSpec("PPC", "PPC")),
    ))
    schema = registry.get("key_contacts")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

from reportspine.core.coercion import CoercionKind
from reportspine.core.errors import ConfigError
from reportspine.schema.matching import HeaderMatcher

TypedRecord = dict[str, Any]


class OutputShape(str, Enum):
    """How a source's records are published."""

    LIST = "list"
    KEYED = "keyed"


@dataclass(frozen=True)
class FieldSpec:
    """Map one header (or pattern role) to a target field with a coercion."""

    header: str
    field: str
    kind: CoercionKind = CoercionKind.STRING


@dataclass(frozen=True)
class RowView:
    """The raw row a record was built from, for schemas that read beyond their field specs."""

    headers: tuple[str, ...]
    cells: tuple[str, ...]
    matcher: HeaderMatcher

    def cell(self, index: int) -> str | None:
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return None


# (record, row) -> record to keep, or None to drop the row
RowFinalizer = Callable[[TypedRecord, RowView], TypedRecord | None]


@dataclass(frozen=True)
class SourceSchema:
    """
    Declarative description of one source.

    Attributes:
        source_id: Stable identifier, also the snapshot slot name.
        matcher: Header matching strategy; decides required-header checks.
        fields: Ordered field specs. For a ``PatternSet`` matcher the
            ``header`` of each spec is a pattern role.
        key_field: Target field rows are grouped by. Rows with a blank key
            are dropped.
        multi_valued: Key owns an ordered list of records instead of one.
        date_field: For multi-valued sources, the field the per-key list is
            stable-sorted by (ascending). None keeps row order.
        output: Published shape (list or key -> record(s) mapping).
        finalize: Optional per-record hook run after coercion; returning
            None drops the row.
        require_data_rows: A header row with no data row is an error.
        require_records: Zero records after normalization is an error.
        lenient_headers: Missing mandatory headers yield no records
            instead of a schema error.
    """

    source_id: str
    matcher: HeaderMatcher
    fields: tuple[FieldSpec, ...]
    key_field: str = "ClientName"
    multi_valued: bool = False
    date_field: str | None = None
    output: OutputShape = OutputShape.KEYED
    finalize: RowFinalizer | None = None
    require_data_rows: bool = False
    require_records: bool = False
    lenient_headers: bool = False
    description: str = ""

    @property
    def headers(self) -> list[str]:
        """Distinct declared headers (or roles) in declaration order."""
        return list(dict.fromkeys(spec.header for spec in self.fields))

    def specs_for(self, header: str) -> list[FieldSpec]:
        return [spec for spec in self.fields if spec.header == header]


@dataclass
class SchemaRegistry:
    """
    Registry of source schemas, keyed by ``source_id``.

    Registration order is preserved and is the default listing order.
    """

    _schemas: dict[str, SourceSchema] = field(default_factory=dict)

    def register(self, schema: SourceSchema, *, replace: bool = False) -> SourceSchema:
        """Register a schema.

        Raises:
            ConfigError: A schema with the same id exists and ``replace`` is False.
        """
        if schema.source_id in self._schemas and not replace:
            raise ConfigError(f"Schema already registered: {schema.source_id}")
        self._schemas[schema.source_id] = schema
        return schema

    def register_all(self, schemas: Sequence[SourceSchema]) -> None:
        for schema in schemas:
            self.register(schema)

    def get(self, source_id: str) -> SourceSchema:
        """Get a registered schema.

        Raises:
            ConfigError: Unknown source id.
        """
        try:
            return self._schemas[source_id]
        except KeyError:
            raise ConfigError(f"Unknown source: {source_id}") from None

    def list_sources(self) -> list[str]:
        return list(self._schemas)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._schemas

    def __iter__(self):
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)
