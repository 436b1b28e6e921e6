"""
Source processors: resilient fetch + normalization, bound to one schema.

Every processor has the same shape; only the schema differs. Two
processors add behaviour:

- :class:`FeedStatusProcessor` seeds a never-checked entry for every client
  of the current account-directory snapshot before applying its rows.
- :class:`UsersProcessor` has no locator of its own and reads the ``Users``
  tab of the performance-metrics spreadsheet.

A processor raises on failure (``PermanentError``, ``TransientError`` after
retries, ``SchemaError``, ``NoDataError``); isolating failures is the
orchestrator's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Mapping

from reportspine.core.errors import NoDataError
from reportspine.logging import get_logger
from reportspine.pipeline.snapshot import SnapshotStore
from reportspine.schema.definitions import (
    ACCOUNT_DIRECTORY,
    FEED_STATUS,
    PERFORMANCE_METRICS,
    USERS,
    seed_feed_status,
)
from reportspine.schema.matching import PatternSet
from reportspine.schema.normalizer import NormalizedRecords, normalize
from reportspine.schema.registry import OutputShape, SchemaRegistry, SourceSchema
from reportspine.sources.fetcher import ResilientFetcher
from reportspine.sources.locator import SourceLocator
from reportspine.sources.raw import RawTable

logger = get_logger(__name__)


@dataclass
class ProcessorContext:
    """What a processor may read besides its own table."""

    store: SnapshotStore
    now: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class ProcessorOutput:
    """Data ready to publish, plus its record count."""

    source_id: str
    data: Any
    record_count: int


class SourceProcessor:
    """Fetch + normalize for one source schema."""

    def __init__(self, schema: SourceSchema):
        self.schema = schema

    @property
    def source_id(self) -> str:
        return self.schema.source_id

    def locate(self, locators: Mapping[str, SourceLocator | None]) -> SourceLocator | None:
        """The locator this processor reads, or None if not configured."""
        return locators.get(self.source_id)

    async def run(
        self,
        fetcher: ResilientFetcher,
        locators: Mapping[str, SourceLocator | None],
        context: ProcessorContext,
    ) -> ProcessorOutput:
        """Fetch the source and normalize it."""
        table = await fetcher.fetch(
            self.locate(locators),
            source_id=self.source_id,
            require_data_rows=self.schema.require_data_rows,
        )
        return self.process(table, context)

    def process(self, table: RawTable, context: ProcessorContext) -> ProcessorOutput:
        """
        Normalize an already-fetched (or CSV-parsed) table.

        Raises:
            SchemaError: Mandatory headers are missing.
            NoDataError: The schema requires records and none survived.
        """
        if not table.headers:
            return self.empty_output()

        normalized = normalize(self.schema, table).unwrap()

        if self.schema.require_records and len(normalized) == 0:
            raise NoDataError().with_context(source_id=self.source_id)

        return ProcessorOutput(
            source_id=self.source_id,
            data=self.shape(normalized, context),
            record_count=len(normalized),
        )

    def shape(self, normalized: NormalizedRecords, context: ProcessorContext) -> Any:
        return normalized.published()

    def empty_output(self) -> ProcessorOutput:
        data: Any = [] if self.schema.output is OutputShape.LIST else {}
        return ProcessorOutput(source_id=self.source_id, data=data, record_count=0)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.source_id!r})"


class FeedStatusProcessor(SourceProcessor):
    """Feed status with directory-seeded defaults."""

    def process(self, table: RawTable, context: ProcessorContext) -> ProcessorOutput:
        matcher = self.schema.matcher
        if (
            table.headers
            and isinstance(matcher, PatternSet)
            and not matcher.missing(table.headers)
            and not matcher.find_all("feed_name", table.headers)
        ):
            logger.warning("feed_status.no_feed_columns", source_id=self.source_id)
            return self.empty_output()
        return super().process(table, context)

    def shape(self, normalized: NormalizedRecords, context: ProcessorContext) -> Any:
        directory = context.store.data(ACCOUNT_DIRECTORY, []) or []
        data = seed_feed_status((record.get("ClientName", "") for record in directory), context.now)
        data.update(normalized.grouped)
        return data


class UsersProcessor(SourceProcessor):
    """Users live on a fixed tab of the performance spreadsheet."""

    tab = "Users"

    def locate(self, locators: Mapping[str, SourceLocator | None]) -> SourceLocator | None:
        performance = locators.get(PERFORMANCE_METRICS)
        if performance is None or not performance.spreadsheet_id.strip():
            return None
        return performance.with_tab(self.tab)


PROCESSOR_TYPES: dict[str, type[SourceProcessor]] = {
    FEED_STATUS: FeedStatusProcessor,
    USERS: UsersProcessor,
}


def build_processors(registry: SchemaRegistry) -> dict[str, SourceProcessor]:
    """One processor per registered schema, in registration order."""
    return {
        schema.source_id: PROCESSOR_TYPES.get(schema.source_id, SourceProcessor)(schema)
        for schema in registry
    }
