"""
Refresh orchestration.

One refresh runs every source processor once, strictly sequentially, in
dependency order (:func:`~reportspine.pipeline.graph.topological_order`):

    account_directory -> performance_metrics -> key_contacts -> items_in_feed
    -> feed_status -> percent_approved -> store_status -> store_changes
    -> budget_status -> revolution_links -> search_console -> analytics
    -> ads -> users

Guarantees:

- A failing source is recorded (``success=False`` plus its error string)
  and the sequence continues. ``refresh()`` itself never raises for a
  source failure.
- A successful source replaces its snapshot and clears its error; a
  failed one keeps its previous snapshot and records the error.
- After store changes succeed, the account-directory snapshot is patched
  (:func:`~reportspine.pipeline.reconcile.reconcile`) and re-published.
- After performance metrics succeed, the sorted client list is published
  under ``clients``.
- A refresh requested while one is running returns None immediately.
- A refresh is usable only when every required source (account directory
  and performance metrics by default) succeeded and at least
  ``min_usable_successes`` sources succeeded overall.

Usage:
    orchestrator = RefreshOrchestrator.from_settings(get_settings())
    result = await orchestrator.refresh()
    if result and result.is_usable:
        render(orchestrator.store.as_dict())
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Mapping, Sequence

import httpx

from reportspine.core.errors import ConfigError, categorize_error
from reportspine.core.settings import ReportSpineSettings, get_settings
from reportspine.logging import configure_logging, get_logger, log_step, push_context
from reportspine.pipeline.graph import PROCESSOR_ORDER, topological_order
from reportspine.pipeline.processors import (
    ProcessorContext,
    ProcessorOutput,
    SourceProcessor,
    build_processors,
)
from reportspine.pipeline.reconcile import build_patches, reconcile
from reportspine.pipeline.snapshot import SnapshotStore
from reportspine.schema.definitions import (
    ACCOUNT_DIRECTORY,
    PERFORMANCE_METRICS,
    STORE_CHANGES,
    build_registry,
)
from reportspine.schema.registry import SchemaRegistry
from reportspine.sources.fetcher import ResilientFetcher
from reportspine.sources.locator import SourceLocator
from reportspine.sources.raw import parse_csv_text
from reportspine.sources.retry import SleepFunc
from reportspine.sources.transport import SheetsTransport

logger = get_logger(__name__)

CLIENT_LIST = "clients"
UNKNOWN_ERROR = "An unknown error occurred."
REQUIRED_SOURCES = (ACCOUNT_DIRECTORY, PERFORMANCE_METRICS)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def error_message(error: BaseException) -> str:
    """User-facing text for a source failure."""
    return str(error) or UNKNOWN_ERROR


@dataclass
class SourceOutcome:
    """How one source fared in one refresh (or one CSV load)."""

    source_id: str
    success: bool
    error: str | None = None
    record_count: int = 0
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "source_id": self.source_id,
            "success": self.success,
            "record_count": self.record_count,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class RefreshResult:
    """
    Summary of one refresh cycle.

    ``is_usable`` holds when every source in ``required_sources`` succeeded
    and ``success_count`` reaches ``min_usable_successes``. A required source
    missing from ``outcomes`` counts as failed.
    """

    refresh_id: str
    started_at: datetime
    outcomes: dict[str, SourceOutcome] = field(default_factory=dict)
    completed_at: datetime | None = None
    min_usable_successes: int = 2
    required_sources: tuple[str, ...] = REQUIRED_SOURCES

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes.values() if outcome.success)

    @property
    def is_usable(self) -> bool:
        if self.success_count < self.min_usable_successes:
            return False
        return all(
            source_id in self.outcomes and self.outcomes[source_id].success
            for source_id in self.required_sources
        )

    @property
    def failed_sources(self) -> list[str]:
        return [source_id for source_id, outcome in self.outcomes.items() if not outcome.success]

    @property
    def errors(self) -> dict[str, str]:
        return {
            source_id: outcome.error
            for source_id, outcome in self.outcomes.items()
            if outcome.error is not None
        }

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "refresh_id": self.refresh_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "success_count": self.success_count,
            "is_usable": self.is_usable,
            "outcomes": {source_id: o.to_dict() for source_id, o in self.outcomes.items()},
        }


ProgressCallback = Callable[[int, int], None]


class RefreshOrchestrator:
    """
    Runs refresh cycles and CSV loads against one snapshot store.

    Args:
        fetcher: Resilient fetcher shared by every processor.
        locators: ``source_id -> SourceLocator``; a missing or incomplete
            entry fails that source only.
        registry: Source schemas (all fourteen by default).
        store: Snapshot store to publish into.
        order: Processor order; defaults to the dependency-checked order.
        min_usable_successes: ``is_usable`` threshold.
        required_sources: Sources that must succeed for ``is_usable``;
            defaults to the account directory and performance metrics
            that appear in ``order``.
        clock: Source of "now" for refresh timestamps and feed seeding.
        on_progress: Called with ``(completed, total)`` after each source.
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        locators: Mapping[str, SourceLocator | None] | None = None,
        *,
        registry: SchemaRegistry | None = None,
        store: SnapshotStore | None = None,
        order: Sequence[str] | None = None,
        min_usable_successes: int = 2,
        required_sources: Sequence[str] | None = None,
        clock: Callable[[], datetime] = utcnow,
        on_progress: ProgressCallback | None = None,
    ):
        self.fetcher = fetcher
        self.locators: dict[str, SourceLocator | None] = dict(locators or {})
        self.registry = registry if registry is not None else build_registry()
        self.processors: dict[str, SourceProcessor] = build_processors(self.registry)
        self.store = store if store is not None else SnapshotStore()
        if order is None:
            order = [source_id for source_id in topological_order(PROCESSOR_ORDER) if source_id in self.processors]
        self.order = list(order)
        self.min_usable_successes = min_usable_successes
        if required_sources is None:
            required_sources = [source_id for source_id in REQUIRED_SOURCES if source_id in self.order]
        self.required_sources = tuple(required_sources)
        self.clock = clock
        self.on_progress = on_progress
        self.last_result: RefreshResult | None = None
        self._in_flight = False

        unknown = [source_id for source_id in self.order if source_id not in self.processors]
        if unknown:
            raise ConfigError(f"No schema registered for: {', '.join(unknown)}")

        not_run = [source_id for source_id in self.required_sources if source_id not in self.order]
        if not_run:
            raise ConfigError(f"Required sources not in refresh order: {', '.join(not_run)}")

    @classmethod
    def from_settings(
        cls,
        settings: ReportSpineSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
        store: SnapshotStore | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RefreshOrchestrator:
        """Configure logging, then wire transport, fetcher and locators from settings."""
        settings = settings or get_settings()
        configure_logging(level=settings.log_level, format=settings.log_format)
        transport = SheetsTransport.from_settings(settings, client=client)
        fetcher = ResilientFetcher.from_settings(transport, settings, sleep=sleep)
        locators = {source_id: config.to_locator() for source_id, config in settings.locators.items()}
        return cls(
            fetcher,
            locators,
            store=store,
            min_usable_successes=settings.min_usable_successes,
            required_sources=settings.required_sources,
            on_progress=on_progress,
        )

    @property
    def is_refreshing(self) -> bool:
        return self._in_flight

    # ── Refresh ──────────────────────────────────────────────────

    async def refresh(self) -> RefreshResult | None:
        """
        Run every processor once.

        Returns:
            The refresh summary, or None if a refresh was already running.
        """
        if self._in_flight:
            logger.info("refresh.skipped_in_flight")
            return None

        self._in_flight = True
        try:
            return await self._run_refresh()
        finally:
            self._in_flight = False

    async def _run_refresh(self) -> RefreshResult:
        started = self.clock()
        result = RefreshResult(
            refresh_id=uuid.uuid4().hex[:12],
            started_at=started,
            min_usable_successes=self.min_usable_successes,
            required_sources=self.required_sources,
        )
        context = ProcessorContext(store=self.store, now=started)
        token = push_context(refresh_id=result.refresh_id)
        try:
            total = len(self.order)
            for completed, source_id in enumerate(self.order, start=1):
                result.outcomes[source_id] = await self._run_source(self.processors[source_id], context)
                if self.on_progress is not None:
                    self.on_progress(completed, total)
        finally:
            token.restore()

        result.completed_at = self.clock()
        self.last_result = result
        logger.info(
            "refresh.complete",
            refresh_id=result.refresh_id,
            success_count=result.success_count,
            total=len(result.outcomes),
            usable=result.is_usable,
            failed=result.failed_sources,
        )
        return result

    async def _run_source(self, processor: SourceProcessor, context: ProcessorContext) -> SourceOutcome:
        source_id = processor.source_id
        token = push_context(source_id=source_id)
        try:
            with log_step("refresh.source", log_start=False, log_errors=False, source_id=source_id) as timer:
                output = await processor.run(self.fetcher, self.locators, context)
                self._publish(output)
                timer.add_metric("records", output.record_count)
        except Exception as e:
            timer.stop()
            return self._failed(source_id, error_message(e), e, timer.duration_ms)
        finally:
            token.restore()
        return SourceOutcome(
            source_id=source_id,
            success=True,
            record_count=output.record_count,
            duration_ms=timer.duration_ms,
        )

    def _failed(self, source_id: str, message: str, error: BaseException, duration_ms: float = 0.0) -> SourceOutcome:
        self.store.record_error(source_id, message)
        logger.warning(
            "refresh.source_failed",
            source_id=source_id,
            error=message,
            error_type=type(error).__name__,
            category=categorize_error(error).value,
            duration_ms=round(duration_ms, 2),
        )
        return SourceOutcome(source_id=source_id, success=False, error=message, duration_ms=duration_ms)

    # ── CSV ──────────────────────────────────────────────────────

    def load_csv(self, source_id: str, text: str) -> SourceOutcome:
        """
        Normalize a CSV blob for one source and publish it like a fetched table.

        Failures are recorded as ``"Failed to parse CSV. {message}"``.

        Raises:
            ConfigError: ``source_id`` has no processor.
        """
        processor = self.processors.get(source_id)
        if processor is None:
            raise ConfigError(f"Unknown source: {source_id}")

        context = ProcessorContext(store=self.store, now=self.clock())
        try:
            table = parse_csv_text(text)
            output = processor.empty_output() if table.is_empty else processor.process(table, context)
            self._publish(output)
        except Exception as e:
            return self._failed(source_id, f"Failed to parse CSV. {error_message(e)}", e)

        logger.info("csv.loaded", source_id=source_id, records=output.record_count)
        return SourceOutcome(source_id=source_id, success=True, record_count=output.record_count)

    # ── Publishing ───────────────────────────────────────────────

    def _publish(self, output: ProcessorOutput) -> None:
        self.store.publish(output.source_id, output.data, record_count=output.record_count)

        if output.source_id == PERFORMANCE_METRICS:
            clients = sorted({record["ClientName"] for record in output.data if record.get("ClientName")})
            self.store.publish(CLIENT_LIST, clients)
        elif output.source_id == STORE_CHANGES:
            self._reconcile_directory(output.data)

    def _reconcile_directory(self, changes: Mapping[str, Any]) -> None:
        snapshot = self.store.get(ACCOUNT_DIRECTORY)
        if snapshot is None or not snapshot.data:
            return

        patches = build_patches(snapshot.data, changes)
        patched = reconcile(snapshot.data, changes)
        self.store.publish(
            ACCOUNT_DIRECTORY,
            patched,
            record_count=snapshot.record_count,
            clear_error=False,
        )
        logger.info("reconcile.applied", patched=len(patches), directory_records=len(patched))
