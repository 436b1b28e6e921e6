"""
Resilient fetch: transport + retry + payload validation.

:class:`ResilientFetcher` is the only way sources are read from the remote
API. One call makes at most ``strategy.max_attempts`` HTTP requests; only
transient failures (network, 429, 5xx) are retried, with the delay after
failed attempt n being ``base_delay * 2**n``. When attempts run out the
last error is raised unchanged.

Examples:
    >>> fetcher = ResilientFetcher(SheetsTransport(api_key="..."))
    >>> table = await fetcher.fetch(SourceLocator("1AbC", "Performance"), require_data_rows=True)
    >>> table.headers
    ('ClientName', 'Month', 'Year', ...)

Tests inject ``sleep`` to record delays instead of waiting:
    >>> delays = []
    >>> async def fake_sleep(seconds): delays.append(seconds)
    >>> fetcher = ResilientFetcher(transport, sleep=fake_sleep)
"""

from __future__ import annotations

import asyncio

from reportspine.core.errors import MissingLocatorError, ReportSpineError
from reportspine.logging import get_logger
from reportspine.sources.locator import SourceLocator
from reportspine.sources.raw import RawTable
from reportspine.sources.retry import ExponentialBackoff, RetryContext, RetryStrategy, SleepFunc
from reportspine.sources.transport import ValuesTransport

logger = get_logger(__name__)


class ResilientFetcher:
    """Fetch a source as a :class:`RawTable`, retrying transient failures."""

    def __init__(
        self,
        transport: ValuesTransport,
        strategy: RetryStrategy | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.transport = transport
        self.strategy = strategy or ExponentialBackoff(max_attempts=3, base_delay=1.0, multiplier=2.0)
        self.sleep = sleep

    @classmethod
    def from_settings(cls, transport: ValuesTransport, settings, *, sleep: SleepFunc = asyncio.sleep) -> ResilientFetcher:
        strategy = ExponentialBackoff(
            max_attempts=settings.max_attempts,
            base_delay=settings.base_delay_ms / 1000.0,
            multiplier=2.0,
        )
        return cls(transport, strategy, sleep=sleep)

    async def fetch(
        self,
        locator: SourceLocator | None,
        *,
        source_id: str = "",
        require_data_rows: bool = False,
    ) -> RawTable:
        """Fetch and validate one tab.

        Args:
            locator: Spreadsheet id and tab. Missing or blank parts fail
                before any request is made.
            source_id: Used for error context and log fields.
            require_data_rows: Fail unless there is a header row and at
                least one data row.

        Raises:
            MissingLocatorError: ``locator`` is None or incomplete.
            EmptySourceError: No values, or too few rows.
            TransientError: Retries exhausted on a transient failure.
            PermanentError: Any non-retryable transport or payload failure.
        """
        if locator is None or not locator.is_complete:
            raise MissingLocatorError(source_id)

        async def attempt() -> RawTable:
            payload = await self.transport.get_values(locator)
            return RawTable.from_payload(payload, tab=locator.tab, require_data_rows=require_data_rows)

        def on_retry(attempt_number: int, error: BaseException, delay: float) -> None:
            logger.warning(
                "fetch.attempt_failed",
                source_id=source_id,
                tab=locator.tab,
                attempt=attempt_number,
                delay_s=delay,
                error=str(error),
                error_type=type(error).__name__,
            )

        ctx = RetryContext(self.strategy, on_retry=on_retry, sleep=self.sleep)
        try:
            return await ctx.run_async(attempt)
        except ReportSpineError as e:
            e.with_context(source_id=source_id or None, tab=locator.tab)
            if e.retryable:
                logger.error(
                    "fetch.exhausted",
                    source_id=source_id,
                    tab=locator.tab,
                    attempts=ctx.attempts,
                    error=str(e),
                )
            raise
