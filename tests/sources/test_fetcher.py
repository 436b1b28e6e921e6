"""
Tests for ResilientFetcher.

Tests cover:
- Transient failures retried with 1s/2s backoff, up to three attempts
- Permanent failures surfaced after one attempt
- Payload validation (empty sheets, header-only sheets)
- Missing locators failing before any request
"""

import httpx
import pytest

from reportspine.core.errors import (
    EmptySourceError,
    MissingLocatorError,
    NetworkError,
    RateLimitError,
    SourceRejectedError,
    UpstreamServerError,
)
from reportspine.core.settings import ReportSpineSettings
from reportspine.sources.fetcher import ResilientFetcher
from reportspine.sources.locator import SourceLocator
from reportspine.sources.retry import ExponentialBackoff
from reportspine.sources.transport import SheetsTransport

LOCATOR = SourceLocator("sheet-1", "Performance")


def _fetcher(client, recorded_sleep, max_attempts=3):
    return ResilientFetcher(
        SheetsTransport(client=client),
        ExponentialBackoff(max_attempts=max_attempts, base_delay=1.0),
        sleep=recorded_sleep,
    )


class TestRetries:
    """Transient failures and backoff."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2])
    async def test_succeeds_after_transient_failures(self, sheet_client, payload, recorded_sleep, failures):
        requests: list[httpx.Request] = []
        script = [httpx.Response(503) for _ in range(failures)] + [payload(["ClientName"], ["Acme"])]
        fetcher = _fetcher(sheet_client({"Performance": script}, requests), recorded_sleep)

        table = await fetcher.fetch(LOCATOR, source_id="performance_metrics")

        assert table.rows == (("Acme",),)
        assert len(requests) == failures + 1
        assert recorded_sleep.delays == [1.0, 2.0][:failures]

    @pytest.mark.asyncio
    async def test_exhausted_raises_last_transient_error(self, sheet_client, recorded_sleep):
        requests: list[httpx.Request] = []
        script = [httpx.Response(503), httpx.Response(500), httpx.Response(429)]
        fetcher = _fetcher(sheet_client({"Performance": script}, requests), recorded_sleep)

        with pytest.raises(RateLimitError) as exc_info:
            await fetcher.fetch(LOCATOR, source_id="performance_metrics")

        assert len(requests) == 3
        assert recorded_sleep.delays == [1.0, 2.0]
        assert exc_info.value.context.source_id == "performance_metrics"

    @pytest.mark.asyncio
    async def test_network_errors_are_retried(self, sheet_client, payload, recorded_sleep):
        script = [httpx.ConnectError("refused"), payload(["Clients"], ["Acme"])]
        fetcher = _fetcher(sheet_client({"Performance": script}), recorded_sleep)

        table = await fetcher.fetch(LOCATOR)
        assert table.headers == ("Clients",)
        assert recorded_sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_single_attempt_budget(self, sheet_client, recorded_sleep):
        fetcher = _fetcher(sheet_client({"Performance": httpx.Response(502)}), recorded_sleep, max_attempts=1)

        with pytest.raises(UpstreamServerError):
            await fetcher.fetch(LOCATOR)
        assert recorded_sleep.delays == []


class TestPermanentFailures:
    """Permanent failures are not retried."""

    @pytest.mark.asyncio
    async def test_rejected_request(self, sheet_client, recorded_sleep):
        requests: list[httpx.Request] = []
        fetcher = _fetcher(sheet_client({"Performance": httpx.Response(403)}, requests), recorded_sleep)

        with pytest.raises(SourceRejectedError):
            await fetcher.fetch(LOCATOR)
        assert len(requests) == 1
        assert recorded_sleep.delays == []

    @pytest.mark.asyncio
    async def test_empty_sheet(self, sheet_client, recorded_sleep):
        requests: list[httpx.Request] = []
        fetcher = _fetcher(sheet_client({"Performance": {"range": "Performance!A1:Z"}}, requests), recorded_sleep)

        with pytest.raises(EmptySourceError, match='Sheet "Performance" is empty or has no data.'):
            await fetcher.fetch(LOCATOR)
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_header_only_when_rows_required(self, sheet_client, payload, recorded_sleep):
        fetcher = _fetcher(sheet_client({"Performance": payload(["ClientName"])}), recorded_sleep)

        with pytest.raises(EmptySourceError, match="requires at least one header row"):
            await fetcher.fetch(LOCATOR, require_data_rows=True)

    @pytest.mark.asyncio
    async def test_header_only_allowed(self, sheet_client, payload, recorded_sleep):
        fetcher = _fetcher(sheet_client({"Performance": payload(["ClientName"])}), recorded_sleep)

        table = await fetcher.fetch(LOCATOR)
        assert table.is_empty


class TestLocators:
    """Locator validation happens before any request."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("locator", [None, SourceLocator("", "Tab"), SourceLocator("id", "")])
    async def test_missing_locator(self, sheet_client, recorded_sleep, locator):
        requests: list[httpx.Request] = []
        fetcher = _fetcher(sheet_client({}, requests), recorded_sleep)

        with pytest.raises(MissingLocatorError) as exc_info:
            await fetcher.fetch(locator, source_id="analytics")
        assert exc_info.value.source_id == "analytics"
        assert requests == []


class TestFromSettings:
    """Retry budget comes from settings."""

    def test_strategy_from_settings(self, recorded_sleep):
        settings = ReportSpineSettings(max_attempts=4, base_delay_ms=250)
        fetcher = ResilientFetcher.from_settings(object(), settings, sleep=recorded_sleep)
        assert fetcher.strategy.max_attempts == 4
        assert fetcher.strategy.next_delay(1) == 0.5


class TestErrorIdentity:
    """The error raised is the transport's own error."""

    @pytest.mark.asyncio
    async def test_network_error_type(self, sheet_client, recorded_sleep):
        fetcher = _fetcher(sheet_client({"Performance": httpx.ReadTimeout("slow")}), recorded_sleep, max_attempts=2)

        with pytest.raises(NetworkError):
            await fetcher.fetch(LOCATOR)
        assert recorded_sleep.delays == [1.0]
