"""
Shared pytest fixtures for report-spine tests.

This module provides:
- A recording ``sleep`` so retry delays are asserted instead of waited on
- Values-API payload builders
- An httpx ``MockTransport`` client factory for transport/fetcher tests
- A scripted in-memory transport for orchestrator tests

Usage:
    async def test_something(recorded_sleep, sheet_client):
        client = sheet_client({"Performance": values_payload(["ClientName"], ["Acme"])})
"""

import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

# Ensure reportspine is importable without an install
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reportspine.sources.locator import SourceLocator


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts and test_path.parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Payload helpers
# =============================================================================


def values_payload(headers: list[str], *rows: list[Any]) -> dict[str, Any]:
    """A values API body with ``headers`` as the first row."""
    return {"range": "Sheet1!A1:Z", "majorDimension": "ROWS", "values": [list(headers), *map(list, rows)]}


class RecordedSleep:
    """Async stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recorded_sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def sheet_client() -> Callable[..., httpx.AsyncClient]:
    """
    Factory for an ``httpx.AsyncClient`` backed by ``MockTransport``.

    ``tabs`` maps a tab name to a JSON body, an ``httpx.Response`` or a list
    of those (served in order, the last one repeating).
    """

    def factory(tabs: dict[str, Any], requests: list[httpx.Request] | None = None) -> httpx.AsyncClient:
        served: dict[str, int] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            tab = request.url.path.rsplit("/values/", 1)[-1]
            script = tabs.get(tab)
            if script is None:
                return httpx.Response(400, json={"error": {"message": f"Unable to parse range: {tab}"}})
            if isinstance(script, list):
                index = served.get(tab, 0)
                served[tab] = index + 1
                script = script[min(index, len(script) - 1)]
            if isinstance(script, Exception):
                raise script
            if isinstance(script, httpx.Response):
                return script
            return httpx.Response(200, json=script)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


class ScriptedTransport:
    """
    In-memory ``ValuesTransport``: ``tab -> payload | exception | list``.

    A list is consumed one entry per call, the last entry repeating.
    """

    def __init__(self, tabs: dict[str, Any]) -> None:
        self.tabs = tabs
        self.calls: list[SourceLocator] = []

    async def get_values(self, locator: SourceLocator) -> Any:
        self.calls.append(locator)
        script = self.tabs.get(locator.tab)
        if isinstance(script, list):
            index = self.calls_for(locator.tab) - 1
            script = script[min(index, len(script) - 1)]
        if script is None:
            raise KeyError(locator.tab)
        if isinstance(script, Exception):
            raise script
        return script

    def calls_for(self, tab: str) -> int:
        return sum(1 for call in self.calls if call.tab == tab)


@pytest.fixture
def scripted_transport() -> Callable[[dict[str, Any]], ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture
def payload() -> Callable[..., dict[str, Any]]:
    return values_payload
