"""
HTTP transport for the remote values API.

One GET per call against ``{base_url}/{spreadsheet_id}/values/{tab}``. The
transport owns status-code classification and nothing else: it never
retries and never interprets the ``values`` payload.

    200            -> parsed JSON body
    429            -> RateLimitError          (retryable)
    5xx            -> UpstreamServerError     (retryable)
    other non-2xx  -> SourceRejectedError     (permanent)
    bad JSON       -> MalformedResponseError  (permanent)
    httpx failure  -> NetworkError            (retryable)

Credentials are optional: an API key is sent as the ``key`` query
parameter, a bearer token (static or from ``token_provider``) as an
``Authorization`` header.

Examples:
    >>> transport = SheetsTransport(api_key="AIza...")
    >>> body = await transport.get_values(SourceLocator("1AbC", "Performance"))
    >>> await transport.aclose()
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

import httpx

from reportspine.core.errors import (
    MalformedResponseError,
    NetworkError,
    RateLimitError,
    ReportSpineError,
    SourceRejectedError,
    UpstreamServerError,
)
from reportspine.sources.locator import SourceLocator

DEFAULT_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"

ERROR_HINT = "Please check restrictions, permissions, ID, and Name."


@runtime_checkable
class ValuesTransport(Protocol):
    """Anything that can return the values body for a locator."""

    async def get_values(self, locator: SourceLocator) -> Any: ...


def _remote_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class SheetsTransport:
    """httpx-backed transport for the values endpoint.

    Pass ``client`` to share a connection pool or, in tests, to inject an
    ``httpx.AsyncClient(transport=httpx.MockTransport(handler))``. A client
    created here is closed by :meth:`aclose`; an injected one is not.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str | None = None,
        bearer_token: str | None = None,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bearer_token = bearer_token
        self.token_provider = token_provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Any, *, client: httpx.AsyncClient | None = None) -> SheetsTransport:
        return cls(
            base_url=settings.sheets_base_url,
            api_key=settings.api_key,
            bearer_token=settings.bearer_token,
            timeout=settings.http_timeout,
            client=client,
        )

    def url_for(self, locator: SourceLocator) -> str:
        return f"{self.base_url}/{locator.values_path()}"

    def _headers(self) -> dict[str, str]:
        token = self.token_provider() if self.token_provider else self.bearer_token
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _params(self) -> dict[str, str]:
        if self.api_key:
            return {"key": self.api_key}
        return {}

    async def get_values(self, locator: SourceLocator) -> Any:
        """GET the values body for ``locator``.

        Raises:
            NetworkError: The request never produced a response.
            RateLimitError: HTTP 429.
            UpstreamServerError: HTTP 5xx.
            SourceRejectedError: Any other non-2xx status.
            MalformedResponseError: A 2xx body that is not JSON.
        """
        url = self.url_for(locator)
        try:
            response = await self._client.get(url, params=self._params(), headers=self._headers())
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to the values API failed: {e}", cause=e).with_context(
                tab=locator.tab, url=url
            ) from e

        if not response.is_success:
            raise self._status_error(response).with_context(
                tab=locator.tab, url=url, http_status=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f'Sheet "{locator.tab}" returned a response that is not valid JSON.', cause=e
            ).with_context(tab=locator.tab, url=url, http_status=response.status_code) from e

    def _status_error(self, response: httpx.Response) -> ReportSpineError:
        status = response.status_code
        detail = _remote_message(response) or f"HTTP error! status: {status}"
        message = f"Google Sheets API Error: {detail}. {ERROR_HINT}"

        if status == 429:
            return RateLimitError(message, retry_after=_retry_after(response))
        if status >= 500:
            return UpstreamServerError(message)
        return SourceRejectedError(message)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> SheetsTransport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
