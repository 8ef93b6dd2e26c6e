"""
Data API client for Ask REST Data (Supabase/PostgREST over HTTPS).
Builds <base>/rest/v1/<table>?<query> URLs, sends them with the API key headers,
and folds every outcome into a FetchResult.

Query strings are appended verbatim: they are built from PostgREST operators
such as "title=ilike.*dog*" and must not be encoded a second time.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional, Union

import httpx

from .config import DataApiSettings, load_data_api_settings
from .errors import (
    EncodingError,
    QueryPipelineError,
    TransportFailure,
    UnknownTable,
    UpstreamHttpError,
)
from .schema import FetchResult, TABLES

logger = logging.getLogger(__name__)

ALLOWED_RESPONSE_HEADERS = {"content-type", "accept"}


# =============================================================================
# RESPONSE SANITIZING
# =============================================================================

def sanitize_headers(headers: httpx.Headers) -> httpx.Headers:
    """Keep only x-* headers, content-type and accept."""
    kept = [
        (name, value)
        for name, value in headers.multi_items()
        if name.lower().startswith("x-") or name.lower() in ALLOWED_RESPONSE_HEADERS
    ]
    return httpx.Headers(kept)


async def sanitize_response(response: httpx.Response) -> None:
    """httpx response hook: strip headers before anything else reads them."""
    # body must be decoded while content-encoding is still present
    await response.aread()
    response.headers = sanitize_headers(response.headers)


# =============================================================================
# CLIENT
# =============================================================================

def build_url(base_url: str, table: str, query: str = "") -> str:
    url = f"{base_url.rstrip('/')}/rest/v1/{table}"
    if query:
        url = f"{url}?{query}"
    return url


def build_headers(api_key: str, write: bool = False) -> Dict[str, str]:
    headers = {
        "apikey": api_key,
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    if write:
        headers["Prefer"] = "return=representation"
    return headers


def _check_table(table: str) -> None:
    if table not in TABLES:
        raise UnknownTable(f"Unknown table '{table}'. Allowed: {', '.join(TABLES)}")


class DataApiClient:
    """Async client for the REST data API. Use as an async context manager."""

    def __init__(
        self,
        settings: DataApiSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._client = httpx.AsyncClient(
            timeout=settings.timeout,
            transport=transport,
            event_hooks={"response": [sanitize_response]},
        )

    @classmethod
    def from_env(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "DataApiClient":
        return cls(load_data_api_settings(), transport=transport)

    async def __aenter__(self) -> "DataApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, url: str, write: bool = False, content: Optional[bytes] = None) -> str:
        try:
            response = await self._client.request(
                method,
                url,
                headers=build_headers(self.settings.api_key, write=write),
                content=content,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # InvalidURL (control characters, over-long URLs) is not an HTTPError
            raise TransportFailure(f"HTTP request failed: {exc!r}") from exc

        try:
            body = response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EncodingError("Invalid response encoding") from exc

        logger.info("Response status: %s", response.status_code)
        if not 200 <= response.status_code < 300:
            raise UpstreamHttpError(response.status_code, body)
        return body

    async def fetch(self, table: str, query: str = "") -> FetchResult:
        """GET <base>/rest/v1/<table>?<query>."""
        try:
            _check_table(table)
            url = build_url(self.settings.base_url, table, query)
            logger.info("Final URL: %s", url)
            return FetchResult.success(await self._send("GET", url))
        except QueryPipelineError as exc:
            logger.warning("Fetch from '%s' failed: %s", table, exc)
            return FetchResult.failure(str(exc))

    async def insert(self, table: str, rows: Union[str, Dict[str, Any], list]) -> FetchResult:
        """POST rows (a JSON string, object or array) and return the created records."""
        try:
            _check_table(table)
            body = rows if isinstance(rows, str) else json.dumps(rows)
            url = build_url(self.settings.base_url, table)
            logger.info("Inserting into %s", table)
            return FetchResult.success(
                await self._send("POST", url, write=True, content=body.encode("utf-8"))
            )
        except QueryPipelineError as exc:
            logger.warning("Insert into '%s' failed: %s", table, exc)
            return FetchResult.failure(str(exc))


__all__ = [
    "DataApiClient",
    "build_url",
    "build_headers",
    "sanitize_headers",
    "sanitize_response",
]
