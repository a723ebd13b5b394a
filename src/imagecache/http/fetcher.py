"""HttpFetcher - adapts an HttpClient to the cache's Fetcher contract."""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from ..errors import FetchFailedError
from .client import ContentTooLargeError
from .protocols import HttpClient

logger = logging.getLogger(__name__)

# Transport errors reported as FetchFailedError
TRANSPORT_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
)


class HttpFetcher:
    """
    Fetch resources over HTTP and report failures uniformly.

    Any non-2xx status, any transport error and an oversized body become
    FetchFailedError.
    A successful empty body is returned as b"" rather than treated as a
    failure.

    Example:
        async with AsyncHttpClient() as client:
            fetcher = HttpFetcher(client)
            data = await fetcher.fetch("https://example.com/logo.png")
    """

    def __init__(self, http_client: HttpClient, timeout: float | None = None) -> None:
        """
        Initialize the fetcher.

        Args:
            http_client: HTTP client implementing HttpClient protocol
            timeout: Per-request timeout passed to the client (None = client default)
        """
        self._client = http_client
        self._timeout = timeout

    async def fetch(self, url: str) -> bytes:
        """
        Download the resource at url.

        Raises:
            FetchFailedError: On a non-success status or transport error
        """
        try:
            response = await self._client.get(url, timeout=self._timeout)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"Transport error fetching {url}: {e!r}")
            raise FetchFailedError(url, reason=str(e) or type(e).__name__) from e
        except ContentTooLargeError as e:
            logger.warning(f"Rejected {url}: {e}")
            raise FetchFailedError(url, reason=str(e)) from e

        if not response.ok:
            logger.warning(f"Got HTTP {response.status_code} for {url}")
            raise FetchFailedError(url, status_code=response.status_code)

        logger.debug(f"Fetched {url} ({len(response.content)} bytes)")
        return response.content
