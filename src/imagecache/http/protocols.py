"""Protocol definitions for HTTP transport and resource fetching."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class HttpResponse:
    """
    Immutable HTTP response returned by HttpClient.

    Attributes:
        status_code: HTTP status code (200, 404, etc.)
        content: Raw response body, read until the stream was exhausted
        content_type: Content-Type header value
        headers: All response headers
        url: Final URL after any redirects
    """

    status_code: int
    content: bytes
    content_type: str
    headers: dict[str, str]
    url: str

    @property
    def ok(self) -> bool:
        """True for 2xx responses."""
        return 200 <= self.status_code < 300


class HttpClient(Protocol):
    """
    Protocol for HTTP clients.

    This abstraction allows for:
    - Mock implementations in tests
    - Different backends (aiohttp, httpx, etc.)
    """

    async def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """
        Perform an HTTP GET request.

        Args:
            url: The URL to fetch
            timeout: Request timeout in seconds (None = client default)
            headers: Optional additional headers

        Returns:
            HttpResponse with status, content, and headers

        Raises:
            Exception on network errors
        """
        ...


class Fetcher(Protocol):
    """
    Narrow contract the cache needs from the network.

    Implementations return the complete body of a successful response and
    raise FetchFailedError for anything else. They must not retry on the
    cache's behalf unless configured to.
    """

    async def fetch(self, url: str) -> bytes:
        """
        Retrieve the bytes at url.

        Raises:
            FetchFailedError: On a non-success status or transport error
        """
        ...
