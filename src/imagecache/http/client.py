"""Async HTTP client with optional retry logic."""

from __future__ import annotations

import asyncio
import logging
import random
from types import TracebackType

import aiohttp

from .. import __version__
from .protocols import HttpResponse

logger = logging.getLogger(__name__)


class ContentTooLargeError(ValueError):
    """A response body is larger than the configured max_content_size."""


class AsyncHttpClient:
    """
    Async HTTP client for downloading binary resources.

    Features:
    - Reads the body in chunks until the stream ends (Content-Length is
      never trusted to size the buffer)
    - Optional content size limit
    - Optional exponential backoff retry for transient failures (off by default)
    - No request timeout unless one is configured

    Example:
        async with AsyncHttpClient() as client:
            response = await client.get("https://example.com/logo.png")
            data = response.content
    """

    READ_CHUNK_SIZE = 8192

    # Status codes that warrant a retry
    RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

    # Exceptions that warrant a retry
    RETRYABLE_EXCEPTIONS = (
        aiohttp.ClientError,
        asyncio.TimeoutError,
        ConnectionError,
    )

    def __init__(
        self,
        max_retries: int = 0,
        retry_base_delay: float = 1.0,
        max_content_size: int | None = None,
        user_agent: str | None = None,
        proxy: str | None = None,
        default_timeout: float | None = None,
    ) -> None:
        """
        Initialize the HTTP client.

        Args:
            max_retries: Retry attempts for transient failures (0 = single attempt)
            retry_base_delay: Base delay for exponential backoff (seconds)
            max_content_size: Maximum response size in bytes (None = unlimited)
            user_agent: Custom User-Agent string
            proxy: Proxy URL (http:// or socks5://)
            default_timeout: Total request timeout in seconds (None = wait indefinitely)
        """
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._max_content_size = max_content_size
        self._proxy = proxy
        self._default_timeout = default_timeout

        if user_agent is None:
            user_agent = f"imagecache/{__version__}"
        self._user_agent = user_agent

        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> AsyncHttpClient:
        """Enter async context and create session."""
        connector = aiohttp.TCPConnector(
            limit=100,  # Total connection limit
            limit_per_host=10,  # Per-host connection limit
            ttl_dns_cache=300,  # DNS cache TTL
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": self._user_agent},
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _calculate_retry_delay(self, attempt: int) -> float:
        """
        Calculate delay for exponential backoff with jitter.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay: float = self._retry_base_delay * (2**attempt)
        jitter: float = random.uniform(0, 1)
        return delay + jitter

    async def _read_body(self, response: aiohttp.ClientResponse) -> bytes:
        """Read a response body until the stream is exhausted."""
        content_length = response.headers.get("Content-Length")
        if (
            self._max_content_size is not None
            and content_length
            and content_length.isdigit()
            and int(content_length) > self._max_content_size
        ):
            raise ContentTooLargeError(f"Content too large: {content_length} bytes")

        buffer = bytearray()
        async for chunk in response.content.iter_chunked(self.READ_CHUNK_SIZE):
            buffer.extend(chunk)
            if self._max_content_size is not None and len(buffer) > self._max_content_size:
                raise ContentTooLargeError(f"Content size limit exceeded: >{self._max_content_size} bytes")
        return bytes(buffer)

    async def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """
        Perform an HTTP GET request.

        Non-success responses are returned as-is once retries (if any) are
        exhausted; only transport errors raise.

        Args:
            url: The URL to fetch
            timeout: Request timeout in seconds (uses default if None)
            headers: Optional additional headers

        Returns:
            HttpResponse with status, content, and headers

        Raises:
            aiohttp.ClientError: On network errors after retries exhausted
            ContentTooLargeError: On content size exceeded
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        timeout_val = timeout if timeout is not None else self._default_timeout

        for attempt in range(self._max_retries + 1):
            try:
                async with self._session.get(
                    url,
                    timeout=aiohttp.ClientTimeout(total=timeout_val),
                    headers=headers,
                    proxy=self._proxy,
                    allow_redirects=True,
                ) as response:
                    if response.status in self.RETRYABLE_STATUS_CODES and attempt < self._max_retries:
                        delay = self._calculate_retry_delay(attempt)
                        logger.warning(
                            f"Got {response.status} for {url}, retrying in {delay:.1f}s "
                            f"(attempt {attempt + 1}/{self._max_retries + 1})"
                        )
                        await asyncio.sleep(delay)
                        continue

                    content = await self._read_body(response)
                    return HttpResponse(
                        status_code=response.status,
                        content=content,
                        content_type=response.headers.get("Content-Type", ""),
                        headers=dict(response.headers),
                        url=str(response.url),
                    )

            except self.RETRYABLE_EXCEPTIONS as e:
                if attempt < self._max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        f"Error fetching {url}: {e}, retrying in {delay:.1f}s "
                        f"(attempt {attempt + 1}/{self._max_retries + 1})"
                    )
                    await asyncio.sleep(delay)
                else:
                    raise

        raise RuntimeError(f"Unexpected error fetching {url}")
