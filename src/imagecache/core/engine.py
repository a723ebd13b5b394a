"""ImageCache - fetch-or-serve resolution of URLs to bytes."""

from __future__ import annotations

import asyncio
import functools
import io
import logging
from pathlib import Path
from types import TracebackType
from typing import Any, Callable

from ..cache import BlobStore, UrlIndex, absolute_url, derive_key
from ..errors import FetchFailedError, NotFoundError
from ..http import AsyncHttpClient, Fetcher, HttpFetcher
from ..models.config import ImageCacheConfig
from ..models.stats import CacheStats
from .lifecycle import LifecycleManager

logger = logging.getLogger(__name__)

BLOB_FRESH = "fresh"
BLOB_MISSING = "missing"
BLOB_EXPIRED = "expired"


class ImageCache:
    """
    Disk cache for remote resources addressed by URL.

    A URL is fetched from the network the first time it is requested and
    served from disk afterwards. Every hit is confirmed against the blob
    store, so files removed behind the cache's back are fetched again.

    Example:
        config = ImageCacheConfig(cache_dir=Path("./cache"))

        async with ImageCache(config) as cache:
            data = await cache.resolve("https://example.com/logo.png")
            open_image = await cache.stream_factory("https://example.com/logo.png")
            print(cache.report())

    A custom Fetcher can be injected, in which case no HTTP session is opened:

        cache = ImageCache(config, fetcher=my_fetcher)
        data = await cache.resolve(url)
    """

    def __init__(
        self,
        config: ImageCacheConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            config: Cache configuration (defaults apply if None)
            fetcher: Fetcher to use instead of the built-in HTTP fetcher
        """
        self.config = config or ImageCacheConfig()
        self._store = BlobStore(self.config.cache_dir)
        self._index = UrlIndex()
        self._stats = CacheStats()
        self._fetcher = fetcher
        self._http_client: AsyncHttpClient | None = None
        self._lifecycle = LifecycleManager(self._store, self._index, keep=self.keep)

    async def __aenter__(self) -> ImageCache:
        """Open an HTTP session unless a fetcher was injected."""
        if self._fetcher is None:
            network = self.config.network
            self._http_client = AsyncHttpClient(
                max_retries=network.max_retries,
                retry_base_delay=network.retry_base_delay,
                max_content_size=network.max_content_size,
                user_agent=network.user_agent,
                proxy=network.proxy,
                default_timeout=network.timeout,
            )
            await self._http_client.__aenter__()
            self._fetcher = HttpFetcher(self._http_client)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the HTTP session opened by __aenter__."""
        if self._http_client is not None:
            await self._http_client.__aexit__(exc_type, exc_val, exc_tb)
            self._http_client = None
            self._fetcher = None

    @property
    def cache_dir(self) -> Path:
        """Directory holding the cached files."""
        return self._store.root

    @cache_dir.setter
    def cache_dir(self, value: str | Path) -> None:
        # Affects later operations only; files already written elsewhere stay there
        self._store.root = Path(value)

    @property
    def store(self) -> BlobStore:
        return self._store

    @property
    def index(self) -> UrlIndex:
        return self._index

    @property
    def stats(self) -> CacheStats:
        """Get cumulative hit/miss statistics."""
        return self._stats

    @property
    def count(self) -> int:
        """Number of entries in the index."""
        return len(self._index)

    def contains(self, url: str) -> bool:
        """Check whether a URL is tracked in the index (no disk access)."""
        return self._index.contains(url)

    def clear(self) -> None:
        """
        Forget the tracked URLs without touching the files.

        Later resolutions still find the files on disk and do not re-fetch.
        """
        self._index.clear()

    def _blob_state(self, key: str) -> str:
        """
        Classify a blob as BLOB_FRESH, BLOB_MISSING or BLOB_EXPIRED.

        Expired blobs are deleted. Runs in a worker thread, so it must not
        touch the stats.
        """
        if not self._store.exists(key):
            return BLOB_MISSING

        expiry = self.config.expiry_seconds
        if expiry is not None:
            try:
                age = self._store.age(key)
            except NotFoundError:
                return BLOB_MISSING
            if age >= expiry:
                self._store.delete(key)
                logger.debug(f"Blob {key} expired after {age:.0f}s")
                return BLOB_EXPIRED
        return BLOB_FRESH

    async def _is_fresh(self, key: str) -> bool:
        state = await asyncio.to_thread(self._blob_state, key)
        if state == BLOB_EXPIRED:
            self._stats.expired += 1
        return state == BLOB_FRESH

    async def _fetch_and_store(self, url: str, key: str) -> bytes:
        if self._fetcher is None:
            raise RuntimeError("No fetcher available. Use 'async with ImageCache()' or pass fetcher=.")

        self._stats.misses += 1
        logger.debug(f"Cache miss for {url}")
        try:
            data = await self._fetcher.fetch(url)
        except FetchFailedError:
            self._stats.fetch_failures += 1
            raise

        await asyncio.to_thread(self._store.write, key, data)
        self._index.add(url, key)
        self._stats.bytes_fetched += len(data)
        logger.info(f"Cached {url} as {key} ({len(data)} bytes)")
        return data

    async def resolve(self, url: str) -> bytes:
        """
        Get the bytes of a resource, fetching and caching it on a miss.

        Args:
            url: Absolute URL of the resource

        Returns:
            Resource bytes (b"" for a successful empty response)

        Raises:
            InvalidArgumentError: If url is None or empty (before any I/O)
            MalformedInputError: If url is not absolute (before any I/O)
            FetchFailedError: If the resource had to be fetched and could not be
        """
        absolute = absolute_url(url)
        key = derive_key(absolute)

        if await self._is_fresh(key):
            try:
                data = await asyncio.to_thread(self._store.read, key)
            except NotFoundError:
                logger.debug(f"Blob {key} vanished before it could be read")
            else:
                self._stats.hits += 1
                self._index.add(absolute, key)
                logger.debug(f"Cache hit for {absolute}")
                return data

        return await self._fetch_and_store(absolute, key)

    async def keep(self, url: str) -> None:
        """
        Make sure a resource is cached without reading it back.

        Use this to pre-cache resources.
        """
        absolute = absolute_url(url)
        key = derive_key(absolute)

        if await self._is_fresh(key):
            self._index.add(absolute, key)
            return

        await self._fetch_and_store(absolute, key)

    async def open_stream(self, url: str) -> io.BytesIO:
        """Resolve a URL and return a single-use in-memory stream over its bytes."""
        return io.BytesIO(await self.resolve(url))

    async def stream_factory(self, url: str) -> Callable[[], io.BytesIO]:
        """
        Resolve a URL and return a function producing fresh streams over its bytes.

        Each call of the returned function yields a new stream positioned at
        the start; the bytes are resolved once, so reopening never touches
        the disk or the network.
        """
        data = await self.resolve(url)
        return functools.partial(io.BytesIO, data)

    async def byte_count(self, url: str) -> int:
        """Size of a resource in bytes. Performs a full resolution."""
        return len(await self.resolve(url))

    def purge(self) -> str:
        """See LifecycleManager.purge."""
        return self._lifecycle.purge()

    def restore(self) -> str:
        """See LifecycleManager.restore."""
        return self._lifecycle.restore()

    def report(self) -> str:
        """See LifecycleManager.report."""
        return self._lifecycle.report()

    async def save(self) -> str:
        """See LifecycleManager.save."""
        return await self._lifecycle.save()


def resolve_blocking(
    url: str,
    config: ImageCacheConfig | None = None,
    *,
    fetcher: Fetcher | None = None,
    **config_kwargs: Any,
) -> bytes:
    """
    Blocking resolve for sync code that can't use async/await.

    WARNING: Do not call from within an existing event loop (e.g., Jupyter,
    asyncio-based frameworks). Use the async ImageCache API instead.

    Args:
        url: The URL to resolve
        config: Cache configuration (built from config_kwargs if None)
        fetcher: Optional Fetcher replacing the HTTP fetcher
        **config_kwargs: Options passed to ImageCacheConfig

    Returns:
        Resource bytes

    Raises:
        TypeError: If both config and config_kwargs are given

    Example:
        data = resolve_blocking("https://example.com/logo.png", cache_dir="./cache")
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError("resolve_blocking() called from async context. Use 'async with ImageCache()' instead.")

    if config is None:
        config = ImageCacheConfig(**config_kwargs)
    elif config_kwargs:
        raise TypeError(f"Pass either config or config options, not both (got {sorted(config_kwargs)})")

    async def run() -> bytes:
        async with ImageCache(config, fetcher=fetcher) as cache:
            return await cache.resolve(url)

    return asyncio.run(run())
