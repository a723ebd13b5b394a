"""
imagecache - Cache remote images on disk, keyed by a hash of their URL.

Usage:
    from imagecache import ImageCache, ImageCacheConfig

    config = ImageCacheConfig(cache_dir="./cache")

    async with ImageCache(config) as cache:
        data = await cache.resolve("https://example.com/logo.png")
        print(cache.report())
"""

__version__ = "1.0.0"

from .cache import BlobStore, UrlIndex, absolute_url, derive_key
from .core import ImageCache, LifecycleManager, format_size, resolve_blocking
from .errors import (
    FetchFailedError,
    ImageCacheError,
    InvalidArgumentError,
    MalformedInputError,
    NotFoundError,
)
from .http import AsyncHttpClient, Fetcher, HttpFetcher, HttpResponse
from .models import ByteSize, CacheStats, ImageCacheConfig, NetworkConfig, default_cache_dir

__all__ = [
    "__version__",
    # Core
    "ImageCache",
    "LifecycleManager",
    "format_size",
    "resolve_blocking",
    # Cache primitives
    "BlobStore",
    "UrlIndex",
    "absolute_url",
    "derive_key",
    # HTTP
    "AsyncHttpClient",
    "Fetcher",
    "HttpFetcher",
    "HttpResponse",
    # Config
    "ByteSize",
    "ImageCacheConfig",
    "NetworkConfig",
    "default_cache_dir",
    # Stats
    "CacheStats",
    # Errors
    "ImageCacheError",
    "InvalidArgumentError",
    "MalformedInputError",
    "FetchFailedError",
    "NotFoundError",
]
