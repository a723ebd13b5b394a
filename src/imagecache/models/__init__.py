"""imagecache configuration and statistics models."""

from .config import (
    APP_NAME,
    CACHE_SUBDIR,
    ByteSize,
    ImageCacheConfig,
    NetworkConfig,
    default_cache_dir,
)
from .stats import CacheStats

__all__ = [
    # Config
    "APP_NAME",
    "CACHE_SUBDIR",
    "ByteSize",
    "ImageCacheConfig",
    "NetworkConfig",
    "default_cache_dir",
    # Stats
    "CacheStats",
]
