"""Shared fixtures for imagecache tests."""

from pathlib import Path

import pytest
from imagecache import ImageCache, ImageCacheConfig
from imagecache.errors import FetchFailedError


class FakeFetcher:
    """Fetcher serving canned responses and recording every request."""

    def __init__(self, resources=None):
        self.resources: dict[str, bytes] = dict(resources or {})
        self.calls: list[str] = []

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        if url not in self.resources:
            raise FetchFailedError(url, status_code=404)
        return self.resources[url]

    def calls_for(self, url: str) -> int:
        return self.calls.count(url)


LOGO_URL = "https://example.com/logo.png"
BANNER_URL = "https://example.com/img/banner.jpg"
MISSING_URL = "https://example.com/missing.png"


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Cache directory that does not exist yet."""
    return tmp_path / "cache" / "images"


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            LOGO_URL: b"\x89PNG\r\n\x1a\nlogo",
            BANNER_URL: b"\xff\xd8\xff" + b"b" * 2048,
        }
    )


@pytest.fixture
def image_cache(cache_dir: Path, fetcher: FakeFetcher) -> ImageCache:
    return ImageCache(ImageCacheConfig(cache_dir=cache_dir), fetcher=fetcher)
