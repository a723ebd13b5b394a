"""Tests for the ImageCache resolution engine."""

import asyncio
import io
import os
import time
from unittest.mock import AsyncMock

import pytest
from conftest import BANNER_URL, LOGO_URL, MISSING_URL, FakeFetcher
from imagecache import ImageCache, ImageCacheConfig, resolve_blocking
from imagecache.cache.keys import derive_key
from imagecache.errors import FetchFailedError, InvalidArgumentError, MalformedInputError


class TestResolve:
    """Tests for ImageCache.resolve()."""

    @pytest.mark.asyncio
    async def test_cold_then_warm(self, image_cache, fetcher, cache_dir):
        """Test that the first resolve fetches once and the second is served from disk."""
        first = await image_cache.resolve(LOGO_URL)
        second = await image_cache.resolve(LOGO_URL)

        assert first == second == fetcher.resources[LOGO_URL]
        assert fetcher.calls_for(LOGO_URL) == 1
        assert (cache_dir / derive_key(LOGO_URL)).read_bytes() == first

    @pytest.mark.asyncio
    async def test_miss_updates_index_and_stats(self, image_cache):
        """Test bookkeeping after a miss and a hit."""
        await image_cache.resolve(LOGO_URL)
        await image_cache.resolve(LOGO_URL)

        assert image_cache.contains(LOGO_URL)
        assert image_cache.count == 1
        assert image_cache.stats.misses == 1
        assert image_cache.stats.hits == 1
        assert image_cache.stats.hit_rate == 50.0

    @pytest.mark.asyncio
    async def test_none_rejected_without_io(self, image_cache, fetcher, cache_dir):
        """Test that None raises before touching disk or network."""
        with pytest.raises(InvalidArgumentError):
            await image_cache.resolve(None)
        assert fetcher.calls == []
        assert not cache_dir.exists()

    @pytest.mark.asyncio
    async def test_malformed_rejected_without_io(self, image_cache, fetcher, cache_dir):
        """Test that a non-absolute URL raises before any I/O."""
        with pytest.raises(MalformedInputError):
            await image_cache.resolve("https:/example.com")
        assert fetcher.calls == []
        assert not cache_dir.exists()

    @pytest.mark.asyncio
    async def test_fetch_failure_writes_nothing(self, image_cache, fetcher, cache_dir):
        """Test that a 404 propagates and leaves no blob."""
        with pytest.raises(FetchFailedError) as exc_info:
            await image_cache.resolve(MISSING_URL)

        assert exc_info.value.status_code == 404
        assert not (cache_dir / derive_key(MISSING_URL)).exists()
        assert not image_cache.contains(MISSING_URL)
        assert image_cache.stats.fetch_failures == 1

    @pytest.mark.asyncio
    async def test_failed_fetch_not_retried(self, image_cache, fetcher):
        """Test that each resolve makes exactly one attempt."""
        for _ in range(2):
            with pytest.raises(FetchFailedError):
                await image_cache.resolve(MISSING_URL)
        assert fetcher.calls_for(MISSING_URL) == 2

    @pytest.mark.asyncio
    async def test_empty_resource_cached(self, cache_dir):
        """Test that a successful zero-byte fetch is cached and returned."""
        url = "https://example.com/empty.gif"
        fetcher = FakeFetcher({url: b""})
        cache = ImageCache(ImageCacheConfig(cache_dir=cache_dir), fetcher=fetcher)

        assert await cache.resolve(url) == b""
        assert await cache.resolve(url) == b""
        assert fetcher.calls_for(url) == 1
        assert (cache_dir / derive_key(url)).stat().st_size == 0

    @pytest.mark.asyncio
    async def test_fetches_absolute_form(self, image_cache, fetcher):
        """Test that the fetcher receives the normalized URL."""
        await image_cache.resolve("HTTPS://EXAMPLE.COM:443/logo.png")
        assert fetcher.calls == [LOGO_URL]

    @pytest.mark.asyncio
    async def test_clear_keeps_files(self, image_cache, fetcher):
        """Test that clearing the index does not cause a re-fetch."""
        await image_cache.resolve(LOGO_URL)
        image_cache.clear()

        assert image_cache.count == 0
        await image_cache.resolve(LOGO_URL)
        assert fetcher.calls_for(LOGO_URL) == 1

    @pytest.mark.asyncio
    async def test_out_of_band_delete_refetches(self, image_cache, fetcher, cache_dir):
        """Test that an indexed URL whose file vanished is fetched again."""
        await image_cache.resolve(LOGO_URL)
        (cache_dir / derive_key(LOGO_URL)).unlink()

        assert image_cache.contains(LOGO_URL)
        data = await image_cache.resolve(LOGO_URL)
        assert data == fetcher.resources[LOGO_URL]
        assert fetcher.calls_for(LOGO_URL) == 2

    @pytest.mark.asyncio
    async def test_existing_file_served_without_fetch(self, image_cache, fetcher, cache_dir):
        """Test that files written by an earlier process are hits."""
        cache_dir.mkdir(parents=True)
        (cache_dir / derive_key(LOGO_URL)).write_bytes(b"from earlier run")

        assert await image_cache.resolve(LOGO_URL) == b"from earlier run"
        assert fetcher.calls == []
        assert image_cache.contains(LOGO_URL)

    @pytest.mark.asyncio
    async def test_cache_dir_reassignment(self, image_cache, fetcher, tmp_path):
        """Test that changing cache_dir applies to later resolutions."""
        await image_cache.resolve(LOGO_URL)
        image_cache.cache_dir = tmp_path / "other"

        await image_cache.resolve(LOGO_URL)
        assert fetcher.calls_for(LOGO_URL) == 2
        assert (tmp_path / "other" / derive_key(LOGO_URL)).exists()

    @pytest.mark.asyncio
    async def test_concurrent_misses_converge(self, cache_dir):
        """Test that simultaneous misses for one URL end with one consistent blob."""
        fetcher = FakeFetcher({LOGO_URL: b"logo"})
        cache = ImageCache(ImageCacheConfig(cache_dir=cache_dir), fetcher=fetcher)

        results = await asyncio.gather(*(cache.resolve(LOGO_URL) for _ in range(5)))

        assert results == [b"logo"] * 5
        assert 1 <= fetcher.calls_for(LOGO_URL) <= 5
        assert os.listdir(cache_dir) == [derive_key(LOGO_URL)]
        assert cache.count == 1

    @pytest.mark.asyncio
    async def test_without_fetcher_raises(self, cache_dir):
        """Test that a miss outside the context manager needs a fetcher."""
        cache = ImageCache(ImageCacheConfig(cache_dir=cache_dir))
        with pytest.raises(RuntimeError, match="No fetcher"):
            await cache.resolve(LOGO_URL)


class TestResolveVariants:
    """Tests for the stream, factory and byte count variants."""

    @pytest.mark.asyncio
    async def test_open_stream(self, image_cache, fetcher):
        """Test single-use stream over the bytes."""
        stream = await image_cache.open_stream(LOGO_URL)
        assert isinstance(stream, io.BytesIO)
        assert stream.read() == fetcher.resources[LOGO_URL]

    @pytest.mark.asyncio
    async def test_stream_factory_reopens(self, image_cache, fetcher, cache_dir):
        """Test that every call yields a fresh stream without touching the disk."""
        factory = await image_cache.stream_factory(BANNER_URL)
        first = factory()
        first.read()

        # The factory keeps working even if the file is gone
        (cache_dir / derive_key(BANNER_URL)).unlink()
        second = factory()

        assert second is not first
        assert second.read() == fetcher.resources[BANNER_URL]
        assert fetcher.calls_for(BANNER_URL) == 1

    @pytest.mark.asyncio
    async def test_byte_count(self, image_cache, fetcher):
        """Test that byte_count performs a full resolution."""
        count = await image_cache.byte_count(BANNER_URL)
        assert count == len(fetcher.resources[BANNER_URL])
        assert fetcher.calls_for(BANNER_URL) == 1
        assert image_cache.contains(BANNER_URL)

    @pytest.mark.asyncio
    async def test_byte_count_failure(self, image_cache):
        """Test that a failed fetch is distinct from a null argument."""
        with pytest.raises(FetchFailedError):
            await image_cache.byte_count(MISSING_URL)
        with pytest.raises(InvalidArgumentError):
            await image_cache.byte_count(None)

    @pytest.mark.asyncio
    async def test_keep_precaches(self, image_cache, fetcher, cache_dir):
        """Test that keep stores a resource without returning it."""
        assert await image_cache.keep(LOGO_URL) is None
        assert (cache_dir / derive_key(LOGO_URL)).exists()

        await image_cache.keep(LOGO_URL)
        assert fetcher.calls_for(LOGO_URL) == 1
        assert image_cache.contains(LOGO_URL)


class TestExpiry:
    """Tests for expiry_seconds."""

    @staticmethod
    def _backdate(path, seconds):
        old = time.time() - seconds
        os.utime(path, (old, old))

    @pytest.mark.asyncio
    async def test_stale_file_refetched(self, cache_dir, fetcher):
        """Test that files older than the expiry are fetched again."""
        cache = ImageCache(ImageCacheConfig(cache_dir=cache_dir, expiry_seconds=5), fetcher=fetcher)
        await cache.keep(LOGO_URL)
        self._backdate(cache_dir / derive_key(LOGO_URL), 10)

        await cache.keep(LOGO_URL)

        assert fetcher.calls_for(LOGO_URL) == 2
        assert cache.stats.expired == 1
        assert cache.store.age(derive_key(LOGO_URL)) < 5

    @pytest.mark.asyncio
    async def test_fresh_file_kept(self, cache_dir, fetcher):
        """Test that files younger than the expiry are not refreshed."""
        cache = ImageCache(ImageCacheConfig(cache_dir=cache_dir, expiry_seconds=60), fetcher=fetcher)
        await cache.resolve(LOGO_URL)
        self._backdate(cache_dir / derive_key(LOGO_URL), 30)

        await cache.resolve(LOGO_URL)

        assert fetcher.calls_for(LOGO_URL) == 1
        assert cache.stats.expired == 0

    @pytest.mark.asyncio
    async def test_concurrent_expiries_all_counted(self, cache_dir):
        """Test that expiries seen by concurrent resolutions are each counted."""
        resources = {f"https://example.com/img{i}.png": b"png" for i in range(20)}
        cache = ImageCache(
            ImageCacheConfig(cache_dir=cache_dir, expiry_seconds=5),
            fetcher=FakeFetcher(resources),
        )
        for url in resources:
            await cache.keep(url)
        for url in resources:
            self._backdate(cache_dir / derive_key(url), 10)

        await asyncio.gather(*(cache.resolve(url) for url in resources))

        assert cache.stats.expired == len(resources)
        assert cache.stats.misses == 2 * len(resources)

    @pytest.mark.asyncio
    async def test_no_expiry_by_default(self, image_cache, fetcher, cache_dir):
        """Test that without expiry old files are served forever."""
        await image_cache.resolve(LOGO_URL)
        self._backdate(cache_dir / derive_key(LOGO_URL), 10 * 365 * 24 * 3600)

        await image_cache.resolve(LOGO_URL)
        assert fetcher.calls_for(LOGO_URL) == 1


class TestContextManager:
    """Tests for HTTP session handling."""

    @pytest.mark.asyncio
    async def test_injected_fetcher_kept(self, image_cache, fetcher):
        """Test that an injected fetcher is not replaced."""
        async with image_cache as cache:
            assert cache is image_cache
            await cache.resolve(LOGO_URL)
        assert fetcher.calls == [LOGO_URL]

    @pytest.mark.asyncio
    async def test_http_fetcher_created_and_closed(self, cache_dir):
        """Test that the built-in HTTP fetcher lives for the context only."""
        cache = ImageCache(ImageCacheConfig(cache_dir=cache_dir, network={"timeout": 5}))
        async with cache:
            assert cache._fetcher is not None
            assert cache._http_client is not None
        assert cache._fetcher is None
        assert cache._http_client is None


class TestResolveBlocking:
    """Tests for resolve_blocking()."""

    def test_resolves_with_injected_fetcher(self, cache_dir):
        """Test the sync wrapper end to end."""
        fetcher = AsyncMock()
        fetcher.fetch.return_value = b"png"

        data = resolve_blocking(LOGO_URL, fetcher=fetcher, cache_dir=cache_dir)

        assert data == b"png"
        fetcher.fetch.assert_awaited_once_with(LOGO_URL)
        assert (cache_dir / derive_key(LOGO_URL)).read_bytes() == b"png"

    def test_config_and_options_conflict(self, cache_dir):
        """Test that options are not silently dropped when a config is given."""
        fetcher = AsyncMock()
        fetcher.fetch.return_value = b"png"

        with pytest.raises(TypeError, match="expiry_seconds"):
            resolve_blocking(
                LOGO_URL,
                ImageCacheConfig(cache_dir=cache_dir),
                fetcher=fetcher,
                expiry_seconds=60,
            )
        fetcher.fetch.assert_not_awaited()

    def test_config_object(self, cache_dir):
        """Test passing a ready-made config."""
        fetcher = AsyncMock()
        fetcher.fetch.return_value = b"png"

        assert resolve_blocking(LOGO_URL, ImageCacheConfig(cache_dir=cache_dir), fetcher=fetcher) == b"png"
        assert (cache_dir / derive_key(LOGO_URL)).exists()

    @pytest.mark.asyncio
    async def test_refuses_running_loop(self, cache_dir):
        """Test that calling from async code is an error."""
        with pytest.raises(RuntimeError, match="async context"):
            resolve_blocking(LOGO_URL, cache_dir=cache_dir)
