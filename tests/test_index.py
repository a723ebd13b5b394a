"""Tests for UrlIndex."""

import threading

import pytest
from imagecache.cache.index import UrlIndex
from imagecache.cache.keys import derive_key
from imagecache.errors import InvalidArgumentError

LOGO = "https://example.com/logo.png"
BANNER = "https://example.com/banner.jpg"


class TestUrlIndex:
    """Tests for add/contains/clear."""

    def test_add_and_contains(self):
        """Test tracking a URL."""
        index = UrlIndex()
        assert index.add(LOGO) is True
        assert index.contains(LOGO)
        assert LOGO in index
        assert len(index) == 1
        assert index.count == 1

    def test_add_twice(self):
        """Test that adding a URL twice keeps one entry."""
        index = UrlIndex()
        index.add(LOGO)
        assert index.add(LOGO) is False
        assert len(index) == 1

    def test_contains_uses_absolute_form(self):
        """Test that equivalent spellings of a URL match."""
        index = UrlIndex()
        index.add("HTTPS://Example.com:443/logo.png")
        assert index.contains(LOGO)
        assert index.urls() == [LOGO]

    def test_add_with_explicit_key(self):
        """Test that a precomputed key is used as is."""
        index = UrlIndex()
        index.add(LOGO, key=derive_key(LOGO))
        assert index.contains(LOGO)

    def test_clear(self):
        """Test that clear forgets everything."""
        index = UrlIndex()
        index.add(LOGO)
        index.add(BANNER)
        index.clear()
        assert len(index) == 0
        assert not index.contains(LOGO)

    def test_contains_rejects_none(self):
        """Test that None is an invalid argument."""
        with pytest.raises(InvalidArgumentError):
            UrlIndex().contains(None)

    def test_non_string_not_in_index(self):
        """Test the in operator with non-strings."""
        assert 42 not in UrlIndex()

    def test_concurrent_adds(self):
        """Test that concurrent adds are not lost."""
        index = UrlIndex()
        urls = [f"https://example.com/{i}.png" for i in range(400)]

        def worker(chunk):
            for url in chunk:
                index.add(url)

        threads = [threading.Thread(target=worker, args=(urls[i::4],)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(index) == 400


class TestRebuildFromDisk:
    """Tests for rebuild_from_disk()."""

    def test_unknown_keys_become_opaque(self):
        """Test that keys without a known URL are counted but not matched."""
        index = UrlIndex()
        total = index.rebuild_from_disk([derive_key(LOGO), derive_key(BANNER)])
        assert total == 2
        assert len(index) == 2
        assert index.urls() == []
        assert not index.contains(LOGO)

    def test_known_urls_survive(self):
        """Test that URLs whose files exist keep their association."""
        index = UrlIndex()
        index.add(LOGO)
        index.rebuild_from_disk([derive_key(LOGO), derive_key(BANNER)])
        assert index.contains(LOGO)
        assert index.urls() == [LOGO]
        assert len(index) == 2

    def test_missing_files_dropped(self):
        """Test that URLs without a file are removed."""
        index = UrlIndex()
        index.add(LOGO)
        index.add(BANNER)
        index.rebuild_from_disk([derive_key(BANNER)])
        assert not index.contains(LOGO)
        assert index.contains(BANNER)
        assert len(index) == 1

    def test_empty_disk(self):
        """Test rebuilding from an empty directory."""
        index = UrlIndex()
        index.add(LOGO)
        assert index.rebuild_from_disk([]) == 0
        assert len(index) == 0
