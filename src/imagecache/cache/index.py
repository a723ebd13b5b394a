"""In-memory index of URLs known to be cached."""

import logging
import threading
from collections.abc import Iterable
from typing import Optional

from .keys import absolute_url, derive_key

logger = logging.getLogger(__name__)


class UrlIndex:
    """
    Track which URLs are believed to be cached.

    The index maps cache keys to absolute URLs. It is a fast-path hint only:
    a file can disappear from disk while its URL is still listed, so callers
    must confirm presence with the blob store before serving a hit.

    Keys are one-way hashes, so rebuilding from disk cannot recover URLs.
    Entries found on disk without a known URL are kept as opaque keys
    (mapped to None); they count toward len() but never match contains().

    All mutations are guarded by a lock so concurrent check-then-add
    sequences do not lose updates.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def add(self, url: str, key: Optional[str] = None) -> bool:
        """
        Record a URL as cached.

        Args:
            url: URL that is now cached
            key: Its cache key, derived from url if omitted

        Returns:
            True if the URL was not tracked before
        """
        absolute = absolute_url(url)
        if key is None:
            key = derive_key(absolute)
        with self._lock:
            if self._entries.get(key) == absolute:
                return False
            self._entries[key] = absolute
            return True

    def contains(self, url: str) -> bool:
        """Check whether a URL is tracked (O(1) lookup)."""
        absolute = absolute_url(url)
        key = derive_key(absolute)
        with self._lock:
            return self._entries.get(key) == absolute

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.contains(url)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def count(self) -> int:
        """Number of tracked entries, including opaque ones."""
        return len(self)

    def urls(self) -> list[str]:
        """
        Get the tracked URLs.

        Returns:
            List of known URLs (opaque entries excluded)
        """
        with self._lock:
            return [url for url in self._entries.values() if url is not None]

    def clear(self) -> None:
        """Forget all tracked entries. Files on disk are not touched."""
        with self._lock:
            self._entries.clear()

    def rebuild_from_disk(self, keys: Iterable[str]) -> int:
        """
        Resync the index with the keys present on disk.

        Known URLs whose files still exist are kept, known URLs whose files
        are gone are dropped, and every other key is added as an opaque
        entry.

        Args:
            keys: Keys currently stored on disk

        Returns:
            Number of entries after the rebuild
        """
        on_disk = set(keys)
        with self._lock:
            rebuilt: dict[str, Optional[str]] = {key: None for key in on_disk}
            for key, url in self._entries.items():
                if key in on_disk and url is not None:
                    rebuilt[key] = url
            dropped = len(self._entries) - sum(1 for key in self._entries if key in on_disk)
            self._entries = rebuilt
            total = len(rebuilt)

        if dropped:
            logger.info(f"Dropped {dropped} index entries with no file on disk")
        return total
