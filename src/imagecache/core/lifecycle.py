"""Bulk cache operations: purge, restore, report and save."""

import logging
from collections.abc import Awaitable
from typing import Callable

from ..cache import BlobStore, UrlIndex

logger = logging.getLogger(__name__)

# Binary units, largest first
SIZE_UNITS = (
    ("GiB", 1024**3),
    ("MiB", 1024**2),
    ("KiB", 1024),
)


def format_size(size: int) -> str:
    """
    Format a byte count using the largest binary unit it fills at least once.

    Values are rounded down to whole units.

    Examples:
        >>> format_size(127934)
        '124 KiB'
        >>> format_size(0)
        '0 bytes'
    """
    for unit, factor in SIZE_UNITS:
        if size // factor >= 1:
            return f"{size // factor} {unit}"
    return f"{size} bytes"


class LifecycleManager:
    """
    Whole-cache operations working on the blob store and resyncing the index.

    Each operation returns a short human-readable status line suitable for a
    status bar or CLI output.
    """

    def __init__(
        self,
        store: BlobStore,
        index: UrlIndex,
        keep: Callable[[str], Awaitable[None]],
    ) -> None:
        """
        Initialize the manager.

        Args:
            store: Blob store holding the cached files
            index: Index of tracked URLs
            keep: Coroutine function that makes sure one URL is cached
        """
        self._store = store
        self._index = index
        self._keep = keep

    def purge(self) -> str:
        """
        Delete every cached file and the cache directory.

        The index is left untouched, so save() can write the tracked URLs back.
        A missing directory is reported, not raised.
        """
        root = self._store.root
        if not self._store.delete_all():
            logger.info(f"Nothing to purge at {root}")
            return f"{root} wasn't there."

        logger.info(f"Purged image cache at {root}")
        return f"Image cache purged from {root}."

    def restore(self) -> str:
        """
        Resync the index with the files on disk and report the item count.

        URLs cannot be recovered from filenames; files with no known URL are
        tracked as opaque entries.
        """
        keys = self._store.list_keys()
        self._index.rebuild_from_disk(keys)
        logger.info(f"Restored {len(keys)} entries from {self._store.root}")
        return f"{len(keys)} items in cache."

    def report(self) -> str:
        """Item count and total size of the cache, e.g. '3 items in cache (124 KiB).'"""
        count = len(self._store.list_keys())
        size = self._store.total_size()
        return f"{count} items in cache ({format_size(size)})."

    async def save(self) -> str:
        """
        Make sure every tracked URL has a file on disk.

        Files that already exist are left alone; missing ones are fetched
        again. Opaque entries have no URL and are skipped.
        """
        urls = self._index.urls()
        for url in urls:
            await self._keep(url)

        logger.info(f"Saved {len(urls)} tracked URLs to {self._store.root}")
        return "Tracked URIs saved to cache."
