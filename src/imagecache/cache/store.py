"""Filesystem storage for cached blobs."""

import logging
import os
import shutil
import time
import uuid
from pathlib import Path
from typing import Union

from ..errors import NotFoundError

logger = logging.getLogger(__name__)

# Suffix of in-progress writes, never reported as blobs
PARTIAL_SUFFIX = ".part"


class BlobStore:
    """
    Read, write and delete raw byte blobs in a flat directory.

    Each blob is a single file named by its cache key. The root directory is
    created on demand by every operation except delete_all(), so callers
    never need a separate initialization step.

    Writes are write-once: if a blob already exists it is left untouched.
    Content goes to a temporary file first and is moved into place with
    os.replace(), so a reader never observes a half-written blob.

    Example:
        store = BlobStore(Path("~/.cache/imagecache/images").expanduser())
        store.write(key, data)
        assert store.read(key) == data
    """

    def __init__(self, root: Union[str, Path]):
        """
        Initialize the store.

        Args:
            root: Directory holding the blobs (created lazily)
        """
        self.root = Path(root)

    def _ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Return the on-disk path of a key (no existence check)."""
        return self.root / key

    def exists(self, key: str) -> bool:
        """Check whether a blob is stored under key."""
        self._ensure_root()
        return self.path_for(key).is_file()

    def read(self, key: str) -> bytes:
        """
        Read a blob.

        Raises:
            NotFoundError: If no blob is stored under key
        """
        self._ensure_root()
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError as err:
            raise NotFoundError(key) from err

    def write(self, key: str, data: bytes) -> bool:
        """
        Store a blob unless one already exists under key.

        Args:
            key: Cache key used as filename
            data: Raw bytes (may be empty)

        Returns:
            True if the blob was written, False if it already existed
        """
        self._ensure_root()
        target = self.path_for(key)
        if target.exists():
            logger.debug(f"Blob {key} already stored, leaving it unchanged")
            return False

        partial = self.root / f"{key}.{uuid.uuid4().hex}{PARTIAL_SUFFIX}"
        try:
            partial.write_bytes(data)
            if target.exists():
                # Another writer finished first
                return False
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)

        logger.debug(f"Stored blob {key} ({len(data)} bytes)")
        return True

    def delete(self, key: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if a blob was removed, False if none existed
        """
        self._ensure_root()
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return False
        return True

    def delete_all(self) -> bool:
        """
        Delete every blob and then the root directory itself.

        Returns:
            True if the root existed and was removed, False if it was absent
        """
        if not self.root.is_dir():
            return False

        for entry in self.root.iterdir():
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        self.root.rmdir()
        return True

    def list_keys(self) -> list[str]:
        """List the keys of all stored blobs, sorted."""
        self._ensure_root()
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_file() and not entry.name.endswith(PARTIAL_SUFFIX)
        )

    def size(self, key: str) -> int:
        """
        Size of a blob in bytes.

        Raises:
            NotFoundError: If no blob is stored under key
        """
        self._ensure_root()
        try:
            return self.path_for(key).stat().st_size
        except FileNotFoundError as err:
            raise NotFoundError(key) from err

    def total_size(self) -> int:
        """Sum of the sizes of all stored blobs in bytes."""
        return sum(self.path_for(key).stat().st_size for key in self.list_keys())

    def age(self, key: str) -> float:
        """
        Seconds since a blob was last written.

        Raises:
            NotFoundError: If no blob is stored under key
        """
        self._ensure_root()
        try:
            mtime = self.path_for(key).stat().st_mtime
        except FileNotFoundError as err:
            raise NotFoundError(key) from err
        return max(0.0, time.time() - mtime)
