"""Exception types raised by imagecache."""

from __future__ import annotations


class ImageCacheError(Exception):
    """Base class for all imagecache errors."""


class InvalidArgumentError(ImageCacheError, ValueError):
    """A required URL was missing, empty, or not a string."""


class MalformedInputError(ImageCacheError, ValueError):
    """A URL string could not be parsed as an absolute URL."""


class FetchFailedError(ImageCacheError):
    """
    A resource could not be retrieved from the network.

    Attributes:
        url: The URL that was requested
        status_code: HTTP status of a non-success response, if one was received
        reason: Transport error description, if no response was received
    """

    def __init__(
        self,
        url: str,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            detail = f"HTTP {status_code}"
        else:
            detail = reason or "transport error"
        super().__init__(f"Failed to fetch {url}: {detail}")


class NotFoundError(ImageCacheError, FileNotFoundError):
    """A blob is not present in the store."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No cached blob for key {key}")
