"""Key derivation, blob storage and URL index for imagecache."""

from .index import UrlIndex
from .keys import absolute_url, derive_key
from .store import PARTIAL_SUFFIX, BlobStore

__all__ = [
    "BlobStore",
    "PARTIAL_SUFFIX",
    "UrlIndex",
    "absolute_url",
    "derive_key",
]
