"""Deterministic cache keys derived from URLs."""

from __future__ import annotations

import hashlib
import uuid
from typing import Any
from urllib.parse import quote, urlsplit, urlunsplit

from ..errors import InvalidArgumentError, MalformedInputError

DEFAULT_PORTS = {"http": 80, "https": 443}

# Characters left untouched when escaping path and query
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"


def absolute_url(url: Any) -> str:
    """
    Return the normalized absolute form of a URL.

    Lowercases scheme and host, drops the scheme's default port, turns an
    empty path into ``/`` and percent-encodes unsafe characters in the path,
    query and fragment. Existing escapes are kept as given.

    Args:
        url: URL string to normalize

    Returns:
        Absolute URL string

    Raises:
        InvalidArgumentError: If url is None, empty or not a string
        MalformedInputError: If url has no scheme or network location
    """
    if url is None:
        raise InvalidArgumentError("url must not be None")
    if not isinstance(url, str):
        raise InvalidArgumentError(f"url must be a string, not {type(url).__name__}")
    if not url.strip():
        raise InvalidArgumentError("url must not be empty")

    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError as err:
        raise MalformedInputError(f"Invalid URL: {url!r}") from err

    if not parts.scheme or not parts.netloc or not parts.hostname:
        raise MalformedInputError(f"Not an absolute URL: {url!r}")
    if any(ch.isspace() for ch in parts.hostname):
        raise MalformedInputError(f"Invalid host in URL: {url!r}")

    scheme = parts.scheme.lower()
    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"

    userinfo, sep, _ = parts.netloc.rpartition("@")
    netloc = f"{userinfo}@{host}" if sep else host

    path = quote(parts.path, safe=_PATH_SAFE) or "/"
    query = quote(parts.query, safe=_QUERY_SAFE)
    fragment = quote(parts.fragment, safe=_QUERY_SAFE)

    return urlunsplit((scheme, netloc, path, query, fragment))


def derive_key(url: Any) -> str:
    """
    Compute the cache key (and on-disk filename) for a URL.

    The first 16 bytes of the SHA-256 digest of the absolute URL seed a
    UUID in little-endian field order, so the same URL always maps to the
    same name and the name reveals nothing about the URL.

    Raises:
        InvalidArgumentError: If url is None, empty or not a string
        MalformedInputError: If url is not absolute
    """
    digest = hashlib.sha256(absolute_url(url).encode("utf-8")).digest()
    return str(uuid.UUID(bytes_le=digest[:16]))
