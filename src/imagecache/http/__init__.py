"""HTTP transport for imagecache."""

from .client import AsyncHttpClient, ContentTooLargeError
from .fetcher import HttpFetcher
from .protocols import Fetcher, HttpClient, HttpResponse

__all__ = [
    "AsyncHttpClient",
    "ContentTooLargeError",
    "Fetcher",
    "HttpClient",
    "HttpFetcher",
    "HttpResponse",
]
