"""Resolution engine and lifecycle operations."""

from .engine import ImageCache, resolve_blocking
from .lifecycle import LifecycleManager, format_size

__all__ = [
    "ImageCache",
    "LifecycleManager",
    "format_size",
    "resolve_blocking",
]
