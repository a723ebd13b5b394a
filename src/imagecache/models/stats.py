"""Counters collected while resolving URLs."""

from dataclasses import dataclass


@dataclass
class CacheStats:
    """
    Cumulative statistics for an ImageCache instance.

    A hit is a resolution served from disk, a miss one that went to the
    network (successfully or not).
    """

    hits: int = 0
    misses: int = 0
    fetch_failures: int = 0
    expired: int = 0
    bytes_fetched: int = 0

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100

    def to_dict(self) -> dict:
        """Convert stats to dictionary for serialization."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "fetch_failures": self.fetch_failures,
            "expired": self.expired,
            "bytes_fetched": self.bytes_fetched,
            "hit_rate": round(self.hit_rate, 1),
        }
