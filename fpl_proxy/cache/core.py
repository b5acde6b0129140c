"""
Core cache data structures.
"""
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CachePolicy:
    """
    Per-family caching behaviour, fixed when the pipeline is built.

    A ttl of zero means the family is never cached.
    """
    ttl_seconds: float = 0

    def __post_init__(self):
        if self.ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {self.ttl_seconds}")

    @property
    def caches(self) -> bool:
        return self.ttl_seconds > 0


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached payload and the clock reading it was stored at.

    Entries are replaced wholesale, never mutated.
    """
    value: Any
    stored_at: float
    ttl_seconds: float

    def age_seconds(self, now: float) -> float:
        """Seconds since the entry was stored."""
        return now - self.stored_at

    def is_fresh(self, now: float) -> bool:
        """Check if the entry is still within its TTL."""
        return now < self.stored_at + self.ttl_seconds
