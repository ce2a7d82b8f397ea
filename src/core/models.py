"""Dataclasses shared by the cache and the tools that report on it.

Includes the per-key entry record (CacheEntry), the mutable counter set
(CacheStats) and the immutable report returned by TTLCache.get_stats().
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Generic, Literal, Optional, Tuple, TypeVar

T = TypeVar("T")


CacheEvent = Literal["set", "delete", "clear", "expired", "evict", "error"]

CACHE_EVENTS: Tuple[str, ...] = ("set", "delete", "clear", "expired", "evict", "error")


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    # Timestamps are time.monotonic() readings
    value: T
    created_at: float
    expires_at: Optional[float]  # None: never expires
    hit_count: int = 0
    last_accessed_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass(slots=True)
class CacheStats:
    """Monotonic counters; only reset() brings them back to zero."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.evictions = 0

    def hit_rate(self) -> str:
        lookups = self.hits + self.misses
        rate = (self.hits / lookups) * 100 if lookups > 0 else 0.0
        return f"{rate:.2f}%"


@dataclass(frozen=True, slots=True)
class CacheStatsSnapshot:
    """Point-in-time view of a cache's counters.

    Field groups:
    - Counters: hits, misses, sets, deletes, evictions
    - Derived: size, hit_rate ("NN.NN%")
    - Config: max_size
    """

    hits: int
    misses: int
    sets: int
    deletes: int
    evictions: int

    size: int
    hit_rate: str
    max_size: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
