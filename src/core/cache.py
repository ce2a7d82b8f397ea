"""In-memory TTL cache with LRU eviction, statistics and event hooks.

Entries expire lazily: an expired entry is dropped the next time it is
read (get/has) or by an explicit cleanup() sweep. When the cache is full,
inserting a new key evicts the least recently accessed entry.

One instance per purpose (application cache, Jellyfin API responses) is
built at startup and passed to whoever needs it.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import re
import time
from collections import OrderedDict
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Hashable,
    List,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

import structlog

from core.errors import ValidationError
from core.models import CACHE_EVENTS, CacheEntry, CacheEvent, CacheStats, CacheStatsSnapshot

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class _Unset(enum.Enum):
    TOKEN = 0


# Marker for "use the cache's default TTL"; None means "never expires".
UNSET = _Unset.TOKEN

TTL = Union[float, None, _Unset]
Listener = Callable[..., Any]


class TTLCache(Generic[T]):
    """Process-local cache keyed by strings (any hashable works).

    TTL rules for set()/get_or_set():
      - ttl omitted: default_ttl_seconds
      - ttl=None: never expires
      - ttl <= 0: expires immediately

    Events and listener arguments:
      set (key, value), delete (key), clear (), expired (key),
      evict (key), error (key, exc)
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: Optional[float] = 300.0,
        max_size: int = 1000,
        enable_stats: bool = True,
        name: str = "cache",
    ) -> None:
        self._default_ttl = None if default_ttl_seconds is None else float(default_ttl_seconds)
        self._max_size = max(1, int(max_size))
        self._enable_stats = bool(enable_stats)
        self._name = name

        # Front of the OrderedDict is the least recently used entry
        self._store: "OrderedDict[Hashable, CacheEntry[T]]" = OrderedDict()
        self._stats = CacheStats()
        self._listeners: Dict[str, List[Listener]] = {}
        self._inflight: Dict[Hashable, "asyncio.Future[T]"] = {}
        self._log = logger.bind(cache=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return self.has(key)

    def keys(self) -> List[Hashable]:
        return list(self._store)

    # --- Reads ---

    def get(self, key: Hashable, default: Optional[T] = None) -> Optional[T]:
        found, value = self._lookup(key)
        return value if found else default

    def has(self, key: Hashable) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False

        if entry.is_expired(time.monotonic()):
            self._expire(key)
            return False

        return True

    def get_entry(self, key: Hashable) -> Optional[CacheEntry[T]]:
        """Raw entry with its metadata; no expiry check, no statistics."""
        return self._store.get(key)

    # --- Writes ---

    def set(self, key: Hashable, value: T, ttl: TTL = UNSET) -> None:
        if key not in self._store and len(self._store) >= self._max_size:
            self._evict_lru()

        now = time.monotonic()
        self._store[key] = CacheEntry(
            value=value,
            created_at=now,
            expires_at=self._expires_at(now, ttl),
            hit_count=0,
            last_accessed_at=now,
        )
        # Overwrites count as fresh access
        self._store.move_to_end(key, last=True)

        if self._enable_stats:
            self._stats.sets += 1
        self._emit("set", key, value)

    def delete(self, key: Hashable) -> bool:
        # A computation started before the delete must not write back
        self._inflight.pop(key, None)
        if self._store.pop(key, None) is None:
            return False

        if self._enable_stats:
            self._stats.deletes += 1
        self._emit("delete", key)
        return True

    def clear(self) -> None:
        self._store.clear()
        self._inflight.clear()
        self._emit("clear")

    def invalidate_pattern(self, pattern: Union[str, "re.Pattern[str]"]) -> int:
        """Delete every key whose string form matches `pattern` (re.search).

        Matching is substring-based; anchor with '^'/'$' for whole keys.
        Returns the number of entries removed.
        """
        if isinstance(pattern, re.Pattern):
            regex = pattern
        else:
            try:
                regex = re.compile(pattern)
            except (re.error, TypeError) as e:
                raise ValidationError(f"Invalid cache key pattern: {pattern!r}") from e

        for key in list(self._inflight):
            if regex.search(str(key)):
                del self._inflight[key]

        count = 0
        for key in list(self._store):
            if regex.search(str(key)) and self.delete(key):
                count += 1
        return count

    def cleanup(self) -> int:
        """Sweep expired entries now instead of waiting for the next read."""
        now = time.monotonic()
        expired = [key for key, entry in self._store.items() if entry.is_expired(now)]
        for key in expired:
            self._expire(key)
        return len(expired)

    # --- Compute-through ---

    def get_or_set(self, key: Hashable, compute: Callable[[], T], ttl: TTL = UNSET) -> T:
        found, value = self._lookup(key)
        if found:
            return value  # type: ignore[return-value]

        try:
            value = compute()
        except Exception as exc:
            self._emit("error", key, exc)
            raise

        self.set(key, value, ttl)
        return value

    async def get_or_set_async(
        self,
        key: Hashable,
        compute: Callable[[], Union[Awaitable[T], T]],
        ttl: TTL = UNSET,
    ) -> T:
        """Async get-or-compute with one in-flight computation per key.

        Concurrent misses on the same key await the same computation, so
        `compute` runs once and every caller sees its result or its error.
        Cancelling one caller does not cancel the shared computation.
        Deleting or clearing the key while it computes detaches that
        computation: its callers still get its result, but it is not
        stored and later callers start a fresh one.
        """
        found, value = self._lookup(key)
        if found:
            return value  # type: ignore[return-value]

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._compute_and_store(key, compute, ttl))
            self._inflight[key] = pending
            pending.add_done_callback(self._consume_error)

        return await asyncio.shield(pending)

    # --- Statistics ---

    def get_stats(self) -> CacheStatsSnapshot:
        s = self._stats
        return CacheStatsSnapshot(
            hits=s.hits,
            misses=s.misses,
            sets=s.sets,
            deletes=s.deletes,
            evictions=s.evictions,
            size=len(self._store),
            hit_rate=s.hit_rate(),
            max_size=self._max_size,
        )

    def reset_stats(self) -> None:
        self._stats.reset()

    def debug(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of the current contents keyed by str(key)."""
        now = time.monotonic()
        out: Dict[str, Dict[str, Any]] = {}
        for key, entry in self._store.items():
            out[str(key)] = {
                "value": entry.value,
                "hit_count": entry.hit_count,
                "age_seconds": round(now - entry.created_at, 3),
                "expires_in_seconds": (
                    None if entry.expires_at is None else round(entry.expires_at - now, 3)
                ),
            }
        return out

    # --- Events ---

    def on(self, event: CacheEvent, callback: Listener) -> Callable[[], bool]:
        """Register `callback` for `event`; returns a function that unsubscribes it."""
        if event not in CACHE_EVENTS:
            raise ValidationError(f"Unknown cache event: {event!r}")
        self._listeners.setdefault(event, []).append(callback)
        return lambda: self.off(event, callback)

    def off(self, event: CacheEvent, callback: Listener) -> bool:
        callbacks = self._listeners.get(event)
        if not callbacks or callback not in callbacks:
            return False
        callbacks.remove(callback)
        return True

    def _emit(self, event: str, *args: Any) -> None:
        # Snapshot so listeners can unsubscribe while being called
        for callback in list(self._listeners.get(event, ())):
            try:
                callback(*args)
            except Exception:
                self._log.exception("cache_listener_failed", cache_event=event)

    # --- Internals ---

    def _lookup(self, key: Hashable) -> Tuple[bool, Optional[T]]:
        entry = self._store.get(key)
        if entry is None:
            if self._enable_stats:
                self._stats.misses += 1
            return False, None

        now = time.monotonic()
        if entry.is_expired(now):
            self._store.pop(key, None)
            if self._enable_stats:
                self._stats.misses += 1
            self._emit("expired", key)
            return False, None

        if self._enable_stats:
            self._stats.hits += 1
        entry.hit_count += 1
        entry.last_accessed_at = now
        self._store.move_to_end(key, last=True)
        return True, entry.value

    def _expire(self, key: Hashable) -> None:
        self._store.pop(key, None)
        self._emit("expired", key)

    def _expires_at(self, now: float, ttl: TTL) -> Optional[float]:
        if ttl is UNSET:
            ttl = self._default_ttl
        if ttl is None:
            return None
        # ttl <= 0 yields an entry that is already expired
        return now + float(ttl)

    def _evict_lru(self) -> None:
        if not self._store:
            return
        victim, _ = self._store.popitem(last=False)
        if self._enable_stats:
            self._stats.evictions += 1
        self._emit("evict", victim)

    async def _compute_and_store(
        self,
        key: Hashable,
        compute: Callable[[], Union[Awaitable[T], T]],
        ttl: TTL,
    ) -> T:
        # Runs as the task registered in _inflight[key]
        task = asyncio.current_task()
        try:
            try:
                result = compute()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                self._emit("error", key, exc)
                raise

            if self._inflight.get(key) is task:
                self.set(key, result, ttl)  # type: ignore[arg-type]
            return result  # type: ignore[return-value]
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    @staticmethod
    def _consume_error(fut: "asyncio.Future[Any]") -> None:
        # Mark the error retrieved when every waiter was cancelled
        if not fut.cancelled():
            fut.exception()
