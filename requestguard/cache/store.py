"""In-memory TTL store for processed response payloads.

Features:
- Scheduled eviction on the running event loop, so memory stays bounded
  without reads
- Wall-clock check on read as a guard against timer drift
- Oldest-first eviction when max_size is reached
- Hit/miss/eviction metrics

Entries always hold the final payload (decrypted and masked). The store
does not decide which requests are cacheable; callers gate eligibility.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Default time to live in milliseconds
DEFAULT_CACHE_TIME = 5000
# Default maximum number of entries
DEFAULT_MAX_SIZE = 50

_UNSET: Any = object()


@dataclass
class CacheEntry:
    """A cached payload and its expiry.

    Attributes:
        key: Request fingerprint.
        payload: Final processed payload.
        expires_at: Monotonic deadline in seconds.
        timer: Scheduled eviction handle.
    """

    key: str
    payload: Any
    expires_at: float
    timer: asyncio.TimerHandle | None = None

    @property
    def is_expired(self) -> bool:
        """Check the entry against the monotonic clock."""
        return time.monotonic() >= self.expires_at


@dataclass
class CacheMetrics:
    """Metrics for cache performance.

    Attributes:
        hits: Number of cache hits.
        misses: Number of cache misses.
        evictions: Entries dropped by TTL or size limit.
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache lookups."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        if self.total_requests == 0:
            return 0.0
        return (self.hits / self.total_requests) * 100

    def record_hit(self) -> None:
        """Record a cache hit."""
        self.hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.misses += 1

    def record_eviction(self) -> None:
        """Record an eviction."""
        self.evictions += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "total_requests": self.total_requests,
            "hit_rate": round(self.hit_rate, 2),
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self.hits = 0
        self.misses = 0
        self.evictions = 0


class CacheStore:
    """TTL-keyed store scoped to one client instance.

    Example:
        cache = CacheStore()
        await cache.set(key, payload, cache_time=10_000)
        payload = await cache.get(key)
    """

    def __init__(
        self,
        cache_time: int = DEFAULT_CACHE_TIME,
        max_size: int | None = DEFAULT_MAX_SIZE,
    ) -> None:
        """Initialize the store.

        Args:
            cache_time: Default time to live in milliseconds.
            max_size: Default entry limit, None for unbounded.
        """
        self.cache_time = cache_time
        self.max_size = max_size
        self.metrics = CacheMetrics()
        self._entries: dict[str, CacheEntry] = {}

    @property
    def size(self) -> int:
        """Number of stored entries."""
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired

    async def get(self, key: str, default: Any = None) -> Any:
        """Get a payload from the store.

        Args:
            key: Request fingerprint.
            default: Returned when the key is absent or expired.

        Returns:
            Cached payload or default.
        """
        entry = self._entries.get(key)
        if entry is None:
            self.metrics.record_miss()
            logger.debug("cache_miss", key=key)
            return default

        if entry.is_expired:
            self._evict(key, reason="expired_on_read")
            self.metrics.record_miss()
            logger.debug("cache_miss", key=key, expired=True)
            return default

        self.metrics.record_hit()
        logger.debug("cache_hit", key=key)
        return entry.payload

    async def set(
        self,
        key: str,
        payload: Any,
        cache_time: int | None = None,
        max_size: int | None = _UNSET,
    ) -> bool:
        """Store a payload.

        Args:
            key: Request fingerprint.
            payload: Final processed payload.
            cache_time: Time to live in milliseconds, defaults to the store's.
            max_size: Entry limit, None for unbounded. Defaults to the
                store's limit when omitted.

        Returns:
            True if the payload was stored.
        """
        ttl_ms = self.cache_time if cache_time is None else cache_time
        limit = self.max_size if max_size is _UNSET else max_size
        if ttl_ms <= 0:
            logger.debug("cache_set_skipped", key=key, cache_time=ttl_ms)
            return False

        if key in self._entries:
            self._evict(key, reason="replaced", count=False)
        elif limit is not None and limit > 0:
            while len(self._entries) >= limit:
                oldest = next(iter(self._entries))
                self._evict(oldest, reason="max_size")

        ttl = ttl_ms / 1000
        loop = asyncio.get_running_loop()
        entry = CacheEntry(key=key, payload=payload, expires_at=time.monotonic() + ttl)
        entry.timer = loop.call_later(ttl, self._expire, key, entry)
        self._entries[key] = entry
        logger.debug("cache_set", key=key, cache_time=ttl_ms)
        return True

    async def remove(self, key: str) -> bool:
        """Remove an entry.

        Args:
            key: Request fingerprint.

        Returns:
            True if an entry was removed.
        """
        return self._evict(key, reason="removed", count=False)

    async def clear(self) -> None:
        """Remove all entries and cancel their timers."""
        for entry in self._entries.values():
            if entry.timer is not None:
                entry.timer.cancel()
        count = len(self._entries)
        self._entries.clear()
        logger.info("cache_cleared", entries=count)

    def _expire(self, key: str, entry: CacheEntry) -> None:
        """Timer callback: evict the entry if it was not replaced meanwhile."""
        if self._entries.get(key) is entry:
            self._evict(key, reason="expired")

    def _evict(self, key: str, *, reason: str, count: bool = True) -> bool:
        """Drop an entry and cancel its timer."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        if count:
            self.metrics.record_eviction()
        logger.debug("cache_evicted", key=key, reason=reason)
        return True

    def get_metrics(self) -> dict[str, Any]:
        """Get cache metrics."""
        return self.metrics.to_dict()

    def reset_metrics(self) -> None:
        """Reset cache metrics."""
        self.metrics.reset()
