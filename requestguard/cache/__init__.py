"""Response caching layer.

This module contains:
- RequestKeyGenerator for request fingerprints
- CacheStore, a TTL store of processed payloads
- Cache metrics tracking
"""

from requestguard.cache.keys import RequestKeyGenerator, canonicalize
from requestguard.cache.store import (
    DEFAULT_CACHE_TIME,
    DEFAULT_MAX_SIZE,
    CacheEntry,
    CacheMetrics,
    CacheStore,
)

__all__ = [
    # Core classes
    "CacheEntry",
    "CacheMetrics",
    "CacheStore",
    "RequestKeyGenerator",
    # Defaults
    "DEFAULT_CACHE_TIME",
    "DEFAULT_MAX_SIZE",
    # Utilities
    "canonicalize",
]
