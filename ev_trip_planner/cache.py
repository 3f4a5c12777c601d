"""
Time-bounded in-process cache used by the condition sampler and the station
aggregator.

Entries expire lazily: a stale entry is dropped when it is next looked up (or
when cachetools trims on insert), never by a background timer. The clock is
injectable so tests can move time forward deterministically.
"""
import logging
import time
from typing import Any, Callable, Hashable, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)


class ExpiringCache:
    """Bounded TTL cache with a pluggable monotonic clock"""

    def __init__(self, name: str, ttl_seconds: float, maxsize: int = 1024,
                 clock: Optional[Callable[[], float]] = None):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock or time.monotonic)
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        value = self._cache.get(key)
        if value is None:
            self.misses += 1
            logger.debug(f"{self.name} cache miss for {key}")
            return None
        self.hits += 1
        logger.debug(f"{self.name} cache hit for {key}")
        return value

    def put(self, key: Hashable, value: Any) -> None:
        self._cache[key] = value

    def clear(self) -> None:
        self._cache.clear()
        logger.info(f"{self.name} cache cleared")

    def __len__(self) -> int:
        return len(self._cache)

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "entries": len(self._cache),
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
        }
