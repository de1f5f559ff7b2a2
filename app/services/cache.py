"""
In-memory cache for country reads.

Entries carry their own time-to-live and a size cost. The cache holds at most
``maxsize`` units of cost in total and evicts least recently used entries
(expired ones first) to make room. Every operation takes the cache lock, so a
single instance can be shared by all request threads.
"""

import threading
import time
from typing import Any, Callable, NamedTuple, Optional, TypeVar
from urllib.parse import quote

from cachetools import TLRUCache
from structlog import get_logger

from app.config import Settings
from app.schemas.country import CountrySearchRequest

logger = get_logger()

T = TypeVar("T")

COUNTRY_KEY_PREFIX = "country:"
CONTINENTS_KEY = "country:continents"


class CacheEntry(NamedTuple):
    value: Any
    ttl: float
    size: int


def country_id_key(country_id: int) -> str:
    return f"country:id:{country_id}"


def _key_part(value: Optional[Any]) -> str:
    if value is None:
        return ""
    # Free text may itself contain the separator
    return quote(str(value), safe=" -+")


def country_search_key(request: CountrySearchRequest) -> str:
    """
    Compose a cache key from every search parameter.

    Two requests share a key only when they would run the same query.
    """
    parts = [
        request.name,
        request.continent,
        request.iso2,
        request.iso3,
        request.country_code,
        request.page_number,
        request.page_size,
        request.sort_by.value,
        request.sort_direction.value,
    ]
    return "country:search:" + ":".join(_key_part(p) for p in parts)


def _entry_ttu(_key, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


def _entry_size(entry: CacheEntry) -> int:
    return entry.size


class CountryCache:
    """
    Size bounded TTL cache with a narrow get/set/invalidate interface.
    """

    def __init__(
        self,
        maxsize: int = 1000,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._cache = TLRUCache(
            maxsize=maxsize, ttu=_entry_ttu, timer=timer, getsizeof=_entry_size
        )
        self._lock = threading.RLock()
        # Bumped by every invalidation
        self._generation = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "CountryCache":
        return cls(maxsize=settings.MAX_CACHE_SIZE)

    @property
    def maxsize(self) -> int:
        return self._cache.maxsize

    @property
    def currsize(self) -> int:
        with self._lock:
            self._cache.expire()
            return self._cache.currsize

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def keys(self) -> list[str]:
        with self._lock:
            self._cache.expire()
            return list(self._cache.keys())

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(key)
        if entry is None:
            logger.debug("Cache miss", key=key)
            return None
        logger.debug("Cache hit", key=key)
        return entry.value

    def set(self, key: str, value: Any, ttl: float, size: int = 1) -> bool:
        """
        Store ``value`` for ``ttl`` seconds at a cost of ``size`` units.

        Returns False when the entry alone is larger than the whole cache, in
        which case nothing is stored.
        """
        if size > self._cache.maxsize:
            logger.debug(
                "Entry too large to cache", key=key, size=size, maxsize=self.maxsize
            )
            with self._lock:
                self._cache.pop(key, None)
            return False
        with self._lock:
            self._cache[key] = CacheEntry(value, ttl, size)
        logger.debug("Cached entry", key=key, ttl=ttl, size=size)
        return True

    def get_or_set(
        self,
        key: str,
        factory: Callable[[], T],
        ttl: float,
        size: int | Callable[[T], int] = 1,
    ) -> T:
        """
        Return the live value for ``key``, computing and storing it on a miss.

        The factory runs outside the lock. A value computed while an
        invalidation happened is returned but not stored, so a read racing a
        write can't put pre-write data back into the cache.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        generation = self._generation
        value = factory()
        if value is not None:
            cost = size(value) if callable(size) else size
            with self._lock:
                if generation == self._generation:
                    self.set(key, value, ttl=ttl, size=cost)
                else:
                    logger.debug("Skipped caching value invalidated in flight", key=key)
        return value

    def invalidate(self, prefix: str = COUNTRY_KEY_PREFIX) -> int:
        """Remove every entry whose key starts with ``prefix``."""
        with self._lock:
            self._generation += 1
            stale = [k for k in self._cache.keys() if k.startswith(prefix)]
            for key in stale:
                self._cache.pop(key, None)
        logger.debug("Invalidated cache entries", prefix=prefix, count=len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._cache.clear()


class NullCountryCache(CountryCache):
    """A cache that stores nothing, every read goes to the database."""

    def set(self, key: str, value: Any, ttl: float, size: int = 1) -> bool:
        return False
