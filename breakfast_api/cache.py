"""
Roster cache

Cache abstraction with pluggable eviction strategies. The breakfast service
caches the roster (user name -> row) of each month sheet so that every
check-in does not have to re-read the whole roster column.
"""
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional


class CacheStrategy(ABC):
    """Storage and eviction policy behind a cache."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        pass

    @abstractmethod
    def invalidate(self, key: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class NoCacheStrategy(CacheStrategy):
    """Never stores anything; every lookup is a miss."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        pass

    def invalidate(self, key: str) -> None:
        pass

    def clear(self) -> None:
        pass


class TimeBasedCacheStrategy(CacheStrategy):
    """
    Entries expire ``ttl`` seconds after they were set.

    Args:
        default_ttl: Lifetime in seconds used when ``set`` gets no ttl
        clock: Monotonic time source; tests pass a manual clock
    """

    def __init__(self, default_ttl: float = 300, clock: Optional[Callable[[], float]] = None):
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if self._clock() >= entry['expires_at']:
                del self._cache[key]
                return None
            return entry['value']

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._cache[key] = {
                'value': value,
                'expires_at': self._clock() + ttl
            }

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._cache.items() if now >= entry['expires_at']]
            for key in expired:
                del self._cache[key]
        return len(expired)


class RosterCache:
    """Per-sheet roster cache with hit/miss accounting."""

    def __init__(self, strategy: Optional[CacheStrategy] = None):
        self.strategy = strategy or NoCacheStrategy()
        self._hits = 0
        self._misses = 0

    def get(self, sheet_name: str) -> Optional[Any]:
        value = self.strategy.get(sheet_name)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    def set(self, sheet_name: str, roster: Any, ttl: Optional[float] = None) -> None:
        self.strategy.set(sheet_name, roster, ttl)

    def invalidate(self, sheet_name: str) -> None:
        self.strategy.invalidate(sheet_name)

    def clear(self) -> None:
        self.strategy.clear()
        self._hits = 0
        self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0
        return {
            'cache_hits': self._hits,
            'cache_misses': self._misses,
            'hit_rate': round(hit_rate, 2),
            'total_requests': total
        }
