"""TTL-based in-memory cache with an injectable clock."""

import time
from collections.abc import Callable, Iterator
from typing import Any

Clock = Callable[[], float]


class CacheEntry:
    """
    Cache entry with TTL support.

    Parameters
    ----------
    value : Any
        Cached value
    ttl : float
        Time-to-live in seconds
    created_at : float
        Creation timestamp, in the owning cache's clock

    """

    __slots__ = ("created_at", "ttl", "value")

    def __init__(self, value: Any, ttl: float, created_at: float) -> None:
        self.value = value
        self.ttl = ttl
        self.created_at = created_at

    def is_expired(self, now: float) -> bool:
        """
        Check if cache entry has expired.

        Parameters
        ----------
        now : float
            Current time in the owning cache's clock

        Returns
        -------
        bool
            True if expired, False otherwise

        """
        return (now - self.created_at) >= self.ttl


class TTLCache:
    """
    Key/value cache whose entries expire after a TTL.

    Entries are only ever replaced wholesale, so readers interleaved with
    writers on the event loop see either the old or the new value.

    Parameters
    ----------
    default_ttl : float
        Default time-to-live in seconds for cache entries
    clock : Clock | None
        Monotonic time source. Uses ``time.monotonic`` if None.

    """

    def __init__(self, default_ttl: float = 300, clock: Clock | None = None) -> None:
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._cache: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        """
        Get cached value if it exists and hasn't expired.

        Parameters
        ----------
        key : str
            Cache key

        Returns
        -------
        Any | None
            Cached value if found and valid, None otherwise

        """
        entry = self._cache.get(key)

        if entry is None:
            self.misses += 1
            return None

        if entry.is_expired(self._clock()):
            del self._cache[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store value in cache with TTL, replacing any previous entry.

        Parameters
        ----------
        key : str
            Cache key
        value : Any
            Value to cache
        ttl : float | None
            Time-to-live in seconds. Uses default_ttl if None.

        """
        ttl = self.default_ttl if ttl is None else ttl
        self._cache[key] = CacheEntry(value, ttl, self._clock())

    def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    def delete_matching(self, predicate: Callable[[str], bool]) -> int:
        """
        Remove every entry whose key satisfies ``predicate``.

        Returns
        -------
        int
            Number of entries removed

        """
        doomed = [key for key in self._cache if predicate(key)]
        for key in doomed:
            del self._cache[key]
        return len(doomed)

    def keys(self) -> Iterator[str]:
        return iter(list(self._cache))

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns
        -------
        int
            Number of entries removed

        """
        now = self._clock()
        return self.delete_matching(lambda key: self._cache[key].is_expired(now))

    def __len__(self) -> int:
        self.cleanup_expired()
        return len(self._cache)
