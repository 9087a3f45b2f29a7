"""In-memory TTL caches for snapshots and prices."""

from wallet_portfolio.cache.snapshot import SnapshotCache, make_key
from wallet_portfolio.cache.ttl import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "SnapshotCache",
    "TTLCache",
    "make_key",
]
