"""Per-wallet portfolio snapshot cache."""

import logging

from wallet_portfolio.cache.ttl import Clock, TTLCache
from wallet_portfolio.core.models import CacheStats, PortfolioSnapshot

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_TTL = 300


def make_key(wallet_address: str, chain_id: int, include_hidden: bool = False) -> str:
    """
    Build the cache key for a wallet/chain pair.

    The default (preset-only) view uses ``wallet|chainId``; the view that
    includes hidden tokens is stored next to it under ``wallet|chainId|all``.

    """
    key = f"{wallet_address.lower()}|{chain_id}"
    if include_hidden:
        key += "|all"
    return key


class SnapshotCache:
    """
    Memoizes portfolio snapshots per (wallet, chain) for a bounded TTL.

    Parameters
    ----------
    ttl : int
        Default time-to-live in seconds
    clock : Clock | None
        Time source, injectable for tests

    """

    def __init__(self, ttl: int = DEFAULT_SNAPSHOT_TTL, clock: Clock | None = None) -> None:
        self.ttl = ttl
        self._cache = TTLCache(default_ttl=ttl, clock=clock)

    def get(self, wallet_address: str, chain_id: int, include_hidden: bool = False) -> PortfolioSnapshot | None:
        return self._cache.get(make_key(wallet_address, chain_id, include_hidden))

    def put(
        self,
        wallet_address: str,
        chain_id: int,
        snapshot: PortfolioSnapshot,
        ttl: int | None = None,
        include_hidden: bool = False,
    ) -> None:
        self._cache.set(make_key(wallet_address, chain_id, include_hidden), snapshot, ttl)

    def invalidate(self, wallet_address: str) -> int:
        """
        Drop every cached snapshot of a wallet, across all chains.

        Parameters
        ----------
        wallet_address : str
            Wallet address, any case

        Returns
        -------
        int
            Number of entries removed

        """
        prefix = f"{wallet_address.lower()}|"
        removed = self._cache.delete_matching(lambda key: key.startswith(prefix))
        logger.info("Cleared cache for wallet %s, removed %d entries", wallet_address, removed)
        return removed

    def stats(self) -> CacheStats:
        return CacheStats(
            count=len(self._cache),
            hits=self._cache.hits,
            misses=self._cache.misses,
            ttl=self.ttl,
        )

    def clear(self) -> None:
        self._cache.clear()
