"""Tiered USD price resolution for tokens."""

import asyncio
import logging
import math
from collections.abc import Mapping
from types import MappingProxyType

from wallet_portfolio.cache.ttl import Clock, TTLCache
from wallet_portfolio.integrations.coingecko import CoinGeckoClient

logger = logging.getLogger(__name__)

MAX_PLAUSIBLE_PRICE = 1_000_000


def is_usable_price(price: float | None) -> bool:
    """A price is usable when it is finite and strictly between 0 and 1,000,000."""
    return price is not None and math.isfinite(price) and 0 < price < MAX_PLAUSIBLE_PRICE


def _normalize_table(table: Mapping[str, float]) -> Mapping[str, float]:
    cleaned = {}
    for symbol, price in table.items():
        price = float(price)
        if is_usable_price(price):
            cleaned[symbol.strip().upper()] = price
    return MappingProxyType(cleaned)


class PriceResolver:
    """
    Resolves a USD price for a token through a fallback chain.

    Tiers, each tried only when the previous one yields no usable price:

    1. provider-quoted price
    2. provider value divided by balance
    3. cached price for the symbol
    4. fallback price table (hard-coded, replaced by the refresher)
    5. on-demand CoinGecko search-then-price, bounded by a timeout

    When every tier fails the price is 0, meaning "unresolved".

    Parameters
    ----------
    fallback_prices : Mapping[str, float]
        Initial fallback table (symbol -> USD)
    market_data : CoinGeckoClient | None
        Client for on-demand lookups; tier 5 is skipped if None
    cache_ttl : float
        TTL of per-symbol cached prices, in seconds
    lookup_timeout : float
        Upper bound for one on-demand lookup, in seconds
    clock : Clock | None
        Time source for the price cache

    """

    def __init__(
        self,
        fallback_prices: Mapping[str, float],
        market_data: CoinGeckoClient | None = None,
        cache_ttl: float = 120,
        lookup_timeout: float = 5.0,
        clock: Clock | None = None,
    ) -> None:
        self.market_data = market_data
        self.lookup_timeout = lookup_timeout
        self._price_table = _normalize_table(fallback_prices)
        self._cache = TTLCache(default_ttl=cache_ttl, clock=clock)
        self._lookup_misses = TTLCache(default_ttl=cache_ttl, clock=clock)

    @property
    def price_table(self) -> Mapping[str, float]:
        """Current fallback table (read-only view)."""
        return self._price_table

    def replace_price_table(self, table: Mapping[str, float]) -> None:
        """Swap in a new fallback table; readers see the old or new table, never a mix."""
        self._price_table = _normalize_table(table)

    def cached_price(self, symbol: str) -> float | None:
        return self._cache.get(symbol.strip().upper())

    async def resolve_price(
        self,
        symbol: str | None,
        provider_price: float | None = None,
        provider_value: float | None = None,
        balance: float = 0.0,
    ) -> float:
        """
        Resolve a USD price for one token.

        Parameters
        ----------
        symbol : str | None
            Token symbol; without one only tiers 1 and 2 apply
        provider_price : float | None
            Price quoted by the balance provider
        provider_value : float | None
            USD value of the holding quoted by the balance provider
        balance : float
            Decimal balance of the holding

        Returns
        -------
        float
            Usable price, or 0.0 when unresolved

        """
        key = (symbol or "").strip().upper()

        price = self._resolve_local(key, provider_price, provider_value, balance)
        if price is None and key:
            price = await self._lookup(key)

        if price is None:
            logger.debug("Price for %s unresolved", key or "<no symbol>")
            return 0.0

        if key:
            self._cache.set(key, price)
        return price

    def _resolve_local(
        self,
        key: str,
        provider_price: float | None,
        provider_value: float | None,
        balance: float,
    ) -> float | None:
        if is_usable_price(provider_price):
            return float(provider_price)

        if provider_value is not None and provider_value > 0 and balance > 0:
            derived = provider_value / balance
            if is_usable_price(derived):
                return derived

        if not key:
            return None

        cached = self._cache.get(key)
        if is_usable_price(cached):
            return cached

        return self._price_table.get(key)

    async def _lookup(self, key: str) -> float | None:
        if self.market_data is None or self._lookup_misses.get(key) is not None:
            return None

        try:
            price = await asyncio.wait_for(self.market_data.lookup_symbol_price(key), timeout=self.lookup_timeout)
        except TimeoutError:
            logger.warning("Price lookup for %s timed out after %.1fs", key, self.lookup_timeout)
            return None
        except Exception as e:
            logger.warning("Price lookup for %s failed: %s", key, e)
            return None

        # Only a completed lookup that found nothing usable is remembered
        if not is_usable_price(price):
            self._lookup_misses.set(key, True)
            return None

        logger.debug("Resolved %s via on-demand lookup: %s", key, price)
        return price
