"""Background refresh of the fallback price table."""

import asyncio
import contextlib
import logging

from wallet_portfolio.errors import UpstreamUnavailable
from wallet_portfolio.integrations.coingecko import CoinGeckoClient
from wallet_portfolio.pricing.resolver import PriceResolver, is_usable_price

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 180.0


class PriceTableRefresher:
    """
    Periodically re-fetches well-known prices and swaps them into the resolver.

    The task is owned by the engine: ``start()`` schedules it on the running
    loop and ``stop()`` cancels it. Its only effect is
    ``PriceResolver.replace_price_table``.

    Parameters
    ----------
    resolver : PriceResolver
        Resolver whose fallback table is refreshed
    market_data : CoinGeckoClient
        Price source
    coingecko_ids : dict[str, str]
        Symbol -> CoinGecko coin id for every symbol to refresh
    interval : float
        Seconds between refreshes

    """

    def __init__(
        self,
        resolver: PriceResolver,
        market_data: CoinGeckoClient,
        coingecko_ids: dict[str, str],
        interval: float = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        self.resolver = resolver
        self.market_data = market_data
        self.coingecko_ids = {symbol.upper(): coin_id for symbol, coin_id in coingecko_ids.items()}
        self.interval = interval
        self.last_success: float | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_once(self) -> bool:
        """
        Fetch fresh prices and replace the resolver's table.

        Symbols missing from the response keep their previous price.

        Returns
        -------
        bool
            True if the table was replaced

        """
        if not self.coingecko_ids:
            return False

        try:
            quotes = await self.market_data.simple_price(list(self.coingecko_ids.values()))
        except UpstreamUnavailable as e:
            logger.warning("Price table refresh failed: %s", e)
            return False

        table = dict(self.resolver.price_table)
        updated = 0
        for symbol, coin_id in self.coingecko_ids.items():
            quote = quotes.get(coin_id)
            if quote and is_usable_price(quote["usd"]):
                table[symbol] = quote["usd"]
                updated += 1

        if not updated:
            logger.warning("Price table refresh returned no usable prices")
            return False

        self.resolver.replace_price_table(table)
        self.last_success = asyncio.get_running_loop().time()
        logger.info("Refreshed %d/%d fallback prices", updated, len(self.coingecko_ids))
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh_once()
            except Exception:
                logger.exception("Unexpected error while refreshing the price table")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Schedule the refresh loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="price-table-refresher")

    async def stop(self) -> None:
        """Cancel the refresh loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
