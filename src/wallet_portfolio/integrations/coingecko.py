"""CoinGecko market data client for USD prices."""

import logging
from typing import Any

import httpx

from wallet_portfolio.errors import UpstreamAuthError, UpstreamRateLimited, UpstreamUnavailable

logger = logging.getLogger(__name__)


class CoinGeckoClient:
    """
    Fetches USD prices from the CoinGecko API.

    Two operations are used: bulk ``/simple/price`` by coin id and
    ``/search`` to map an arbitrary symbol to a coin id.

    Parameters
    ----------
    api_key : str
        CoinGecko API key (optional on the public tier)
    base_url : str
        API base URL; a ``pro-api`` host switches to the pro key header
    timeout : float
        Request timeout in seconds
    client : httpx.AsyncClient | None
        Preconfigured HTTP client

    """

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        api_key: str = "",
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"accept": "application/json"}
        if api_key:
            header = "x-cg-pro-api-key" if "pro-api" in self.base_url else "x-cg-demo-api-key"
            self._headers[header] = api_key

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        try:
            response = await self.client.get(f"{self.base_url}{path}", params=params, headers=self._headers)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            msg = f"Request timeout: {e}"
            raise UpstreamUnavailable(msg) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                msg = "Rate limit exceeded. Please wait a moment."
                raise UpstreamRateLimited(msg, status_code=status) from e
            if status in (401, 403):
                msg = "Invalid API key. Please check your CoinGecko API key."
                raise UpstreamAuthError(msg, status_code=status) from e
            msg = f"HTTP error {status}: {e}"
            raise UpstreamUnavailable(msg, status_code=status) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise UpstreamUnavailable(msg) from e
        except ValueError as e:
            msg = f"Malformed JSON response: {e}"
            raise UpstreamUnavailable(msg) from e

    async def simple_price(self, coin_ids: list[str]) -> dict[str, dict[str, float]]:
        """
        Fetch USD price and 24h change for known coin ids.

        Parameters
        ----------
        coin_ids : list[str]
            CoinGecko coin ids (e.g., 'ethereum')

        Returns
        -------
        dict[str, dict[str, float]]
            ``{coin_id: {"usd": price, "usd_24h_change": percent}}``; coins
            without a numeric price are left out

        """
        if not coin_ids:
            return {}

        params = {
            "ids": ",".join(sorted(set(coin_ids))),
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        }
        data = await self._get_json("/simple/price", params)

        prices: dict[str, dict[str, float]] = {}
        if not isinstance(data, dict):
            return prices
        for coin_id, quote in data.items():
            if not isinstance(quote, dict) or not isinstance(quote.get("usd"), int | float):
                continue
            change = quote.get("usd_24h_change")
            prices[coin_id] = {
                "usd": float(quote["usd"]),
                "usd_24h_change": float(change) if isinstance(change, int | float) else 0.0,
            }
        return prices

    async def search_coin_id(self, symbol: str) -> str | None:
        """
        Find the best-effort coin id for a symbol.

        An exact (case-insensitive) symbol match wins, otherwise the first
        search hit is used.

        Parameters
        ----------
        symbol : str
            Token symbol

        Returns
        -------
        str | None
            Coin id, or None if the search returned nothing

        """
        data = await self._get_json("/search", {"query": symbol})
        coins = data.get("coins", []) if isinstance(data, dict) else []
        coins = [coin for coin in coins if isinstance(coin, dict) and coin.get("id")]
        if not coins:
            return None

        wanted = symbol.upper()
        for coin in coins:
            if str(coin.get("symbol", "")).upper() == wanted:
                return coin["id"]
        return coins[0]["id"]

    async def lookup_symbol_price(self, symbol: str) -> float | None:
        """
        Search a symbol and fetch its USD price.

        Returns
        -------
        float | None
            USD price, or None if the symbol could not be priced

        """
        coin_id = await self.search_coin_id(symbol)
        if coin_id is None:
            logger.debug("No CoinGecko match for %s", symbol)
            return None
        quote = (await self.simple_price([coin_id])).get(coin_id)
        return quote["usd"] if quote else None

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "CoinGeckoClient":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
