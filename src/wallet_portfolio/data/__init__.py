"""Packaged chain and price data."""

from wallet_portfolio.data.loader import (
    get_coingecko_ids,
    get_fallback_prices,
    load_chains,
)

__all__ = [
    "get_coingecko_ids",
    "get_fallback_prices",
    "load_chains",
]
