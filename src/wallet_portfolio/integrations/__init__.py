"""Upstream API clients for balances and market data."""

from wallet_portfolio.integrations.coingecko import CoinGeckoClient
from wallet_portfolio.integrations.moralis import EnvelopeShape, MoralisClient, normalize_balances
from wallet_portfolio.integrations.retry import RetryConfig, call_with_retry

__all__ = [
    "CoinGeckoClient",
    "EnvelopeShape",
    "MoralisClient",
    "RetryConfig",
    "call_with_retry",
    "normalize_balances",
]
