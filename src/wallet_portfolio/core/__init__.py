"""Core functionality including models, chain registry, classifier, and aggregator."""

from wallet_portfolio.core.aggregator import PortfolioAggregator
from wallet_portfolio.core.classifier import Classification, classify
from wallet_portfolio.core.models import (
    CacheStats,
    ChainConfig,
    NativeBalance,
    NativeCurrency,
    PortfolioSnapshot,
    ProcessedToken,
    RawBalanceRecord,
    TokenDescriptor,
)
from wallet_portfolio.core.registry import ChainRegistry

__all__ = [
    "CacheStats",
    "ChainConfig",
    "ChainRegistry",
    "Classification",
    "NativeBalance",
    "NativeCurrency",
    "PortfolioAggregator",
    "PortfolioSnapshot",
    "ProcessedToken",
    "RawBalanceRecord",
    "TokenDescriptor",
    "classify",
]
