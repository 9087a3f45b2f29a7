"""Wallet portfolio aggregation and pricing across EVM chains."""

from wallet_portfolio.config import Settings
from wallet_portfolio.core.engine import PortfolioEngine
from wallet_portfolio.errors import (
    ConfigError,
    PortfolioError,
    UpstreamAuthError,
    UpstreamRateLimited,
    UpstreamUnavailable,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "PortfolioEngine",
    "PortfolioError",
    "Settings",
    "UpstreamAuthError",
    "UpstreamRateLimited",
    "UpstreamUnavailable",
    "ValidationError",
]
