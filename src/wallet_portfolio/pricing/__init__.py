"""Price resolution and fallback price table refresh."""

from wallet_portfolio.pricing.refresher import PriceTableRefresher
from wallet_portfolio.pricing.resolver import MAX_PLAUSIBLE_PRICE, PriceResolver, is_usable_price

__all__ = [
    "MAX_PLAUSIBLE_PRICE",
    "PriceResolver",
    "PriceTableRefresher",
    "is_usable_price",
]
