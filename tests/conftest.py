"""Pytest configuration and shared fakes for wallet-portfolio tests."""

import asyncio

import pytest

from wallet_portfolio.core.models import ChainConfig, RawBalanceRecord
from wallet_portfolio.core.registry import ChainRegistry
from wallet_portfolio.data import get_fallback_prices
from wallet_portfolio.pricing.resolver import PriceResolver

WALLET = "0x1234567890abcdef1234567890abcdef12345678"
OTHER_WALLET = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
USDC_ETHEREUM = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
WBTC_ETHEREUM = "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599"
UNLISTED_TOKEN = "0x9999999999999999999999999999999999999999"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBalanceProvider:
    """Balance provider returning canned records and counting calls."""

    def __init__(self, records=None, native_balance=(0, 18), error=None, native_error=None):
        self.records = [
            record if isinstance(record, RawBalanceRecord) else RawBalanceRecord.model_validate(record)
            for record in records or []
        ]
        self.native_balance = native_balance
        self.error = error
        self.native_error = native_error
        self.raw_calls = 0
        self.native_calls = 0

    async def fetch_raw_balances(self, wallet_address: str, chain: ChainConfig) -> list[RawBalanceRecord]:
        self.raw_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def fetch_native_balance(self, wallet_address: str, chain: ChainConfig) -> tuple[int, int]:
        self.native_calls += 1
        if self.native_error is not None:
            raise self.native_error
        return self.native_balance


class FakeMarketData:
    """Market data source with canned prices and an optional delay."""

    def __init__(self, prices=None, quotes=None, delay: float = 0.0, error=None):
        self.prices = prices or {}
        self.quotes = quotes or {}
        self.delay = delay
        self.error = error
        self.lookup_calls: list[str] = []
        self.simple_price_calls: list[list[str]] = []

    async def lookup_symbol_price(self, symbol: str) -> float | None:
        self.lookup_calls.append(symbol)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.prices.get(symbol)

    async def simple_price(self, coin_ids: list[str]) -> dict[str, dict[str, float]]:
        self.simple_price_calls.append(list(coin_ids))
        if self.error is not None:
            raise self.error
        return {coin_id: self.quotes[coin_id] for coin_id in coin_ids if coin_id in self.quotes}


def native_record(balance: str = "2500000000000000000", usd_price: float | None = 3000.0, **extra) -> dict:
    record = {
        "token_address": None,
        "symbol": "ETH",
        "name": "Ether",
        "decimals": 18,
        "balance": balance,
        "native_token": True,
        "usd_price": usd_price,
    }
    record.update(extra)
    return record


def token_record(address: str, symbol: str, balance: str, decimals: int, usd_price: float | None = None, **extra) -> dict:
    record = {
        "token_address": address,
        "symbol": symbol,
        "name": symbol,
        "decimals": decimals,
        "balance": balance,
        "usd_price": usd_price,
        "possible_spam": False,
    }
    record.update(extra)
    return record


@pytest.fixture
def registry() -> ChainRegistry:
    return ChainRegistry.load_default()


@pytest.fixture
def ethereum(registry) -> ChainConfig:
    return registry.lookup(1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def resolver(clock) -> PriceResolver:
    """Resolver with the packaged fallback table and no market data."""
    return PriceResolver(fallback_prices=get_fallback_prices(), clock=clock)
