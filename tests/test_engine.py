"""Tests for the portfolio engine."""

import pytest
from conftest import (
    OTHER_WALLET,
    UNLISTED_TOKEN,
    USDC_ETHEREUM,
    WALLET,
    FakeBalanceProvider,
    FakeMarketData,
    native_record,
    token_record,
)

from wallet_portfolio.cache import SnapshotCache
from wallet_portfolio.config import Settings
from wallet_portfolio.core.engine import PortfolioEngine, parse_chain_id, validate_wallet_address
from wallet_portfolio.errors import (
    ConfigError,
    UpstreamAuthError,
    UpstreamRateLimited,
    UpstreamUnavailable,
    ValidationError,
)
from wallet_portfolio.integrations.coingecko import CoinGeckoClient
from wallet_portfolio.integrations.moralis import MoralisClient
from wallet_portfolio.pricing import PriceTableRefresher

DEFAULT_RECORDS = [
    native_record(),
    token_record(USDC_ETHEREUM, "USDC", "100000000", 6, usd_price=1.0),
    token_record(UNLISTED_TOKEN, "FOO", "3000000000000000000", 18, usd_price=2.0),
    token_record(
        "0x7777777777777777777777777777777777777777",
        "SCAM",
        "1000000000000000000000",
        18,
        usd_price=5.0,
        possible_spam=True,
    ),
]


@pytest.fixture
def provider() -> FakeBalanceProvider:
    return FakeBalanceProvider(DEFAULT_RECORDS)


@pytest.fixture
def make_engine(registry, resolver, clock):
    def factory(provider, enable_cache: bool = True, ttl: int = 300) -> PortfolioEngine:
        return PortfolioEngine(
            provider=provider,
            resolver=resolver,
            registry=registry,
            cache=SnapshotCache(ttl=ttl, clock=clock),
            enable_cache=enable_cache,
        )

    return factory


def test_validate_wallet_address():
    """Test wallet address format validation."""
    assert validate_wallet_address(f" {WALLET} ") == WALLET

    for bad in ["", "0x123", WALLET[2:], WALLET + "0", "0x" + "g" * 40, None]:
        with pytest.raises(ValidationError):
            validate_wallet_address(bad)


@pytest.mark.parametrize(("value", "expected"), [(1, 1), ("8453", 8453), (" 137 ", 137), ("0x38", 56)])
def test_parse_chain_id(value, expected):
    """Test chain ids given as int, decimal or hex text."""
    assert parse_chain_id(value) == expected


@pytest.mark.parametrize("value", ["ethereum", "", "1.5", 0, -1, True, None, 1.0])
def test_parse_chain_id_rejects_garbage(value):
    """Test malformed chain ids."""
    with pytest.raises(ValidationError):
        parse_chain_id(value)


@pytest.mark.asyncio
async def test_portfolio_totals_and_order(make_engine, provider):
    """Test the default view: native first, presets shown, hidden counted, spam gone."""
    engine = make_engine(provider)

    snapshot = await engine.get_wallet_portfolio(WALLET, 1)

    assert [token.symbol for token in snapshot.tokens] == ["ETH", "USDC"]
    assert snapshot.total_value == pytest.approx(7600.0)
    assert snapshot.hidden_token_count == 1
    assert snapshot.chain_name == "Ethereum"
    assert not snapshot.degraded
    assert provider.native_calls == 0


@pytest.mark.asyncio
async def test_portfolio_with_hidden_tokens(make_engine, provider):
    """Test hidden tokens are included on request; spam never is."""
    engine = make_engine(provider)

    snapshot = await engine.get_wallet_portfolio(WALLET, "1", include_hidden=True)

    assert [token.symbol for token in snapshot.tokens] == ["ETH", "USDC", "FOO"]
    assert snapshot.total_value == pytest.approx(7606.0)
    assert "SCAM" not in {token.symbol for token in snapshot.tokens}


@pytest.mark.asyncio
async def test_cache_hit_skips_provider(make_engine, provider):
    """Test a second request within the TTL is served from cache."""
    engine = make_engine(provider)

    first = await engine.get_wallet_portfolio(WALLET, 1)
    second = await engine.get_wallet_portfolio(WALLET.upper().replace("0X", "0x"), 1)

    assert second is first
    assert provider.raw_calls == 1
    stats = engine.get_cache_stats()
    assert stats.hits == 1
    assert stats.count == 1
    assert stats.ttl == 300


@pytest.mark.asyncio
async def test_cache_expiry_refetches(make_engine, provider, clock):
    """Test expired snapshots are rebuilt."""
    engine = make_engine(provider)

    await engine.get_wallet_portfolio(WALLET, 1)
    clock.advance(300)
    await engine.get_wallet_portfolio(WALLET, 1)

    assert provider.raw_calls == 2


@pytest.mark.asyncio
async def test_hidden_view_cached_separately(make_engine, provider):
    """Test the default and full views never share a cache entry."""
    engine = make_engine(provider)

    default_view = await engine.get_wallet_portfolio(WALLET, 1)
    full_view = await engine.get_wallet_portfolio(WALLET, 1, include_hidden=True)
    again = await engine.get_wallet_portfolio(WALLET, 1)

    assert len(full_view.tokens) == len(default_view.tokens) + 1
    assert again is default_view
    assert provider.raw_calls == 2


@pytest.mark.asyncio
async def test_cache_disabled(make_engine, provider):
    """Test every request hits the provider when caching is off."""
    engine = make_engine(provider, enable_cache=False)

    await engine.get_wallet_portfolio(WALLET, 1)
    await engine.get_wallet_portfolio(WALLET, 1)

    assert provider.raw_calls == 2
    assert engine.get_cache_stats().count == 0


@pytest.mark.asyncio
async def test_invalidate_wallet_is_idempotent(make_engine, provider):
    """Test invalidation drops every chain of the wallet and can be repeated."""
    engine = make_engine(provider)
    await engine.get_wallet_portfolio(WALLET, 1)
    await engine.get_wallet_portfolio(WALLET, 8453)
    await engine.get_wallet_portfolio(OTHER_WALLET, 1)

    assert engine.invalidate_wallet(WALLET) == 2
    assert engine.invalidate_wallet(WALLET) == 0
    assert engine.invalidate_wallet("0x" + "0" * 40) == 0

    await engine.get_wallet_portfolio(WALLET, 1)
    await engine.get_wallet_portfolio(OTHER_WALLET, 1)

    assert provider.raw_calls == 4


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        UpstreamRateLimited("Rate limit exceeded", status_code=429),
        UpstreamAuthError("Invalid API key", status_code=401),
        UpstreamUnavailable("HTTP error 500", status_code=500),
    ],
)
async def test_provider_failure_returns_empty_snapshot(make_engine, error):
    """Test upstream failures degrade to an empty, uncached snapshot."""
    provider = FakeBalanceProvider(error=error)
    engine = make_engine(provider)

    snapshot = await engine.get_wallet_portfolio(WALLET, 1)

    assert snapshot.tokens == []
    assert snapshot.total_value == 0.0
    assert snapshot.degraded

    await engine.get_wallet_portfolio(WALLET, 1)
    assert provider.raw_calls == 2


@pytest.mark.asyncio
async def test_native_balance_fetched_when_missing(make_engine):
    """Test the native balance endpoint fills in a missing native record."""
    provider = FakeBalanceProvider(
        [token_record(USDC_ETHEREUM, "USDC", "100000000", 6, usd_price=1.0)],
        native_balance=(10**18, 18),
    )
    engine = make_engine(provider)

    snapshot = await engine.get_wallet_portfolio(WALLET, 1)

    assert provider.native_calls == 1
    eth = snapshot.tokens[0]
    assert eth.is_native
    assert eth.symbol == "ETH"
    assert eth.balance == pytest.approx(1.0)
    assert eth.price == 3000.0
    assert snapshot.total_value == pytest.approx(3100.0)


@pytest.mark.asyncio
async def test_native_fallback_failure_is_absorbed(make_engine):
    """Test a failing native balance call just omits the native token."""
    provider = FakeBalanceProvider(
        [token_record(USDC_ETHEREUM, "USDC", "100000000", 6, usd_price=1.0)],
        native_error=UpstreamUnavailable("down"),
    )
    engine = make_engine(provider)

    snapshot = await engine.get_wallet_portfolio(WALLET, 1)

    assert [token.symbol for token in snapshot.tokens] == ["USDC"]
    assert not snapshot.degraded


@pytest.mark.asyncio
async def test_invalid_input_raises_before_provider_call(make_engine, provider):
    """Test malformed input and unsupported chains surface as errors."""
    engine = make_engine(provider)

    with pytest.raises(ValidationError):
        await engine.get_wallet_portfolio("not-an-address", 1)
    with pytest.raises(ValidationError):
        await engine.get_wallet_portfolio(WALLET, "ethereum")
    with pytest.raises(ConfigError, match="Unsupported chain ID"):
        await engine.get_wallet_portfolio(WALLET, 999999)

    assert provider.raw_calls == 0


@pytest.mark.asyncio
async def test_get_native_balance(make_engine, registry):
    """Test native balance with USD value."""
    provider = FakeBalanceProvider(native_balance=(2 * 10**18, 18))
    engine = make_engine(provider)

    balance = await engine.get_native_balance(WALLET, 1)

    assert balance.symbol == "ETH"
    assert balance.balance == pytest.approx(2.0)
    assert balance.balance_raw == str(2 * 10**18)
    assert balance.price == 3000.0
    assert balance.value == pytest.approx(6000.0)


@pytest.mark.asyncio
async def test_get_native_balance_on_failure(make_engine):
    """Test native balance degrades to zero when the provider fails."""
    provider = FakeBalanceProvider(native_error=UpstreamRateLimited("Rate limit exceeded", status_code=429))
    engine = make_engine(provider)

    balance = await engine.get_native_balance(WALLET, 137)

    assert balance.symbol == "MATIC"
    assert balance.balance == 0.0
    assert balance.value == 0.0


def test_chain_listings(make_engine, provider, registry):
    """Test chain and preset listings."""
    engine = make_engine(provider)

    assert [chain.chain_id for chain in engine.list_supported_chains()] == registry.chain_ids()
    assert engine.list_preset_tokens("8453") == registry.lookup(8453).preset_tokens

    with pytest.raises(ConfigError):
        engine.list_preset_tokens(999999)
    with pytest.raises(ValidationError):
        engine.list_preset_tokens("base")


@pytest.mark.asyncio
async def test_refresher_lifecycle(registry, resolver, provider):
    """Test the engine starts and stops its refresher."""
    market_data = FakeMarketData(quotes={"ethereum": {"usd": 3300.0, "usd_24h_change": 0.0}})
    refresher = PriceTableRefresher(resolver, market_data, {"ETH": "ethereum"}, interval=3600)
    engine = PortfolioEngine(provider=provider, resolver=resolver, registry=registry, refresher=refresher)

    async with engine:
        assert refresher.running

    assert not refresher.running


@pytest.mark.asyncio
async def test_from_settings():
    """Test building an engine from settings."""
    settings = Settings(
        _env_file=None,
        moralis_api_key="moralis-key",
        cache_ttl_seconds=60,
        enable_cache=False,
        fallback_prices={"ETH": 2500.0},
    )

    engine = PortfolioEngine.from_settings(settings)

    assert isinstance(engine.provider, MoralisClient)
    assert isinstance(engine.resolver.market_data, CoinGeckoClient)
    assert engine.cache.ttl == 60
    assert engine.enable_cache is False
    assert dict(engine.resolver.price_table) == {"ETH": 2500.0}
    assert engine.refresher is not None

    await engine.close()
    assert engine.provider.client.is_closed


@pytest.mark.asyncio
async def test_malformed_decimals_scoped_to_one_token(make_engine):
    """Test a record with unscalable decimals does not fail the request."""
    provider = FakeBalanceProvider([*DEFAULT_RECORDS, token_record(UNLISTED_TOKEN, "BAD", "5", 1_000_000)])
    engine = make_engine(provider)

    snapshot = await engine.get_wallet_portfolio(WALLET, 1, include_hidden=True)

    assert [token.symbol for token in snapshot.tokens] == ["ETH", "USDC", "FOO"]
    assert snapshot.total_value == pytest.approx(7606.0)


@pytest.mark.asyncio
async def test_native_balance_with_unscalable_decimals(make_engine):
    """Test native balance falls back to zero when decimals are out of range."""
    provider = FakeBalanceProvider(native_balance=(5, 1_000_000))
    engine = make_engine(provider)

    balance = await engine.get_native_balance(WALLET, 1)

    assert balance.balance == 0.0
    assert balance.value == 0.0
