"""Portfolio engine wiring provider, classifier, pricing, aggregation and caching."""

import logging
import re
from typing import Protocol

from wallet_portfolio.cache.snapshot import SnapshotCache
from wallet_portfolio.config import Settings
from wallet_portfolio.core.aggregator import PortfolioAggregator, empty_snapshot
from wallet_portfolio.core.classifier import classify, scale_balance
from wallet_portfolio.core.models import (
    CacheStats,
    ChainConfig,
    NativeBalance,
    PortfolioSnapshot,
    RawBalanceRecord,
    TokenDescriptor,
)
from wallet_portfolio.core.registry import ChainRegistry
from wallet_portfolio.errors import UpstreamUnavailable, ValidationError
from wallet_portfolio.integrations.coingecko import CoinGeckoClient
from wallet_portfolio.integrations.moralis import MoralisClient
from wallet_portfolio.integrations.retry import RetryConfig
from wallet_portfolio.pricing.refresher import PriceTableRefresher
from wallet_portfolio.pricing.resolver import PriceResolver

logger = logging.getLogger(__name__)

WALLET_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


class BalanceProvider(Protocol):
    """Interface of the upstream balance provider adapter."""

    async def fetch_raw_balances(self, wallet_address: str, chain: ChainConfig) -> list[RawBalanceRecord]: ...

    async def fetch_native_balance(self, wallet_address: str, chain: ChainConfig) -> tuple[int, int]: ...


def validate_wallet_address(wallet_address: str) -> str:
    """
    Check that a wallet address is a 0x-prefixed 20-byte hex string.

    Raises
    ------
    ValidationError
        If the address is malformed

    """
    if not isinstance(wallet_address, str) or not WALLET_ADDRESS_PATTERN.match(wallet_address.strip()):
        msg = f"Invalid wallet address format: {wallet_address!r}"
        raise ValidationError(msg)
    return wallet_address.strip()


def parse_chain_id(chain_id: int | str) -> int:
    """
    Parse a chain id given as int, decimal string or hex string.

    Raises
    ------
    ValidationError
        If the value is not a positive integer

    """
    if isinstance(chain_id, bool):
        msg = f"Invalid chain ID: {chain_id!r}"
        raise ValidationError(msg)
    if isinstance(chain_id, int):
        parsed = chain_id
    elif isinstance(chain_id, str):
        text = chain_id.strip().lower()
        try:
            parsed = int(text, 16) if text.startswith("0x") else int(text)
        except ValueError:
            msg = f"Invalid chain ID: {chain_id!r}"
            raise ValidationError(msg) from None
    else:
        msg = f"Invalid chain ID: {chain_id!r}"
        raise ValidationError(msg)

    if parsed <= 0:
        msg = f"Invalid chain ID: {chain_id!r}"
        raise ValidationError(msg)
    return parsed


class PortfolioEngine:
    """
    Aggregates a wallet's holdings on one chain into a priced portfolio snapshot.

    Only ``ValidationError`` and ``ConfigError`` reach the caller; provider
    outages degrade to an empty snapshot and unresolved prices show up as
    ``price == 0`` on the token.

    Parameters
    ----------
    provider : BalanceProvider
        Balance provider adapter
    resolver : PriceResolver
        Price resolver
    registry : ChainRegistry | None
        Chain registry. Loads the packaged chains.yaml if None.
    cache : SnapshotCache | None
        Snapshot cache. A 300 s cache is created if None.
    refresher : PriceTableRefresher | None
        Background price table refresher, started by ``start()``
    enable_cache : bool
        Serve and store snapshots through the cache

    """

    def __init__(
        self,
        provider: BalanceProvider,
        resolver: PriceResolver,
        registry: ChainRegistry | None = None,
        cache: SnapshotCache | None = None,
        refresher: PriceTableRefresher | None = None,
        enable_cache: bool = True,
    ) -> None:
        self.provider = provider
        self.resolver = resolver
        self.registry = registry or ChainRegistry.load_default()
        self.cache = cache or SnapshotCache()
        self.refresher = refresher
        self.enable_cache = enable_cache
        self.aggregator = PortfolioAggregator(resolver)
        self._owned_clients: list[MoralisClient | CoinGeckoClient] = []

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "PortfolioEngine":
        """
        Build an engine with Moralis and CoinGecko clients from settings.

        Parameters
        ----------
        settings : Settings | None
            Configuration. Reads the environment if None.

        Returns
        -------
        PortfolioEngine
            Engine owning its HTTP clients; call ``close()`` when done

        """
        settings = settings or Settings()
        if not settings.moralis_api_key:
            logger.warning("MORALIS_API_KEY is not set; balance requests will be rejected upstream")

        provider = MoralisClient(
            api_key=settings.moralis_api_key,
            base_url=settings.moralis_base_url,
            timeout=settings.request_timeout_seconds,
            retry_config=RetryConfig(max_retries=settings.provider_max_retries),
        )
        market_data = CoinGeckoClient(
            api_key=settings.coingecko_api_key,
            base_url=settings.coingecko_base_url,
            timeout=settings.request_timeout_seconds,
        )
        resolver = PriceResolver(
            fallback_prices=settings.fallback_prices,
            market_data=market_data,
            cache_ttl=settings.price_cache_ttl_seconds,
            lookup_timeout=settings.external_lookup_timeout_seconds,
        )
        refresher = PriceTableRefresher(
            resolver,
            market_data,
            settings.coingecko_ids,
            interval=settings.price_refresh_interval_seconds,
        )
        engine = cls(
            provider=provider,
            resolver=resolver,
            cache=SnapshotCache(ttl=settings.cache_ttl_seconds),
            refresher=refresher,
            enable_cache=settings.enable_cache,
        )
        engine._owned_clients = [provider, market_data]
        return engine

    async def start(self) -> None:
        """Start the background price table refresher, if any."""
        if self.refresher is not None:
            self.refresher.start()

    async def close(self) -> None:
        """Stop the refresher and close HTTP clients owned by the engine."""
        if self.refresher is not None:
            await self.refresher.stop()
        for client in self._owned_clients:
            await client.close()
        self._owned_clients = []

    async def __aenter__(self) -> "PortfolioEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object | None) -> None:
        await self.close()

    async def get_wallet_portfolio(
        self,
        wallet_address: str,
        chain_id: int | str,
        include_hidden: bool = False,
    ) -> PortfolioSnapshot:
        """
        Get the priced portfolio of a wallet on one chain.

        Parameters
        ----------
        wallet_address : str
            Wallet address (0x + 40 hex chars)
        chain_id : int | str
            Chain id
        include_hidden : bool
            Include non-preset tokens in the token list and totals

        Returns
        -------
        PortfolioSnapshot
            Snapshot; empty and ``degraded`` if the provider failed

        Raises
        ------
        ValidationError
            If the wallet address or chain id is malformed
        ConfigError
            If the chain is not supported

        """
        wallet_address = validate_wallet_address(wallet_address)
        chain = self.registry.lookup(parse_chain_id(chain_id))

        if self.enable_cache:
            cached = self.cache.get(wallet_address, chain.chain_id, include_hidden)
            if cached is not None:
                logger.info("Cache hit for wallet tokens: %s on chain %s", wallet_address, chain.chain_id)
                return cached

        try:
            records = await self.provider.fetch_raw_balances(wallet_address, chain)
        except UpstreamUnavailable as e:
            logger.error("Error fetching wallet token balances for %s on chain %s: %s", wallet_address, chain.chain_id, e)
            return empty_snapshot(wallet_address, chain, include_hidden, degraded=True)

        classification = classify(records, chain)
        native = classification.native
        if native is None:
            native = await self._fetch_native_record(wallet_address, chain)

        snapshot = await self.aggregator.aggregate(
            wallet_address,
            chain,
            native,
            classification.preset,
            classification.hidden,
            include_hidden=include_hidden,
        )

        if self.enable_cache:
            self.cache.put(wallet_address, chain.chain_id, snapshot, include_hidden=include_hidden)
        return snapshot

    async def _fetch_native_record(self, wallet_address: str, chain: ChainConfig) -> RawBalanceRecord | None:
        try:
            balance, decimals = await self.provider.fetch_native_balance(wallet_address, chain)
        except UpstreamUnavailable as e:
            logger.warning("Native balance unavailable for %s on chain %s: %s", wallet_address, chain.chain_id, e)
            return None

        return RawBalanceRecord(
            symbol=chain.native.symbol,
            name=chain.native.name,
            balance=str(balance),
            decimals=decimals,
            native_token=True,
        )

    async def get_native_balance(self, wallet_address: str, chain_id: int | str) -> NativeBalance:
        """
        Get the native currency balance of a wallet with its USD value.

        Provider failures yield a zero balance rather than an error.

        Raises
        ------
        ValidationError
            If the wallet address or chain id is malformed
        ConfigError
            If the chain is not supported

        """
        wallet_address = validate_wallet_address(wallet_address)
        chain = self.registry.lookup(parse_chain_id(chain_id))

        logger.info("Fetching native balance for %s on chain %s", wallet_address, chain.chain_id)
        try:
            raw, decimals = await self.provider.fetch_native_balance(wallet_address, chain)
        except UpstreamUnavailable as e:
            logger.error("Error fetching native balance for %s on chain %s: %s", wallet_address, chain.chain_id, e)
            raw, decimals = 0, chain.native.decimals

        balance = scale_balance(raw, decimals, chain.native.symbol)
        price = await self.resolver.resolve_price(chain.native.symbol, balance=balance)
        return NativeBalance(
            symbol=chain.native.symbol,
            balance=balance,
            balance_raw=str(raw),
            price=price,
            value=balance * price,
        )

    def invalidate_wallet(self, wallet_address: str) -> int:
        """
        Drop all cached snapshots of a wallet, on every chain.

        Returns
        -------
        int
            Number of cache entries removed (0 when nothing was cached)

        """
        return self.cache.invalidate(wallet_address)

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def list_supported_chains(self) -> list[ChainConfig]:
        return self.registry.list_chains()

    def list_preset_tokens(self, chain_id: int | str) -> list[TokenDescriptor]:
        """
        Get the preset tokens of a chain.

        Raises
        ------
        ValidationError
            If the chain id is malformed
        ConfigError
            If the chain is not supported

        """
        return self.registry.preset_tokens(parse_chain_id(chain_id))
