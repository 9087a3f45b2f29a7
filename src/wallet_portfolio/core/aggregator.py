"""Portfolio aggregator turning classified balances into a priced snapshot."""

import asyncio
import logging

from wallet_portfolio.core.classifier import is_native_record, parse_balance
from wallet_portfolio.core.models import ChainConfig, PortfolioSnapshot, ProcessedToken, RawBalanceRecord
from wallet_portfolio.pricing.resolver import PriceResolver

logger = logging.getLogger(__name__)

NATIVE_ADDRESS = "native"


def empty_snapshot(
    wallet_address: str,
    chain: ChainConfig,
    include_hidden: bool = False,
    degraded: bool = False,
) -> PortfolioSnapshot:
    """Snapshot with no tokens and zero totals."""
    return PortfolioSnapshot(
        wallet_address=wallet_address,
        chain_id=chain.chain_id,
        chain_name=chain.name,
        include_hidden=include_hidden,
        degraded=degraded,
    )


class PortfolioAggregator:
    """
    Builds portfolio snapshots from classified provider records.

    Workflow:
    1. Select the records to display (native + preset, plus hidden on request)
    2. Resolve a USD price per record (concurrently)
    3. Compute value = balance * price per token
    4. Sum totals and order tokens by value, then balance

    Parameters
    ----------
    resolver : PriceResolver
        Price resolver used for every token

    """

    def __init__(self, resolver: PriceResolver) -> None:
        self.resolver = resolver

    async def aggregate(
        self,
        wallet_address: str,
        chain: ChainConfig,
        native: RawBalanceRecord | None,
        preset: list[RawBalanceRecord],
        hidden: list[RawBalanceRecord],
        include_hidden: bool = False,
    ) -> PortfolioSnapshot:
        """
        Aggregate classified records into a snapshot.

        Parameters
        ----------
        wallet_address : str
            Wallet address
        chain : ChainConfig
            Chain the records belong to
        native : RawBalanceRecord | None
            Native currency record
        preset : list[RawBalanceRecord]
            Preset token records
        hidden : list[RawBalanceRecord]
            Non-preset token records
        include_hidden : bool
            Whether hidden records are displayed (and counted in the totals)

        Returns
        -------
        PortfolioSnapshot
            Priced and ordered snapshot

        """
        displayed: list[RawBalanceRecord] = []
        if native is not None:
            displayed.append(native)
        displayed.extend(preset)
        if include_hidden:
            displayed.extend(hidden)

        tokens = await asyncio.gather(*(self._process_record(record, chain) for record in displayed))
        snapshot = self._build_snapshot(wallet_address, chain, list(tokens), len(hidden), include_hidden)

        logger.info(
            "Portfolio %s on %s: %d tokens, total $%.3f, 24h change %+.3f",
            wallet_address,
            chain.name,
            len(snapshot.tokens),
            snapshot.total_value,
            snapshot.total_change_24h,
        )
        if hidden and not include_hidden:
            logger.info("Found %d additional token(s) not in preset list", len(hidden))
        return snapshot

    async def _process_record(self, record: RawBalanceRecord, chain: ChainConfig) -> ProcessedToken:
        """
        Price one record.

        Parameters
        ----------
        record : RawBalanceRecord
            Provider record
        chain : ChainConfig
            Chain configuration

        Returns
        -------
        ProcessedToken
            Token with resolved price and value

        """
        if is_native_record(record):
            address = NATIVE_ADDRESS
            symbol = record.symbol or chain.native.symbol
            price_symbol = symbol
            name = record.name or chain.native.name
            decimals = record.decimals if record.decimals is not None else chain.native.decimals
            is_preset = False
        else:
            address = (record.token_address or "").lower()
            descriptor = chain.find_preset(address)
            price_symbol = record.symbol or (descriptor.symbol if descriptor else None)
            symbol = price_symbol or "UNKNOWN"
            name = record.name or (descriptor.name if descriptor else symbol)
            if record.decimals is not None:
                decimals = record.decimals
            else:
                decimals = descriptor.decimals if descriptor else 18
            is_preset = descriptor is not None

        balance = parse_balance(record, decimals)
        price = await self.resolver.resolve_price(
            price_symbol,
            provider_price=record.usd_price,
            provider_value=record.usd_value,
            balance=balance,
        )

        return ProcessedToken(
            id=f"{address}-{chain.chain_id}",
            contract_address=address,
            chain_id=chain.chain_id,
            symbol=symbol,
            name=name,
            decimals=decimals,
            balance=balance,
            balance_raw=record.balance or "0",
            price=price,
            value=balance * price,
            price_change_24h=record.usd_price_24hr_percent_change or 0.0,
            value_change_24h=record.usd_value_24hr_usd_change or 0.0,
            is_native=address == NATIVE_ADDRESS,
            is_preset=is_preset,
            is_spam=record.possible_spam,
            is_verified=record.verified_contract,
            logo=record.logo,
        )

    def _build_snapshot(
        self,
        wallet_address: str,
        chain: ChainConfig,
        tokens: list[ProcessedToken],
        hidden_count: int,
        include_hidden: bool,
    ) -> PortfolioSnapshot:
        ordered = sorted(tokens, key=lambda token: (token.value, token.balance), reverse=True)

        return PortfolioSnapshot(
            wallet_address=wallet_address,
            chain_id=chain.chain_id,
            chain_name=chain.name,
            tokens=ordered,
            total_value=sum(token.value for token in ordered),
            total_change_24h=sum(token.value_change_24h for token in ordered),
            hidden_token_count=hidden_count,
            include_hidden=include_hidden,
        )
