"""Token classification into native, preset and hidden balances."""

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, DecimalException, InvalidOperation

from wallet_portfolio.core.models import ChainConfig, RawBalanceRecord
from wallet_portfolio.core.registry import NATIVE_SENTINEL

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18


@dataclass
class Classification:
    """
    Result of classifying one provider response.

    Attributes
    ----------
    native : RawBalanceRecord | None
        Native currency record, if the provider returned one
    preset : list[RawBalanceRecord]
        Records matching the chain's preset token list
    hidden : list[RawBalanceRecord]
        Remaining non-spam records with a positive balance
    dropped : int
        Number of records discarded (spam or zero balance)

    """

    native: RawBalanceRecord | None = None
    preset: list[RawBalanceRecord] = field(default_factory=list)
    hidden: list[RawBalanceRecord] = field(default_factory=list)
    dropped: int = 0


def is_native_record(record: RawBalanceRecord) -> bool:
    """Native flag set, native sentinel address, or no contract address at all."""
    if record.native_token:
        return True
    if not record.token_address:
        return True
    return record.token_address.lower() == NATIVE_SENTINEL


def parse_balance(record: RawBalanceRecord, default_decimals: int = DEFAULT_DECIMALS) -> float:
    """
    Convert a record's balance to a decimal amount.

    Prefers the provider's formatted balance; otherwise divides the raw
    integer balance by ``10**decimals``. Unparseable or negative balances
    parse as 0.

    Parameters
    ----------
    record : RawBalanceRecord
        Provider record
    default_decimals : int
        Decimals to use when the record does not specify any

    Returns
    -------
    float
        Balance, never negative

    """
    if record.balance_formatted:
        try:
            amount = float(record.balance_formatted)
        except ValueError:
            amount = None
        if amount is not None and math.isfinite(amount):
            return max(amount, 0.0)

    if not record.balance:
        return 0.0

    decimals = record.decimals if record.decimals is not None else default_decimals
    try:
        raw = Decimal(record.balance)
    except InvalidOperation:
        logger.debug("Unparseable balance %r for %s", record.balance, record.symbol)
        return 0.0
    if not raw.is_finite() or raw <= 0:
        return 0.0
    return scale_balance(raw, decimals, record.symbol)


def scale_balance(raw: Decimal | int, decimals: int, symbol: str | None = None) -> float:
    """
    Divide a raw integer balance by ``10**decimals``.

    Decimals the decimal context cannot scale by, or a non-finite result,
    yield 0.

    """
    try:
        amount = float(Decimal(raw) / (Decimal(10) ** decimals))
    except DecimalException:
        logger.warning("Cannot scale balance of %s by %r decimals", symbol or "<no symbol>", decimals)
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        logger.warning("Balance of %s out of range with %r decimals", symbol or "<no symbol>", decimals)
        return 0.0
    return amount


def classify(records: list[RawBalanceRecord], chain: ChainConfig) -> Classification:
    """
    Partition provider records for display.

    Rules, per record:

    1. Native if flagged native, at the native sentinel, or without address.
    2. Non-native records with a zero balance are dropped unless preset.
    3. Non-native records whose address is in the preset list are preset,
       all others hidden.
    4. Spam-flagged records are dropped unless preset (native already kept).

    Parameters
    ----------
    records : list[RawBalanceRecord]
        Normalized provider records
    chain : ChainConfig
        Chain the records belong to

    Returns
    -------
    Classification
        Native, preset and hidden partitions

    """
    result = Classification()

    for record in records:
        if is_native_record(record):
            if result.native is None:
                result.native = record
            else:
                logger.debug("Ignoring duplicate native record %s on chain %s", record.symbol, chain.chain_id)
                result.dropped += 1
            continue

        preset = chain.is_preset(record.token_address)

        if not preset and parse_balance(record) <= 0:
            result.dropped += 1
            continue

        if record.possible_spam and not preset:
            result.dropped += 1
            continue

        if preset:
            result.preset.append(record)
        else:
            result.hidden.append(record)

    logger.debug(
        "Classified %d records on %s: native=%s preset=%d hidden=%d dropped=%d",
        len(records),
        chain.name,
        result.native is not None,
        len(result.preset),
        len(result.hidden),
        result.dropped,
    )
    return result
