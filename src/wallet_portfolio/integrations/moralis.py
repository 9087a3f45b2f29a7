"""Moralis API client for wallet token balances with prices."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from wallet_portfolio.core.models import ChainConfig, RawBalanceRecord
from wallet_portfolio.errors import UpstreamAuthError, UpstreamRateLimited, UpstreamUnavailable
from wallet_portfolio.integrations.retry import RetryConfig, call_with_retry

logger = logging.getLogger(__name__)


class EnvelopeShape(StrEnum):
    """Known layouts of a balances response, in the order they are tried."""

    BARE_LIST = "bare_list"
    RESULT = "result"
    NESTED_RESULT = "nested_result"
    RAW_RESULT = "raw_result"
    UNRECOGNIZED = "unrecognized"


@dataclass
class NormalizedBalances:
    """
    Provider response reduced to one record list.

    Attributes
    ----------
    shape : EnvelopeShape
        Layout the payload was recognized as
    records : list[RawBalanceRecord]
        Parsed records (empty for UNRECOGNIZED)
    skipped : int
        Entries that could not be parsed into a record

    """

    shape: EnvelopeShape
    records: list[RawBalanceRecord] = field(default_factory=list)
    skipped: int = 0


def _extract_items(payload: Any) -> tuple[EnvelopeShape, list[Any]]:
    if isinstance(payload, list):
        return EnvelopeShape.BARE_LIST, payload

    if not isinstance(payload, dict):
        return EnvelopeShape.UNRECOGNIZED, []

    result = payload.get("result")
    if isinstance(result, list):
        return EnvelopeShape.RESULT, result
    if isinstance(result, dict) and isinstance(result.get("result"), list):
        return EnvelopeShape.NESTED_RESULT, result["result"]

    raw = payload.get("raw")
    if isinstance(raw, dict) and isinstance(raw.get("result"), list):
        return EnvelopeShape.RAW_RESULT, raw["result"]

    return EnvelopeShape.UNRECOGNIZED, []


def normalize_balances(payload: Any) -> NormalizedBalances:
    """
    Normalize any known balances envelope into a list of records.

    Shapes are tried in priority order: bare array, ``{"result": [...]}``,
    ``{"result": {"result": [...]}}`` and ``{"raw": {"result": [...]}}``.
    Unknown shapes yield an empty UNRECOGNIZED result instead of failing.

    Parameters
    ----------
    payload : Any
        Decoded JSON body

    Returns
    -------
    NormalizedBalances
        Recognized shape and parsed records

    """
    shape, items = _extract_items(payload)
    normalized = NormalizedBalances(shape=shape)

    for item in items:
        if not isinstance(item, dict):
            normalized.skipped += 1
            continue
        try:
            normalized.records.append(RawBalanceRecord.model_validate(item))
        except PydanticValidationError as e:
            logger.debug("Skipping unparseable balance record %s: %s", item.get("symbol"), e)
            normalized.skipped += 1

    if shape is EnvelopeShape.UNRECOGNIZED:
        logger.warning("Unrecognized balances payload of type %s", type(payload).__name__)

    return normalized


class MoralisClient:
    """
    Client for the Moralis EVM API.

    Parameters
    ----------
    api_key : str
        Moralis API key
    base_url : str
        API base URL
    timeout : float
        Request timeout in seconds
    retry_config : RetryConfig | None
        Backoff for rate-limited calls
    client : httpx.AsyncClient | None
        Preconfigured HTTP client (tests inject one with a mock transport)

    """

    BASE_URL = "https://deep-index.moralis.io/api/v2.2"

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.retry_config = retry_config or RetryConfig()
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"accept": "application/json", "X-API-Key": api_key}

    async def _get_json(self, path: str, params: dict[str, Any] | list[tuple[str, str]]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url, params=params, headers=self._headers)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            msg = f"Request timeout: {e}"
            raise UpstreamUnavailable(msg) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                msg = f"Invalid API key (HTTP {status})"
                raise UpstreamAuthError(msg, status_code=status) from e
            if status == 429:
                msg = "Rate limit exceeded"
                raise UpstreamRateLimited(msg, status_code=status) from e
            msg = f"HTTP error {status}: {e}"
            raise UpstreamUnavailable(msg, status_code=status) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise UpstreamUnavailable(msg) from e
        except ValueError as e:
            msg = f"Malformed JSON response: {e}"
            raise UpstreamUnavailable(msg) from e

    async def fetch_raw_balances(
        self,
        wallet_address: str,
        chain: ChainConfig,
        token_addresses: list[str] | None = None,
    ) -> list[RawBalanceRecord]:
        """
        Fetch token balances with prices for a wallet.

        Parameters
        ----------
        wallet_address : str
            Wallet address
        chain : ChainConfig
            Chain to query
        token_addresses : list[str] | None
            Restrict the query to these contracts

        Returns
        -------
        list[RawBalanceRecord]
            Normalized records (native currency included when reported)

        Raises
        ------
        UpstreamUnavailable
            If the request fails; UpstreamAuthError and UpstreamRateLimited
            distinguish bad credentials from throttling

        """
        params: list[tuple[str, str]] = [("chain", chain.provider_chain)]
        for address in token_addresses or []:
            params.append(("token_addresses[]", address))

        logger.info("Fetching token balances for %s on %s (%s)", wallet_address, chain.name, chain.provider_chain)
        payload = await call_with_retry(
            self._get_json,
            f"/wallets/{wallet_address}/tokens",
            params,
            config=self.retry_config,
        )
        normalized = normalize_balances(payload)
        logger.debug(
            "Balances payload shape=%s records=%d skipped=%d",
            normalized.shape,
            len(normalized.records),
            normalized.skipped,
        )
        return normalized.records

    async def fetch_native_balance(self, wallet_address: str, chain: ChainConfig) -> tuple[int, int]:
        """
        Fetch the native currency balance without price data.

        Parameters
        ----------
        wallet_address : str
            Wallet address
        chain : ChainConfig
            Chain to query

        Returns
        -------
        tuple[int, int]
            Raw integer balance and the native currency decimals

        Raises
        ------
        UpstreamUnavailable
            If the request fails or the balance is not an integer

        """
        payload = await call_with_retry(
            self._get_json,
            f"/{wallet_address}/balance",
            {"chain": chain.provider_chain},
            config=self.retry_config,
        )
        raw = payload.get("balance", "0") if isinstance(payload, dict) else "0"
        try:
            balance = int(raw or 0)
        except (TypeError, ValueError) as e:
            msg = f"Malformed native balance {raw!r}"
            raise UpstreamUnavailable(msg) from e
        return max(balance, 0), chain.native.decimals

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "MoralisClient":
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: object | None,
    ) -> None:
        await self.close()
