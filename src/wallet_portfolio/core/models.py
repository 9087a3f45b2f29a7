"""Data models for chains, provider records, tokens, and portfolio snapshots."""

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class TokenDescriptor(BaseModel):
    """
    Preset token known in advance for a chain.

    Attributes
    ----------
    address : str
        Contract address, lower-cased
    symbol : str
        Token symbol (e.g., 'USDC')
    name : str
        Full token name
    decimals : int
        Number of decimal places

    """

    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str
    name: str
    decimals: int = 18

    @field_validator("address")
    @classmethod
    def _lower_address(cls, value: str) -> str:
        return value.lower()


class NativeCurrency(BaseModel):
    """Chain base currency (gas token)."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    decimals: int = 18


class ChainConfig(BaseModel):
    """
    Static configuration for one supported chain.

    Attributes
    ----------
    chain_id : int
        Numeric chain id (e.g., 1, 8453)
    name : str
        Display name
    network : str
        Network slug (e.g., 'base', 'bsc')
    provider_chain : str
        Chain id in the balance provider's encoding (hex, e.g. '0x2105')
    native : NativeCurrency
        Native currency metadata
    preset_tokens : list[TokenDescriptor]
        Ordered list of always-displayed tokens
    rpc_url : str | None
        Public RPC endpoint
    explorer_url : str | None
        Block explorer base URL

    """

    model_config = ConfigDict(frozen=True)

    chain_id: int
    name: str
    network: str
    provider_chain: str
    native: NativeCurrency
    preset_tokens: list[TokenDescriptor] = Field(default_factory=list)
    rpc_url: str | None = None
    explorer_url: str | None = None

    def find_preset(self, address: str | None) -> TokenDescriptor | None:
        """Return the preset descriptor for a contract address, if any."""
        if not address:
            return None
        address = address.lower()
        for token in self.preset_tokens:
            if token.address == address:
                return token
        return None

    def is_preset(self, address: str | None) -> bool:
        return self.find_preset(address) is not None


class RawBalanceRecord(BaseModel):
    """
    One balance entry as returned by the balance provider.

    Field names follow the provider's payload; every field is optional because
    the upstream response is only partially populated.

    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symbol: str | None = None
    name: str | None = None
    token_address: str | None = None
    balance: str | None = None
    balance_formatted: str | None = None
    decimals: int | None = None
    usd_price: float | None = None
    usd_value: float | None = None
    usd_price_24hr_percent_change: float | None = None
    usd_value_24hr_usd_change: float | None = None
    native_token: bool = False
    possible_spam: bool = False
    verified_contract: bool = False
    logo: str | None = Field(default=None, validation_alias=AliasChoices("logo", "thumbnail"))

    @field_validator("balance", "balance_formatted", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return None
        if isinstance(value, int | float):
            return str(value)
        return value

    @field_validator(
        "decimals",
        "usd_price",
        "usd_value",
        "usd_price_24hr_percent_change",
        "usd_value_24hr_usd_change",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("native_token", "possible_spam", "verified_contract", mode="before")
    @classmethod
    def _null_to_false(cls, value: Any) -> Any:
        return False if value is None else value


class ProcessedToken(BaseModel):
    """
    Priced token entry of a portfolio snapshot.

    Attributes
    ----------
    id : str
        Composite identifier ``<contract_address>-<chain_id>``
    contract_address : str
        'native' or lower-cased contract address
    balance : float
        Decimal balance, never negative
    balance_raw : str
        Integer balance string as reported upstream
    price : float
        Resolved USD price; 0 means unresolved
    value : float
        balance * price
    price_change_24h : float
        24h price change in percent
    value_change_24h : float
        24h change of the holding in USD

    """

    model_config = ConfigDict(frozen=True)

    id: str
    contract_address: str
    chain_id: int
    symbol: str
    name: str
    decimals: int
    balance: float = Field(ge=0)
    balance_raw: str = "0"
    price: float = 0.0
    value: float = 0.0
    price_change_24h: float = 0.0
    value_change_24h: float = 0.0
    is_native: bool = False
    is_preset: bool = False
    is_spam: bool = False
    is_verified: bool = False
    logo: str | None = None


class PortfolioSnapshot(BaseModel):
    """
    Aggregated, priced and ordered view of a wallet on one chain.

    Attributes
    ----------
    wallet_address : str
        Wallet address as requested
    chain_id : int
        Chain id
    chain_name : str
        Chain display name
    tokens : list[ProcessedToken]
        Tokens ordered by value, then balance, descending
    total_value : float
        Sum of token values
    total_change_24h : float
        Sum of token 24h USD changes
    hidden_token_count : int
        Number of non-preset tokens found, displayed or not
    include_hidden : bool
        Whether hidden tokens are part of ``tokens``
    degraded : bool
        True when the provider failed and this is the empty fallback

    """

    model_config = ConfigDict(frozen=True)

    wallet_address: str
    chain_id: int
    chain_name: str
    tokens: list[ProcessedToken] = Field(default_factory=list)
    total_value: float = 0.0
    total_change_24h: float = 0.0
    hidden_token_count: int = 0
    include_hidden: bool = False
    degraded: bool = False
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))


class NativeBalance(BaseModel):
    """Native currency balance with its resolved price."""

    symbol: str
    balance: float
    balance_raw: str
    price: float
    value: float


class CacheStats(BaseModel):
    """Snapshot cache counters."""

    count: int
    hits: int
    misses: int
    ttl: int
