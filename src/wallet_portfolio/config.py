"""Runtime settings loaded from the environment."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wallet_portfolio.data import get_coingecko_ids, get_fallback_prices


class Settings(BaseSettings):
    """
    Engine configuration.

    Every field can be set through an environment variable of the same name
    (case-insensitive), e.g. ``MORALIS_API_KEY`` or ``CACHE_TTL_SECONDS``, or
    through a ``.env`` file in the working directory.

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Balance provider
    moralis_api_key: str = Field(default="", description="Moralis API key")
    moralis_base_url: str = Field(default="https://deep-index.moralis.io/api/v2.2", description="Moralis API base URL")
    provider_max_retries: int = Field(default=2, ge=0, description="Retries for rate-limited provider calls")

    # Market data
    coingecko_api_key: str = Field(default="", description="CoinGecko API key")
    coingecko_base_url: str = Field(default="https://api.coingecko.com/api/v3", description="CoinGecko API base URL")

    # Caching
    enable_cache: bool = Field(default=True, description="Cache portfolio snapshots")
    cache_ttl_seconds: int = Field(default=300, gt=0, description="Snapshot cache TTL")
    price_cache_ttl_seconds: int = Field(default=120, gt=0, description="Per-symbol price cache TTL")

    # Pricing
    price_refresh_interval_seconds: float = Field(default=180.0, gt=0, description="Fallback table refresh interval")
    external_lookup_timeout_seconds: float = Field(default=5.0, gt=0, description="Timeout of one on-demand price lookup")
    fallback_prices: dict[str, float] = Field(default_factory=get_fallback_prices)
    coingecko_ids: dict[str, str] = Field(default_factory=get_coingecko_ids)

    # Misc
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")
    log_level: str = Field(default="INFO", description="Logging level")
