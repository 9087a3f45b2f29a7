"""Chain registry and price table loader."""

from pathlib import Path
from typing import Any

import yaml

DATA_DIR = Path(__file__).parent


def _load_yaml(name: str) -> dict[str, Any]:
    path = DATA_DIR / name
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_chains(path: Path | None = None) -> list[dict[str, Any]]:
    """
    Load raw chain definitions from chains.yaml.

    Parameters
    ----------
    path : Path | None
        Alternative YAML file. Uses the packaged chains.yaml if None.

    Returns
    -------
    list[dict[str, Any]]
        Chain definitions in file order

    """
    if path is None:
        data = _load_yaml("chains.yaml")
    else:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    return list(data.get("chains", []))


def get_fallback_prices() -> dict[str, float]:
    """
    Get the hard-coded fallback price table.

    Returns
    -------
    dict[str, float]
        Mapping of upper-cased symbol to USD price

    """
    data = _load_yaml("prices.yaml")
    return {str(symbol).upper(): float(price) for symbol, price in data.get("fallback_prices", {}).items()}


def get_coingecko_ids() -> dict[str, str]:
    """
    Get the symbol to CoinGecko id mapping used by the price refresher.

    Returns
    -------
    dict[str, str]
        Mapping of upper-cased symbol to CoinGecko coin id

    """
    data = _load_yaml("prices.yaml")
    return {str(symbol).upper(): str(coin_id) for symbol, coin_id in data.get("coingecko_ids", {}).items()}
