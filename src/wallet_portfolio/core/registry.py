"""Chain registry: supported chains and their preset tokens."""

from pathlib import Path
from typing import Any

from wallet_portfolio.core.models import ChainConfig, TokenDescriptor
from wallet_portfolio.data import load_chains
from wallet_portfolio.errors import ConfigError

# Address some providers report for the native currency.
NATIVE_SENTINEL = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"


class ChainRegistry:
    """
    Read-only lookup of chain configurations.

    The registry is built once at startup and never mutated afterwards.

    Parameters
    ----------
    chains : list[ChainConfig]
        Chain configurations in display order; the first one is the default chain

    """

    def __init__(self, chains: list[ChainConfig]) -> None:
        if not chains:
            msg = "At least one chain must be configured"
            raise ConfigError(msg)
        self._chains: dict[int, ChainConfig] = {}
        for chain in chains:
            if chain.chain_id in self._chains:
                msg = f"Duplicate chain id {chain.chain_id} in registry"
                raise ConfigError(msg)
            self._chains[chain.chain_id] = chain

    @classmethod
    def from_definitions(cls, definitions: list[dict[str, Any]]) -> "ChainRegistry":
        """
        Build a registry from raw chain definitions.

        Parameters
        ----------
        definitions : list[dict[str, Any]]
            Chain dictionaries as found in chains.yaml

        Returns
        -------
        ChainRegistry
            Registry holding validated chain configurations

        """
        return cls([ChainConfig.model_validate(definition) for definition in definitions])

    @classmethod
    def load_default(cls, path: Path | None = None) -> "ChainRegistry":
        """Build the registry from the packaged chains.yaml (or ``path``)."""
        return cls.from_definitions(load_chains(path))

    def get(self, chain_id: int) -> ChainConfig | None:
        return self._chains.get(chain_id)

    def lookup(self, chain_id: int) -> ChainConfig:
        """
        Get configuration for a chain.

        Parameters
        ----------
        chain_id : int
            Numeric chain id

        Returns
        -------
        ChainConfig
            Chain configuration

        Raises
        ------
        ConfigError
            If the chain is not registered

        """
        chain = self._chains.get(chain_id)
        if chain is None:
            msg = f"Unsupported chain ID: {chain_id}"
            raise ConfigError(msg)
        return chain

    def is_supported(self, chain_id: int) -> bool:
        return chain_id in self._chains

    def list_chains(self) -> list[ChainConfig]:
        """Get all chain configurations in registry order."""
        return list(self._chains.values())

    def chain_ids(self) -> list[int]:
        return list(self._chains.keys())

    def default_chain(self) -> ChainConfig:
        """Get the default chain (first registered, Ethereum mainnet)."""
        return next(iter(self._chains.values()))

    def preset_tokens(self, chain_id: int) -> list[TokenDescriptor]:
        """
        Get preset tokens for a chain.

        Raises
        ------
        ConfigError
            If the chain is not registered

        """
        return list(self.lookup(chain_id).preset_tokens)

    def search(self, query: str) -> list[ChainConfig]:
        """
        Find chains whose network slug or name contains ``query``.

        Parameters
        ----------
        query : str
            Case-insensitive search text

        Returns
        -------
        list[ChainConfig]
            Matching chains in registry order

        """
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            chain
            for chain in self._chains.values()
            if needle in chain.network.lower() or needle in chain.name.lower()
        ]
