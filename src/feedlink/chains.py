"""Supported chains and their RPC / reference-data endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field

from .constants import INFURA_URL_TEMPLATE
from .errors import ConfigError


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    reference_network: str
    infura_subdomain: str | None = None
    public_rpc: str | None = None
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def rpc_url(self, rpc_url_id: str | None) -> str:
        """Endpoint for this chain.

        Raises:
            ConfigError: If the endpoint needs an RPC credential and none is set.
        """
        if self.infura_subdomain is None:
            if self.public_rpc is None:
                raise ConfigError(f"Chain {self.name} has no RPC URL")
            return self.public_rpc
        if not rpc_url_id:
            raise ConfigError(
                f"An RPC credential is required for {self.name}; "
                "set FEEDLINK_RPC_URL_ID or pass --rpc-url"
            )
        return INFURA_URL_TEMPLATE.format(
            subdomain=self.infura_subdomain, rpc_url_id=rpc_url_id
        )


SUPPORTED_CHAINS: tuple[ChainInfo, ...] = (
    ChainInfo(1, "mainnet", "mainnet", "mainnet", aliases=("ethereum", "eth")),
    ChainInfo(11_155_111, "sepolia", "ethereum-testnet-sepolia", "sepolia"),
    ChainInfo(137, "polygon", "matic-mainnet", "polygon-mainnet", aliases=("matic",)),
    ChainInfo(80_001, "polygon-mumbai", "matic-testnet", "polygon-mumbai", aliases=("mumbai",)),
    ChainInfo(10, "optimism", "ethereum-mainnet-optimism-1", "optimism-mainnet"),
    ChainInfo(420, "optimism-goerli", "ethereum-testnet-goerli-optimism-1", "optimism-goerli"),
    ChainInfo(42_161, "arbitrum", "ethereum-mainnet-arbitrum-1", "arbitrum-mainnet"),
    ChainInfo(421_613, "arbitrum-goerli", "ethereum-testnet-goerli-arbitrum-1", "arbitrum-goerli"),
    ChainInfo(43_114, "avalanche", "avalanche-mainnet", "avalanche-mainnet", aliases=("avax",)),
    ChainInfo(43_113, "avalanche-fuji", "avalanche-fuji-testnet", "avalanche-fuji", aliases=("fuji",)),
    ChainInfo(
        97,
        "bsc-testnet",
        "bsc-testnet",
        public_rpc="https://data-seed-prebsc-1-s1.binance.org:8545/",
    ),
    ChainInfo(
        84_531,
        "base-goerli",
        "ethereum-testnet-goerli-base-1",
        public_rpc="https://base-goerli.blockpi.network/v1/rpc/public",
    ),
)


def _build_chain_index() -> dict[str, ChainInfo]:
    index: dict[str, ChainInfo] = {}
    for chain in SUPPORTED_CHAINS:
        index[str(chain.chain_id)] = chain
        index[chain.name] = chain
        for alias in chain.aliases:
            index[alias] = chain
    return index


_CHAIN_INDEX = _build_chain_index()


def resolve_chain(value: str) -> ChainInfo:
    """Look up a chain by name, alias or numeric id (case-insensitive).

    Raises:
        ConfigError: If the chain is not supported.
    """
    chain = _CHAIN_INDEX.get(value.strip().lower())
    if chain is None:
        supported = ", ".join(c.name for c in SUPPORTED_CHAINS)
        raise ConfigError(f"Unsupported chain '{value}'. Supported chains: {supported}")
    return chain
