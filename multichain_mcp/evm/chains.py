"""EVM chain registry and network name resolution.

Every EVM tool accepts a ``network`` argument that may be a numeric chain id,
a canonical chain key (``"bsc-testnet"``), an alias (``"eth"``, ``"matic"``)
or nothing at all. This module turns any of those into a chain id and a
``ChainDefinition``.

Resolution rules:

- integers are trusted as chain ids and returned unchanged, registered or not;
- strings are case-folded and looked up in the alias table, every accepted
  spelling is listed explicitly (no fuzzy matching);
- unknown strings and ``None`` fall back to Ethereum mainnet unless strict
  resolution is requested, in which case unknown strings raise
  ``UnknownNetworkError``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field

from multichain_mcp.errors import UnknownNetworkError

logger = logging.getLogger(__name__)

NetworkInput = Union[int, str, None]

DEFAULT_CHAIN_ID = 1


class ChainDefinition(BaseModel):
    """One EVM network.

    The unknown-chain variant returned for unregistered ids carries only
    ``id``; consumers must handle the optional fields being ``None``.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    key: str | None = None
    name: str | None = None
    native_currency_symbol: str | None = None
    native_currency_decimals: int | None = None
    default_rpc_url: str | None = Field(default=None, pattern=r"^https://")
    explorer_url: str | None = None
    is_testnet: bool | None = None

    @property
    def is_known(self) -> bool:
        return self.key is not None

    @property
    def rpc_env_var(self) -> str:
        """Environment variable that overrides this chain's RPC endpoint."""
        if self.key is None:
            return f"CHAIN_{self.id}_RPC_URL"
        return f"{self.key.upper().replace('-', '_')}_RPC_URL"

    @classmethod
    def unknown(cls, chain_id: int) -> "ChainDefinition":
        return cls(id=chain_id)


def _chain(
    chain_id: int,
    key: str,
    name: str,
    symbol: str,
    rpc_url: str,
    explorer_url: str,
    *,
    testnet: bool = False,
) -> ChainDefinition:
    return ChainDefinition(
        id=chain_id,
        key=key,
        name=name,
        native_currency_symbol=symbol,
        native_currency_decimals=18,
        default_rpc_url=rpc_url,
        explorer_url=explorer_url,
        is_testnet=testnet,
    )


# ======================
# Mainnets
# ======================

MAINNETS: tuple[ChainDefinition, ...] = (
    _chain(1, "ethereum", "Ethereum", "ETH", "https://eth.llamarpc.com", "https://etherscan.io"),
    _chain(10, "optimism", "OP Mainnet", "ETH", "https://mainnet.optimism.io", "https://optimistic.etherscan.io"),
    _chain(42161, "arbitrum", "Arbitrum One", "ETH", "https://arb1.arbitrum.io/rpc", "https://arbiscan.io"),
    _chain(8453, "base", "Base", "ETH", "https://mainnet.base.org", "https://basescan.org"),
    _chain(137, "polygon", "Polygon", "POL", "https://polygon-rpc.com", "https://polygonscan.com"),
    _chain(56, "bsc", "BNB Smart Chain", "BNB", "https://bsc-dataseed.binance.org", "https://bscscan.com"),
    _chain(204, "opbnb", "opBNB", "BNB", "https://opbnb-mainnet-rpc.bnbchain.org", "https://opbnbscan.com"),
    _chain(4689, "iotex", "IoTeX", "IOTX", "https://babel-api.mainnet.iotex.io", "https://iotexscan.io"),
    _chain(43114, "avalanche", "Avalanche C-Chain", "AVAX", "https://api.avax.network/ext/bc/C/rpc", "https://snowtrace.io"),
    _chain(100, "gnosis", "Gnosis", "XDAI", "https://rpc.gnosischain.com", "https://gnosisscan.io"),
    _chain(59144, "linea", "Linea", "ETH", "https://rpc.linea.build", "https://lineascan.build"),
    _chain(534352, "scroll", "Scroll", "ETH", "https://rpc.scroll.io", "https://scrollscan.com"),
    _chain(324, "zksync", "zkSync Era", "ETH", "https://mainnet.era.zksync.io", "https://explorer.zksync.io"),
    _chain(5000, "mantle", "Mantle", "MNT", "https://rpc.mantle.xyz", "https://mantlescan.xyz"),
    _chain(42220, "celo", "Celo", "CELO", "https://forno.celo.org", "https://celoscan.io"),
)

# ======================
# Testnets
# ======================

TESTNETS: tuple[ChainDefinition, ...] = (
    _chain(11155111, "sepolia", "Sepolia", "ETH", "https://ethereum-sepolia-rpc.publicnode.com", "https://sepolia.etherscan.io", testnet=True),
    _chain(11155420, "optimism-sepolia", "OP Sepolia", "ETH", "https://sepolia.optimism.io", "https://sepolia-optimism.etherscan.io", testnet=True),
    _chain(421614, "arbitrum-sepolia", "Arbitrum Sepolia", "ETH", "https://sepolia-rollup.arbitrum.io/rpc", "https://sepolia.arbiscan.io", testnet=True),
    _chain(84532, "base-sepolia", "Base Sepolia", "ETH", "https://sepolia.base.org", "https://sepolia.basescan.org", testnet=True),
    _chain(80002, "polygon-amoy", "Polygon Amoy", "POL", "https://rpc-amoy.polygon.technology", "https://amoy.polygonscan.com", testnet=True),
    _chain(97, "bsc-testnet", "BNB Smart Chain Testnet", "tBNB", "https://data-seed-prebsc-1-s1.binance.org:8545", "https://testnet.bscscan.com", testnet=True),
    _chain(5611, "opbnb-testnet", "opBNB Testnet", "tBNB", "https://opbnb-testnet-rpc.bnbchain.org", "https://testnet.opbnbscan.com", testnet=True),
    _chain(4690, "iotex-testnet", "IoTeX Testnet", "IOTX", "https://babel-api.testnet.iotex.io", "https://testnet.iotexscan.io", testnet=True),
)

# Extra spellings on top of each chain's canonical key.
ALIASES: dict[str, int] = {
    # Ethereum
    "mainnet": 1,
    "eth": 1,
    "ethereum-mainnet": 1,
    "homestead": 1,
    "sepolia-testnet": 11155111,
    "ethereum-sepolia": 11155111,
    # Optimism
    "op": 10,
    "op-mainnet": 10,
    "optimism-mainnet": 10,
    "op-sepolia": 11155420,
    "optimismsepolia": 11155420,
    # Arbitrum
    "arb": 42161,
    "arbitrum-one": 42161,
    "arbitrum-mainnet": 42161,
    "arb-sepolia": 421614,
    "arbitrumsepolia": 421614,
    # Base
    "base-mainnet": 8453,
    "basesepolia": 84532,
    # Polygon
    "matic": 137,
    "pol": 137,
    "polygon-mainnet": 137,
    "amoy": 80002,
    "polygonamoy": 80002,
    "polygon_amoy": 80002,
    # BNB Smart Chain
    "bnb": 56,
    "binance": 56,
    "bsc-mainnet": 56,
    "binance-smart-chain": 56,
    "bsctestnet": 97,
    "bsc_testnet": 97,
    "bnb-testnet": 97,
    # opBNB
    "op-bnb": 204,
    "opbnbtestnet": 5611,
    "opbnb_testnet": 5611,
    # IoTeX
    "iotx": 4689,
    "iotextestnet": 4690,
    "iotex_testnet": 4690,
    # Others
    "avax": 43114,
    "avalanche-c": 43114,
    "xdai": 100,
    "gnosis-chain": 100,
    "zksync-era": 324,
    "era": 324,
}


def _normalize(name: str) -> str:
    return name.strip().lower()


class ChainRegistry:
    """Immutable set of chain definitions plus the name → id lookup table.

    Consistency is checked once on construction: ids are unique, every alias
    points at a registered chain, and the default chain is registered.
    """

    def __init__(
        self,
        chains: Iterable[ChainDefinition],
        aliases: Mapping[str, int] | None = None,
        default_chain_id: int = DEFAULT_CHAIN_ID,
    ) -> None:
        by_id: dict[int, ChainDefinition] = {}
        names: dict[str, int] = {}
        for chain in chains:
            if chain.id <= 0:
                raise ValueError(f"Chain id must be positive, got {chain.id}")
            if chain.id in by_id:
                raise ValueError(f"Duplicate chain id {chain.id}")
            if not chain.is_known or not chain.default_rpc_url:
                raise ValueError(f"Chain {chain.id} needs a key and a default RPC URL")
            by_id[chain.id] = chain
            names[_normalize(chain.key)] = chain.id

        for alias, chain_id in (aliases or {}).items():
            key = _normalize(alias)
            if chain_id not in by_id:
                raise ValueError(f"Alias {alias!r} points at unregistered chain {chain_id}")
            if names.get(key, chain_id) != chain_id:
                raise ValueError(
                    f"Alias {alias!r} maps to {chain_id} but is already bound to {names[key]}"
                )
            names[key] = chain_id

        if default_chain_id not in by_id:
            raise ValueError(f"Default chain {default_chain_id} is not registered")

        self._chains = by_id
        self._names = names
        self.default_chain_id = default_chain_id

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._chains

    def __iter__(self) -> Iterator[ChainDefinition]:
        return iter(self._chains.values())

    def __len__(self) -> int:
        return len(self._chains)

    def get(self, chain_id: int) -> ChainDefinition | None:
        return self._chains.get(chain_id)

    @property
    def name_map(self) -> dict[str, int]:
        """Copy of the normalized name/alias → chain id table."""
        return dict(self._names)

    def rpc_url_map(self) -> dict[int, str]:
        return {chain.id: chain.default_rpc_url for chain in self}  # type: ignore[misc]

    def mainnets(self) -> list[ChainDefinition]:
        return [c for c in self if not c.is_testnet]

    def testnets(self) -> list[ChainDefinition]:
        return [c for c in self if c.is_testnet]

    def aliases_for(self, chain_id: int) -> list[str]:
        return sorted(name for name, cid in self._names.items() if cid == chain_id)

    def lookup_name(self, name: str) -> int | None:
        """Exact alias lookup without any fallback."""
        return self._names.get(_normalize(name))

    def resolve_chain_id(self, network: NetworkInput = None, *, strict: bool = False) -> int:
        """Turn a user-supplied network selector into a chain id."""
        # bool is an int subclass; True/False are not chain ids
        if isinstance(network, int) and not isinstance(network, bool):
            return network
        if isinstance(network, str):
            chain_id = self.lookup_name(network)
            if chain_id is not None:
                return chain_id
            if strict and network.strip():
                raise UnknownNetworkError(network, sorted(self._names))
            logger.debug(
                "Unknown network %r, using default chain %s", network, self.default_chain_id
            )
        return self.default_chain_id

    def get_chain(self, network: NetworkInput = None, *, strict: bool = False) -> ChainDefinition:
        """Return the chain definition for a selector.

        Unregistered numeric ids produce ``ChainDefinition.unknown(id)``.
        """
        chain_id = self.resolve_chain_id(network, strict=strict)
        return self._chains.get(chain_id) or ChainDefinition.unknown(chain_id)

    def is_fallback(self, network: NetworkInput) -> bool:
        """True when a non-empty string selector was substituted by the default."""
        return (
            isinstance(network, str)
            and bool(network.strip())
            and self.lookup_name(network) is None
        )


DEFAULT_REGISTRY = ChainRegistry(MAINNETS + TESTNETS, ALIASES)

CHAIN_MAP: dict[int, ChainDefinition] = {chain.id: chain for chain in DEFAULT_REGISTRY}
NETWORK_NAME_MAP: dict[str, int] = DEFAULT_REGISTRY.name_map
RPC_URL_MAP: dict[int, str] = DEFAULT_REGISTRY.rpc_url_map()
DEFAULT_RPC_URL: str = RPC_URL_MAP[DEFAULT_CHAIN_ID]


def resolve_chain_id(network: NetworkInput = None, *, strict: bool = False) -> int:
    return DEFAULT_REGISTRY.resolve_chain_id(network, strict=strict)


def get_chain(network: NetworkInput = None, *, strict: bool = False) -> ChainDefinition:
    return DEFAULT_REGISTRY.get_chain(network, strict=strict)
