"""EVM vendor: chain registry, client cache and tools."""

from multichain_mcp.evm.chains import (
    CHAIN_MAP,
    DEFAULT_CHAIN_ID,
    DEFAULT_REGISTRY,
    DEFAULT_RPC_URL,
    NETWORK_NAME_MAP,
    RPC_URL_MAP,
    ChainDefinition,
    ChainRegistry,
    get_chain,
    resolve_chain_id,
)
from multichain_mcp.evm.clients import ClientCache, make_web3_client

__all__ = [
    "CHAIN_MAP",
    "DEFAULT_CHAIN_ID",
    "DEFAULT_REGISTRY",
    "DEFAULT_RPC_URL",
    "NETWORK_NAME_MAP",
    "RPC_URL_MAP",
    "ChainDefinition",
    "ChainRegistry",
    "ClientCache",
    "get_chain",
    "make_web3_client",
    "resolve_chain_id",
]
