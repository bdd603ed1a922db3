from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Literal, Mapping

ENV_PREFIX = "MULTICHAIN_MCP_"

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Process configuration read from environment variables."""

    transport: Literal["stdio", "http"] = "stdio"
    host: str = "0.0.0.0"
    port: int = 8000
    path: str = "/mcp"
    log_level: str = "INFO"
    # Raise on unknown network names instead of falling back to mainnet
    strict_network_resolution: bool = False
    http_timeout: float = 30.0
    rpc_timeout: float = 30.0

    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    sui_rpc_url: str = "https://fullnode.mainnet.sui.io"
    aptos_api_url: str = "https://fullnode.mainnet.aptoslabs.com/v1"
    near_rpc_url: str = "https://rpc.mainnet.near.org"
    algorand_algod_url: str = "https://mainnet-api.algonode.cloud"
    algorand_indexer_url: str = "https://mainnet-idx.algonode.cloud"
    coingecko_api_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: str | None = None
    fear_greed_api_url: str = "https://api.alternative.me/fng/"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(name) or default

        transport = get(f"{ENV_PREFIX}TRANSPORT", "stdio").strip().lower()
        if transport not in ("stdio", "http"):
            raise ValueError(
                f"{ENV_PREFIX}TRANSPORT must be 'stdio' or 'http', got {transport!r}"
            )

        return cls(
            transport=transport,  # type: ignore[arg-type]
            host=get(f"{ENV_PREFIX}HOST", cls.host),
            port=int(get(f"{ENV_PREFIX}PORT", str(cls.port))),
            path=get(f"{ENV_PREFIX}PATH", cls.path),
            log_level=get(f"{ENV_PREFIX}LOG_LEVEL", cls.log_level).upper(),
            strict_network_resolution=_flag(env.get(f"{ENV_PREFIX}STRICT_NETWORKS")),
            http_timeout=float(get(f"{ENV_PREFIX}HTTP_TIMEOUT", str(cls.http_timeout))),
            rpc_timeout=float(get(f"{ENV_PREFIX}RPC_TIMEOUT", str(cls.rpc_timeout))),
            solana_rpc_url=get("SOLANA_RPC_URL", cls.solana_rpc_url),
            sui_rpc_url=get("SUI_RPC_URL", cls.sui_rpc_url),
            aptos_api_url=get("APTOS_API_URL", cls.aptos_api_url),
            near_rpc_url=get("NEAR_RPC_URL", cls.near_rpc_url),
            algorand_algod_url=get("ALGORAND_ALGOD_URL", cls.algorand_algod_url),
            algorand_indexer_url=get("ALGORAND_INDEXER_URL", cls.algorand_indexer_url),
            coingecko_api_url=get("COINGECKO_API_URL", cls.coingecko_api_url),
            coingecko_api_key=env.get("COINGECKO_API_KEY") or None,
            fear_greed_api_url=get("FEAR_GREED_API_URL", cls.fear_greed_api_url),
        )


def configure_logging(level: str = "INFO") -> None:
    """Send package logs to stderr; stdout carries the MCP stdio stream."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("multichain_mcp")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False
