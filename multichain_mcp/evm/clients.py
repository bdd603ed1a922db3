"""Per-chain async web3 client cache."""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from typing import Any, Awaitable, Callable, Mapping, Union
from urllib.parse import urlparse

from web3 import AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from multichain_mcp.errors import ClientConstructionError
from multichain_mcp.evm.chains import (
    DEFAULT_REGISTRY,
    ChainDefinition,
    ChainRegistry,
    NetworkInput,
)

logger = logging.getLogger(__name__)

# Chains whose blocks carry a standard 32-byte extraData
NON_POA_CHAIN_IDS = frozenset({1, 11155111})

ClientFactory = Callable[[ChainDefinition, str], Union[Any, Awaitable[Any]]]


def make_web3_client(chain: ChainDefinition, rpc_url: str, *, timeout: float = 30.0) -> AsyncWeb3:
    """Build an ``AsyncWeb3`` bound to ``rpc_url``.

    POA middleware is injected for everything except Ethereum mainnet and
    Sepolia so that BSC/Polygon style block headers decode.
    """
    w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    if chain.id not in NON_POA_CHAIN_IDS:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


def redact_url(url: str) -> str:
    """Drop path and credentials; RPC URLs often embed API keys."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.hostname or ''}"


class ClientCache:
    """Lazily builds and memoizes one RPC client per chain id.

    Construction is guarded by a per-chain ``asyncio.Lock``: concurrent
    requests for the same uncached chain wait for the first construction and
    reuse its result, so the factory runs at most once per chain id. Entries
    are never evicted. Only this class writes to the cache.
    """

    def __init__(
        self,
        registry: ChainRegistry = DEFAULT_REGISTRY,
        *,
        environ: Mapping[str, str] | None = None,
        factory: ClientFactory | None = None,
        strict: bool = False,
        rpc_timeout: float = 30.0,
    ) -> None:
        self.registry = registry
        self.strict = strict
        self._environ = environ
        self._rpc_timeout = rpc_timeout
        self._factory = factory or self._default_factory
        self._clients: dict[int, Any] = {}
        self._urls: dict[int, str] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()

    def _default_factory(self, chain: ChainDefinition, rpc_url: str) -> AsyncWeb3:
        return make_web3_client(chain, rpc_url, timeout=self._rpc_timeout)

    @property
    def environ(self) -> Mapping[str, str]:
        # Read lazily so overrides set after startup are seen on first use
        return os.environ if self._environ is None else self._environ

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def rpc_url_for(self, network: NetworkInput = None) -> str:
        """Endpoint a client for ``network`` is (or would be) bound to.

        The ``<CHAIN_KEY>_RPC_URL`` environment variable wins over the
        registry default when set and non-empty.
        """
        chain = self.registry.get_chain(network, strict=self.strict)
        override = (self.environ.get(chain.rpc_env_var) or "").strip()
        url = override or chain.default_rpc_url
        if not url:
            raise ClientConstructionError(
                chain.id, f"no default RPC endpoint; set {chain.rpc_env_var}"
            )
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ClientConstructionError(chain.id, f"malformed RPC URL {url!r}")
        return url

    def bound_url(self, network: NetworkInput = None) -> str:
        """Endpoint the cached client for ``network`` was built with.

        Falls back to :meth:`rpc_url_for` when no client has been built yet.
        """
        chain = self.registry.get_chain(network, strict=self.strict)
        url = self._urls.get(chain.id)
        return url if url is not None else self.rpc_url_for(chain.id)

    async def get_client(self, network: NetworkInput = None) -> Any:
        """Return the cached client for ``network``, building it on first use."""
        chain = self.registry.get_chain(network, strict=self.strict)
        client = self._clients.get(chain.id)
        if client is not None:
            logger.debug("RPC client cache hit for chain %s", chain.id)
            return client

        # Unresolvable endpoints fail here, before a lock is allocated
        url = self.rpc_url_for(chain.id)
        lock = await self._lock_for(chain.id)
        async with lock:
            client = self._clients.get(chain.id)
            if client is not None:
                return client
            client = await self._build(chain, url)
            self._clients[chain.id] = client
            self._urls[chain.id] = url
            return client

    async def _lock_for(self, chain_id: int) -> asyncio.Lock:
        async with self._registry_lock:
            if chain_id not in self._locks:
                self._locks[chain_id] = asyncio.Lock()
            return self._locks[chain_id]

    async def _build(self, chain: ChainDefinition, url: str) -> Any:
        try:
            client = self._factory(chain, url)
            if inspect.isawaitable(client):
                client = await client
        except ClientConstructionError:
            raise
        except Exception as exc:
            raise ClientConstructionError(chain.id, str(exc)) from exc
        logger.info("Created RPC client for chain %s (%s)", chain.id, redact_url(url))
        return client
