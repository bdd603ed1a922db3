"""Service context handed to every tool module at registration time."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from multichain_mcp.config import Settings
from multichain_mcp.errors import RpcResponseError
from multichain_mcp.evm.chains import DEFAULT_REGISTRY, ChainRegistry
from multichain_mcp.evm.clients import ClientCache

_rpc_ids = itertools.count(1)


@dataclass
class ServiceContext:
    """Settings, chain registry, EVM client cache and HTTP plumbing.

    One instance backs one server. Tests build their own with a fake client
    factory and an ``httpx.MockTransport``.
    """

    settings: Settings = field(default_factory=Settings)
    registry: ChainRegistry = DEFAULT_REGISTRY
    clients: ClientCache | None = None
    http_transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        if self.clients is None:
            self.clients = ClientCache(
                self.registry,
                strict=self.settings.strict_network_resolution,
                rpc_timeout=self.settings.rpc_timeout,
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServiceContext":
        return cls(settings=Settings.from_env(environ))

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.http_timeout, transport=self.http_transport
        )

    async def get_json(
        self,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        """GET ``url`` and return the decoded JSON body."""
        async with self.http_client() as client:
            response = await client.get(
                url,
                params=params or {},
                headers={"Accept": "application/json", **(headers or {})},
            )
        if response.status_code >= 400:
            raise RpcResponseError(
                f"GET {url} failed with {response.status_code}: {response.text}"
            )
        return response.json()

    async def post_json(self, url: str, payload: Any) -> Any:
        async with self.http_client() as client:
            response = await client.post(
                url,
                headers={"Content-Type": "application/json"},
                json=payload,
            )
        if response.status_code >= 400:
            raise RpcResponseError(
                f"POST {url} failed with {response.status_code}: {response.text}"
            )
        return response.json()

    async def json_rpc(self, url: str, method: str, params: Any) -> Any:
        """Perform a JSON-RPC 2.0 call and return its ``result``."""
        data = await self.post_json(
            url,
            {"jsonrpc": "2.0", "id": next(_rpc_ids), "method": method, "params": params},
        )
        if not isinstance(data, dict):
            raise RpcResponseError(f"{method}: unexpected response {data!r}")
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise RpcResponseError(f"{method} failed: {message}")
        return data.get("result")
