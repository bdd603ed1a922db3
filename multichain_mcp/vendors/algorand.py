"""Algorand tools over the algod and indexer REST APIs."""

import re
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.results import format_units, run_tool
from multichain_mcp.vendors import require_match

ALGO_DECIMALS = 6

_ALGORAND_ADDRESS = re.compile(r"[A-Z2-7]{58}")


class AlgorandAsset(BaseModel):
    asset_id: int
    amount: int
    is_frozen: bool = False


class AlgorandAccount(BaseModel):
    address: str
    microalgos: int
    balance: str
    min_balance: int | None
    status: str | None
    round: int | None
    assets: list[AlgorandAsset]
    created_apps: int
    created_assets: int


class AlgorandNodeStatus(BaseModel):
    last_round: int
    last_version: str | None
    time_since_last_round_ns: int | None
    catchup_time_ns: int | None
    stopped_at_unsupported_round: bool | None


class AlgorandAssetInfo(BaseModel):
    asset_id: int
    name: str | None
    unit_name: str | None
    decimals: int
    total: int
    creator: str | None
    url: str | None
    deleted: bool = False


def _account_from_rest(raw: dict) -> AlgorandAccount:
    microalgos = int(raw.get("amount", 0))
    return AlgorandAccount(
        address=raw["address"],
        microalgos=microalgos,
        balance=format_units(microalgos, ALGO_DECIMALS),
        min_balance=raw.get("min-balance"),
        status=raw.get("status"),
        round=raw.get("round"),
        assets=[
            AlgorandAsset(
                asset_id=a["asset-id"], amount=a.get("amount", 0), is_frozen=a.get("is-frozen", False)
            )
            for a in raw.get("assets") or []
        ],
        created_apps=len(raw.get("created-apps") or []),
        created_assets=len(raw.get("created-assets") or []),
    )


def _asset_from_rest(raw: dict) -> AlgorandAssetInfo:
    asset = raw.get("asset", raw)
    params = asset.get("params") or {}
    return AlgorandAssetInfo(
        asset_id=asset["index"],
        name=params.get("name"),
        unit_name=params.get("unit-name"),
        decimals=params.get("decimals", 0),
        total=params.get("total", 0),
        creator=params.get("creator"),
        url=params.get("url"),
        deleted=asset.get("deleted", False),
    )


def register_algorand_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    def algod(path: str) -> Any:
        return ctx.get_json(f"{ctx.settings.algorand_algod_url.rstrip('/')}{path}")

    def indexer(path: str) -> Any:
        return ctx.get_json(f"{ctx.settings.algorand_indexer_url.rstrip('/')}{path}")

    async def _account(address: str) -> AlgorandAccount:
        address = require_match(_ALGORAND_ADDRESS, address, "Algorand address")
        return _account_from_rest(await algod(f"/v2/accounts/{address}"))

    async def _status() -> AlgorandNodeStatus:
        raw = await algod("/v2/status")
        return AlgorandNodeStatus(
            last_round=raw["last-round"],
            last_version=raw.get("last-version"),
            time_since_last_round_ns=raw.get("time-since-last-round"),
            catchup_time_ns=raw.get("catchup-time"),
            stopped_at_unsupported_round=raw.get("stopped-at-unsupported-round"),
        )

    async def _asset(asset_id: int) -> AlgorandAssetInfo:
        return _asset_from_rest(await indexer(f"/v2/assets/{asset_id}"))

    @mcp.tool(name="algorand_get_account")
    async def algorand_get_account(
        address: Annotated[str, Field(description="58-character Algorand address")],
    ) -> AlgorandAccount:
        """ALGO balance, opted-in assets and created apps of an account."""
        return await run_tool("fetching account", _account(address))

    @mcp.tool(name="algorand_get_node_status")
    async def algorand_get_node_status() -> AlgorandNodeStatus:
        return await run_tool("fetching node status", _status())

    @mcp.tool(name="algorand_get_asset")
    async def algorand_get_asset(
        asset_id: Annotated[int, Field(ge=0, description="Algorand Standard Asset id")],
    ) -> AlgorandAssetInfo:
        """Parameters of an Algorand Standard Asset."""
        return await run_tool("fetching asset", _asset(asset_id))
