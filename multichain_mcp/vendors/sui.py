"""Sui tools over the fullnode JSON-RPC API."""

import re
from typing import Annotated, Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import BaseModel, Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.results import format_units, run_tool
from multichain_mcp.vendors import require_match

SUI_COIN_TYPE = "0x2::sui::SUI"
SUI_DECIMALS = 9

_SUI_ID = re.compile(r"0x[0-9a-fA-F]{1,64}")
_DIGEST = re.compile(r"[1-9A-HJ-NP-Za-km-z]{32,44}")

SuiAddress = Annotated[str, Field(description="0x-prefixed Sui address")]


class SuiBalance(BaseModel):
    address: str
    coin_type: str
    name: str
    balance_raw: str
    balance: str | None
    coin_object_count: int


class SuiBalances(BaseModel):
    address: str
    token_count: int
    balances: list[SuiBalance]


class SuiObject(BaseModel):
    object_id: str
    version: str | None
    digest: str | None
    type: str | None
    owner: Any = None
    content: Any = None


class SuiTransaction(BaseModel):
    digest: str
    status: str | None
    error: str | None = None
    checkpoint: str | None
    timestamp_ms: str | None
    computation_cost: str | None
    storage_cost: str | None
    storage_rebate: str | None


class SuiCheckpoint(BaseModel):
    sequence_number: str
    digest: str | None
    epoch: str | None
    timestamp_ms: str | None
    transaction_count: int


class SuiGasPrice(BaseModel):
    reference_gas_price_mist: str


class SuiObjectRef(BaseModel):
    object_id: str
    type: str | None
    version: str | None
    digest: str | None


class SuiOwnedObjects(BaseModel):
    address: str
    object_count: int
    has_next_page: bool
    next_cursor: str | None
    objects: list[SuiObjectRef]


class SuiCoinMetadata(BaseModel):
    coin_type: str
    name: str
    symbol: str
    decimals: int
    description: str | None = None
    icon_url: str | None = None


class SuiTotalSupply(BaseModel):
    coin_type: str
    total_supply_raw: str
    total_supply: str | None


class SuiValidator(BaseModel):
    name: str
    address: str
    staking_pool_mist: str
    staked_sui: str
    commission_rate_pct: float
    voting_power: int


class SuiValidators(BaseModel):
    epoch: str | None
    validator_count: int
    total_stake_mist: str | None
    validators: list[SuiValidator]


def _balance_from_rpc(address: str, raw: dict) -> SuiBalance:
    coin_type = raw.get("coinType", "")
    total = str(raw.get("totalBalance", "0"))
    return SuiBalance(
        address=address,
        coin_type=coin_type,
        name=coin_type.split("::")[-1] if coin_type else "",
        balance_raw=total,
        # Only SUI has a known decimal count without a metadata lookup
        balance=format_units(int(total), SUI_DECIMALS) if coin_type == SUI_COIN_TYPE else None,
        coin_object_count=int(raw.get("coinObjectCount", 0)),
    )


def _transaction_from_rpc(raw: dict) -> SuiTransaction:
    effects = raw.get("effects") or {}
    status = effects.get("status") or {}
    gas = effects.get("gasUsed") or {}
    return SuiTransaction(
        digest=raw["digest"],
        status=status.get("status"),
        error=status.get("error"),
        checkpoint=raw.get("checkpoint"),
        timestamp_ms=raw.get("timestampMs"),
        computation_cost=gas.get("computationCost"),
        storage_cost=gas.get("storageCost"),
        storage_rebate=gas.get("storageRebate"),
    )


def _validator_from_rpc(raw: dict) -> SuiValidator:
    stake = int(raw.get("stakingPoolSuiBalance", 0))
    return SuiValidator(
        name=raw.get("name", ""),
        address=raw["suiAddress"],
        staking_pool_mist=str(stake),
        staked_sui=format_units(stake, SUI_DECIMALS),
        # commissionRate is in basis points
        commission_rate_pct=int(raw.get("commissionRate", 0)) / 100,
        voting_power=int(raw.get("votingPower", 0)),
    )


def register_sui_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    def rpc(method: str, params: list[Any]) -> Any:
        return ctx.json_rpc(ctx.settings.sui_rpc_url, method, params)

    async def _balance(address: str, coin_type: str) -> SuiBalance:
        address = require_match(_SUI_ID, address, "Sui address")
        return _balance_from_rpc(address, await rpc("suix_getBalance", [address, coin_type]))

    async def _all_balances(address: str) -> SuiBalances:
        address = require_match(_SUI_ID, address, "Sui address")
        raw = await rpc("suix_getAllBalances", [address])
        balances = [_balance_from_rpc(address, b) for b in raw or []]
        return SuiBalances(address=address, token_count=len(balances), balances=balances)

    async def _object(object_id: str) -> SuiObject:
        object_id = require_match(_SUI_ID, object_id, "object id")
        raw = await rpc(
            "sui_getObject",
            [object_id, {"showType": True, "showOwner": True, "showContent": True}],
        )
        if raw.get("error"):
            raise ToolError(f"Error fetching object: {raw['error'].get('code', raw['error'])}")
        data = raw.get("data") or {}
        return SuiObject(
            object_id=data.get("objectId", object_id),
            version=data.get("version"),
            digest=data.get("digest"),
            type=data.get("type"),
            owner=data.get("owner"),
            content=data.get("content"),
        )

    async def _transaction(digest: str) -> SuiTransaction:
        digest = require_match(_DIGEST, digest, "transaction digest")
        raw = await rpc("sui_getTransactionBlock", [digest, {"showEffects": True}])
        return _transaction_from_rpc(raw)

    async def _latest_checkpoint() -> SuiCheckpoint:
        sequence = await rpc("sui_getLatestCheckpointSequenceNumber", [])
        raw = await rpc("sui_getCheckpoint", [str(sequence)])
        return SuiCheckpoint(
            sequence_number=str(raw.get("sequenceNumber", sequence)),
            digest=raw.get("digest"),
            epoch=raw.get("epoch"),
            timestamp_ms=raw.get("timestampMs"),
            transaction_count=len(raw.get("transactions") or []),
        )

    async def _gas_price() -> SuiGasPrice:
        return SuiGasPrice(reference_gas_price_mist=str(await rpc("suix_getReferenceGasPrice", [])))

    async def _owned_objects(address: str, limit: int) -> SuiOwnedObjects:
        address = require_match(_SUI_ID, address, "Sui address")
        raw = await rpc(
            "suix_getOwnedObjects", [address, {"options": {"showType": True}}, None, limit]
        )
        objects = []
        for entry in raw.get("data") or []:
            data = entry.get("data") or {}
            objects.append(
                SuiObjectRef(
                    object_id=data["objectId"],
                    type=data.get("type"),
                    version=data.get("version"),
                    digest=data.get("digest"),
                )
            )
        return SuiOwnedObjects(
            address=address,
            object_count=len(objects),
            has_next_page=bool(raw.get("hasNextPage")),
            next_cursor=raw.get("nextCursor"),
            objects=objects,
        )

    async def _coin_metadata(coin_type: str) -> SuiCoinMetadata:
        raw = await rpc("suix_getCoinMetadata", [coin_type])
        if not raw:
            raise ToolError(f"No metadata published for coin type {coin_type}")
        return SuiCoinMetadata(
            coin_type=coin_type,
            name=raw.get("name", ""),
            symbol=raw.get("symbol", ""),
            decimals=int(raw.get("decimals", 0)),
            description=raw.get("description") or None,
            icon_url=raw.get("iconUrl"),
        )

    async def _total_supply(coin_type: str) -> SuiTotalSupply:
        raw = await rpc("suix_getTotalSupply", [coin_type])
        value = str(raw["value"])
        formatted = None
        if coin_type == SUI_COIN_TYPE:
            formatted = format_units(int(value), SUI_DECIMALS)
        return SuiTotalSupply(coin_type=coin_type, total_supply_raw=value, total_supply=formatted)

    async def _validators(limit: int) -> SuiValidators:
        raw = await rpc("suix_getLatestSuiSystemState", [])
        validators = [_validator_from_rpc(v) for v in raw.get("activeValidators") or []]
        validators.sort(key=lambda v: int(v.staking_pool_mist), reverse=True)
        return SuiValidators(
            epoch=raw.get("epoch"),
            validator_count=len(validators),
            total_stake_mist=raw.get("totalStake"),
            validators=validators[:limit],
        )

    @mcp.tool(name="sui_get_balance")
    async def sui_get_balance(
        address: SuiAddress,
        coin_type: Annotated[str, Field(description="Move coin type")] = SUI_COIN_TYPE,
    ) -> SuiBalance:
        """Balance of one coin type (SUI by default) for an address."""
        return await run_tool("fetching balance", _balance(address, coin_type))

    @mcp.tool(name="sui_get_all_balances")
    async def sui_get_all_balances(address: SuiAddress) -> SuiBalances:
        """Every coin balance held by an address."""
        return await run_tool("fetching balances", _all_balances(address))

    @mcp.tool(name="sui_get_object")
    async def sui_get_object(
        object_id: Annotated[str, Field(description="0x-prefixed object id")],
    ) -> SuiObject:
        """Type, owner and content of an on-chain object."""
        return await run_tool("fetching object", _object(object_id))

    @mcp.tool(name="sui_get_transaction")
    async def sui_get_transaction(
        digest: Annotated[str, Field(description="Base58 transaction digest")],
    ) -> SuiTransaction:
        """Execution status and gas costs of a transaction block."""
        return await run_tool("fetching transaction", _transaction(digest))

    @mcp.tool(name="sui_get_latest_checkpoint")
    async def sui_get_latest_checkpoint() -> SuiCheckpoint:
        """Most recent checkpoint."""
        return await run_tool("fetching checkpoint", _latest_checkpoint())

    @mcp.tool(name="sui_get_gas_price")
    async def sui_get_gas_price() -> SuiGasPrice:
        """Reference gas price for the current epoch, in MIST."""
        return await run_tool("fetching gas price", _gas_price())

    @mcp.tool(name="sui_get_owned_objects")
    async def sui_get_owned_objects(
        address: SuiAddress,
        limit: Annotated[int, Field(ge=1, le=50)] = 50,
    ) -> SuiOwnedObjects:
        """Objects (coins, NFTs, capabilities) owned by an address."""
        return await run_tool("fetching objects", _owned_objects(address, limit))

    @mcp.tool(name="sui_get_coin_metadata")
    async def sui_get_coin_metadata(
        coin_type: Annotated[str, Field(description="Move coin type")] = SUI_COIN_TYPE,
    ) -> SuiCoinMetadata:
        """Name, symbol and decimals published for a coin type."""
        return await run_tool("fetching coin metadata", _coin_metadata(coin_type))

    @mcp.tool(name="sui_get_total_supply")
    async def sui_get_total_supply(
        coin_type: Annotated[str, Field(description="Move coin type")] = SUI_COIN_TYPE,
    ) -> SuiTotalSupply:
        return await run_tool("fetching total supply", _total_supply(coin_type))

    @mcp.tool(name="sui_get_validators")
    async def sui_get_validators(
        limit: Annotated[int, Field(ge=1, le=200, description="Validators to list")] = 20,
    ) -> SuiValidators:
        """Active validators of the current epoch, largest stake first."""
        return await run_tool("fetching validators", _validators(limit))
