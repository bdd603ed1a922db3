"""Aptos tools over the fullnode REST API."""

import re
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.results import format_units, run_tool
from multichain_mcp.vendors import require_match

APT_COIN_TYPE = "0x1::aptos_coin::AptosCoin"
APT_DECIMALS = 8

_APTOS_ADDRESS = re.compile(r"0x[0-9a-fA-F]{1,64}")
_APTOS_HASH = re.compile(r"0x[0-9a-fA-F]{64}")
# address::module::name, optionally followed by type arguments
_MOVE_STRUCT = re.compile(r"0x[0-9a-fA-F]{1,64}::\w+::\w+(?:<[\w:<>, ]+>)?")
_MOVE_FUNCTION = re.compile(r"0x[0-9a-fA-F]{1,64}::\w+::\w+")
_FIELD_NAME = re.compile(r"[A-Za-z_]\w*")

AptosAddress = Annotated[str, Field(description="0x-prefixed Aptos account address")]


class AptBalance(BaseModel):
    address: str
    balance_octas: str
    balance: str
    symbol: str = "APT"


class AptosAccount(BaseModel):
    address: str
    sequence_number: str
    authentication_key: str


class AptosResource(BaseModel):
    type: str
    data: Any = None


class AptosResources(BaseModel):
    address: str
    resource_count: int
    resources: list[AptosResource]


class AptosModule(BaseModel):
    name: str | None
    exposed_functions: list[str]
    structs: list[str]


class AptosModules(BaseModel):
    address: str
    module_count: int
    modules: list[AptosModule]


class AptosTransaction(BaseModel):
    hash: str
    type: str
    version: str | None = None
    success: bool | None = None
    vm_status: str | None = None
    sender: str | None = None
    gas_used: str | None = None
    gas_unit_price: str | None = None
    timestamp: str | None = None
    function: str | None = None


class AptosAccountTransactions(BaseModel):
    address: str
    transaction_count: int
    transactions: list[AptosTransaction]


class AptosEvent(BaseModel):
    type: str
    sequence_number: str | None = None
    version: str | None = None
    data: Any = None


class AptosEvents(BaseModel):
    address: str
    event_handle: str
    field_name: str
    event_count: int
    events: list[AptosEvent]


class AptosViewResult(BaseModel):
    function: str
    type_arguments: list[str]
    arguments: list[str]
    result: list[Any]


class AptosCoinInfo(BaseModel):
    coin_type: str
    name: str
    symbol: str
    decimals: int
    supply: str | None = None


class AptosLedgerInfo(BaseModel):
    chain_id: int
    epoch: str
    ledger_version: str
    block_height: str
    ledger_timestamp: str
    node_role: str | None = None


class AptosGasEstimate(BaseModel):
    gas_estimate: int
    deprioritized_gas_estimate: int | None = None
    prioritized_gas_estimate: int | None = None


def _transaction_from_rest(raw: dict) -> AptosTransaction:
    payload = raw.get("payload") or {}
    return AptosTransaction(
        hash=raw["hash"],
        type=raw.get("type", "unknown"),
        version=raw.get("version"),
        success=raw.get("success"),
        vm_status=raw.get("vm_status"),
        sender=raw.get("sender"),
        gas_used=raw.get("gas_used"),
        gas_unit_price=raw.get("gas_unit_price"),
        timestamp=raw.get("timestamp"),
        function=payload.get("function") or payload.get("type"),
    )


def _module_from_rest(raw: dict) -> AptosModule:
    abi = raw.get("abi") or {}
    return AptosModule(
        name=abi.get("name"),
        exposed_functions=[f["name"] for f in abi.get("exposed_functions") or []],
        structs=[s["name"] for s in abi.get("structs") or []],
    )


def _coin_info_from_rest(coin_type: str, raw: dict) -> AptosCoinInfo:
    data = raw.get("data") or {}
    # supply is Option<OptionalAggregator>: {"vec": [{"integer": {"vec": [{"value": ...}]}}]}
    supply = None
    for optional in (data.get("supply") or {}).get("vec") or []:
        for integer in (optional.get("integer") or {}).get("vec") or []:
            supply = str(integer.get("value"))
    return AptosCoinInfo(
        coin_type=coin_type,
        name=data["name"],
        symbol=data["symbol"],
        decimals=int(data["decimals"]),
        supply=supply,
    )


def register_aptos_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    base_url = ctx.settings.aptos_api_url.rstrip("/")

    def get(path: str, params: dict | None = None) -> Any:
        return ctx.get_json(f"{base_url}{path}", params=params)

    async def _balance(address: str) -> AptBalance:
        address = require_match(_APTOS_ADDRESS, address, "Aptos address")
        octas = int(await get(f"/accounts/{address}/balance/{APT_COIN_TYPE}"))
        return AptBalance(
            address=address, balance_octas=str(octas), balance=format_units(octas, APT_DECIMALS)
        )

    async def _account(address: str) -> AptosAccount:
        address = require_match(_APTOS_ADDRESS, address, "Aptos address")
        raw = await get(f"/accounts/{address}")
        return AptosAccount(
            address=address,
            sequence_number=raw["sequence_number"],
            authentication_key=raw["authentication_key"],
        )

    async def _resources(address: str, limit: int) -> AptosResources:
        address = require_match(_APTOS_ADDRESS, address, "Aptos address")
        raw = await get(f"/accounts/{address}/resources", params={"limit": str(limit)})
        resources = [AptosResource(type=r["type"], data=r.get("data")) for r in raw or []]
        return AptosResources(address=address, resource_count=len(resources), resources=resources)

    async def _modules(address: str) -> AptosModules:
        address = require_match(_APTOS_ADDRESS, address, "Aptos address")
        modules = [_module_from_rest(m) for m in await get(f"/accounts/{address}/modules") or []]
        return AptosModules(address=address, module_count=len(modules), modules=modules)

    async def _transaction(tx_hash: str) -> AptosTransaction:
        tx_hash = require_match(_APTOS_HASH, tx_hash, "transaction hash")
        return _transaction_from_rest(await get(f"/transactions/by_hash/{tx_hash}"))

    async def _account_transactions(address: str, limit: int) -> AptosAccountTransactions:
        address = require_match(_APTOS_ADDRESS, address, "Aptos address")
        raw = await get(f"/accounts/{address}/transactions", params={"limit": str(limit)})
        transactions = [_transaction_from_rest(t) for t in raw or []]
        return AptosAccountTransactions(
            address=address, transaction_count=len(transactions), transactions=transactions
        )

    async def _events(address: str, event_handle: str, field_name: str, limit: int) -> AptosEvents:
        address = require_match(_APTOS_ADDRESS, address, "Aptos address")
        event_handle = require_match(_MOVE_STRUCT, event_handle, "event handle")
        field_name = require_match(_FIELD_NAME, field_name, "field name")
        raw = await get(
            f"/accounts/{address}/events/{event_handle}/{field_name}", params={"limit": str(limit)}
        )
        events = [
            AptosEvent(
                type=e.get("type", ""),
                sequence_number=e.get("sequence_number"),
                version=e.get("version"),
                data=e.get("data"),
            )
            for e in raw or []
        ]
        return AptosEvents(
            address=address,
            event_handle=event_handle,
            field_name=field_name,
            event_count=len(events),
            events=events,
        )

    async def _view(function: str, type_arguments: list[str], arguments: list[str]) -> AptosViewResult:
        function = require_match(_MOVE_FUNCTION, function, "view function")
        result = await ctx.post_json(
            f"{base_url}/view",
            {"function": function, "type_arguments": type_arguments, "arguments": arguments},
        )
        return AptosViewResult(
            function=function,
            type_arguments=type_arguments,
            arguments=arguments,
            result=result if isinstance(result, list) else [result],
        )

    async def _coin_info(coin_type: str) -> AptosCoinInfo:
        coin_type = require_match(_MOVE_STRUCT, coin_type, "coin type")
        owner = coin_type.split("::", 1)[0]
        raw = await get(f"/accounts/{owner}/resource/0x1::coin::CoinInfo<{coin_type}>")
        return _coin_info_from_rest(coin_type, raw)

    async def _ledger() -> AptosLedgerInfo:
        return AptosLedgerInfo.model_validate(await get("/"))

    async def _gas() -> AptosGasEstimate:
        return AptosGasEstimate.model_validate(await get("/estimate_gas_price"))

    @mcp.tool(name="aptos_get_balance")
    async def aptos_get_balance(address: AptosAddress) -> AptBalance:
        """APT balance in octas and APT."""
        return await run_tool("fetching APT balance", _balance(address))

    @mcp.tool(name="aptos_get_account")
    async def aptos_get_account(address: AptosAddress) -> AptosAccount:
        """Sequence number and authentication key of an account."""
        return await run_tool("fetching account", _account(address))

    @mcp.tool(name="aptos_get_resources")
    async def aptos_get_resources(
        address: AptosAddress,
        limit: Annotated[int, Field(ge=1, le=9999)] = 100,
    ) -> AptosResources:
        """Move resources stored under an account."""
        return await run_tool("fetching resources", _resources(address, limit))

    @mcp.tool(name="aptos_get_modules")
    async def aptos_get_modules(address: AptosAddress) -> AptosModules:
        """Move modules published by an account, with their entry points and structs."""
        return await run_tool("fetching modules", _modules(address))

    @mcp.tool(name="aptos_get_transaction")
    async def aptos_get_transaction(
        tx_hash: Annotated[str, Field(description="0x-prefixed transaction hash")],
    ) -> AptosTransaction:
        """Status, sender and gas usage of a transaction."""
        return await run_tool("fetching transaction", _transaction(tx_hash))

    @mcp.tool(name="aptos_get_account_transactions")
    async def aptos_get_account_transactions(
        address: AptosAddress,
        limit: Annotated[int, Field(ge=1, le=100)] = 25,
    ) -> AptosAccountTransactions:
        """Transactions sent by an account, oldest first."""
        return await run_tool("fetching transactions", _account_transactions(address, limit))

    @mcp.tool(name="aptos_get_events")
    async def aptos_get_events(
        address: AptosAddress,
        event_handle: Annotated[
            str,
            Field(description="Struct holding the handle, e.g. '0x1::account::Account'"),
        ],
        field_name: Annotated[str, Field(description="Event handle field, e.g. 'coin_register_events'")],
        limit: Annotated[int, Field(ge=1, le=100)] = 25,
    ) -> AptosEvents:
        return await run_tool("fetching events", _events(address, event_handle, field_name, limit))

    @mcp.tool(name="aptos_view_function")
    async def aptos_view_function(
        function: Annotated[str, Field(description="Function id, e.g. '0x1::coin::balance'")],
        type_arguments: Annotated[list[str] | None, Field(description="Move type arguments")] = None,
        arguments: Annotated[
            list[str] | None, Field(description="Function arguments as strings")
        ] = None,
    ) -> AptosViewResult:
        """Call a #[view] Move function; nothing is submitted on chain."""
        return await run_tool(
            "calling view function", _view(function, type_arguments or [], arguments or [])
        )

    @mcp.tool(name="aptos_get_coin_info")
    async def aptos_get_coin_info(
        coin_type: Annotated[str, Field(description="Move coin type")] = APT_COIN_TYPE,
    ) -> AptosCoinInfo:
        """Name, symbol, decimals and supply of a coin type."""
        return await run_tool("fetching coin info", _coin_info(coin_type))

    @mcp.tool(name="aptos_get_ledger_info")
    async def aptos_get_ledger_info() -> AptosLedgerInfo:
        """Chain id, epoch, ledger version and block height of the node."""
        return await run_tool("fetching ledger info", _ledger())

    @mcp.tool(name="aptos_estimate_gas")
    async def aptos_estimate_gas() -> AptosGasEstimate:
        """Current gas unit price estimates."""
        return await run_tool("estimating gas price", _gas())
