"""NEAR tools over the archival/RPC JSON-RPC API."""

import base64
import json
import re
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.results import format_units, run_tool
from multichain_mcp.vendors import require_match

NEAR_DECIMALS = 24

# Named accounts (alice.near) or 64-hex implicit accounts
_NEAR_ACCOUNT = re.compile(r"(?:[a-z\d]+[-_])*[a-z\d]+(?:\.(?:[a-z\d]+[-_])*[a-z\d]+)*")
_NEAR_HASH = re.compile(r"[1-9A-HJ-NP-Za-km-z]{43,44}")
_METHOD_NAME = re.compile(r"\w+")

NearAccount = Annotated[str, Field(description="NEAR account id, e.g. 'alice.near'")]


class NearBalance(BaseModel):
    account_id: str
    amount_yocto: str
    locked_yocto: str
    balance: str
    symbol: str = "NEAR"


class NearAccountInfo(BaseModel):
    account_id: str
    amount_yocto: str
    locked_yocto: str
    code_hash: str
    has_contract: bool
    storage_usage: int
    block_height: int


class NearBlock(BaseModel):
    height: int
    hash: str
    prev_hash: str | None
    author: str | None
    timestamp_ns: str | None
    chunk_count: int
    gas_price: str | None


class NearGasPrice(BaseModel):
    gas_price_yocto: str


class NearNetworkInfo(BaseModel):
    chain_id: str
    protocol_version: int | None
    latest_block_height: int | None
    latest_block_hash: str | None
    syncing: bool | None
    validator_count: int


class NearAccessKey(BaseModel):
    public_key: str
    nonce: int
    permission: str
    receiver_id: str | None = None
    method_names: list[str] = []
    allowance: str | None = None


class NearAccessKeys(BaseModel):
    account_id: str
    key_count: int
    keys: list[NearAccessKey]


class NearTransaction(BaseModel):
    hash: str
    sender: str
    receiver: str | None
    status: str
    succeeded: bool
    actions: list[Any]
    gas_burnt: int | None
    tokens_burnt_yocto: str | None
    logs: list[str]
    receipt_count: int


class NearViewResult(BaseModel):
    contract_id: str
    method_name: str
    args: dict[str, Any]
    result: Any = None
    logs: list[str]
    block_height: int | None


class NearStateEntry(BaseModel):
    key: str
    value: str


class NearContractState(BaseModel):
    contract_id: str
    total_entries: int
    entries: list[NearStateEntry]


class NearValidator(BaseModel):
    account_id: str
    stake_yocto: str
    stake: str
    blocks_produced: int
    blocks_expected: int
    uptime_pct: float | None


class NearValidators(BaseModel):
    epoch_start_height: int | None
    validator_count: int
    total_stake: str
    validators: list[NearValidator]


_EMPTY_CODE_HASH = "11111111111111111111111111111111"


def _block_from_rpc(raw: dict) -> NearBlock:
    header = raw.get("header") or {}
    return NearBlock(
        height=int(header["height"]),
        hash=header["hash"],
        prev_hash=header.get("prev_hash"),
        author=raw.get("author"),
        timestamp_ns=str(header["timestamp"]) if "timestamp" in header else None,
        chunk_count=len(raw.get("chunks") or []),
        gas_price=header.get("gas_price"),
    )


def _access_key_from_rpc(raw: dict) -> NearAccessKey:
    access_key = raw.get("access_key") or {}
    permission = access_key.get("permission")
    # "FullAccess", or {"FunctionCall": {"receiver_id", "method_names", "allowance"}}
    call = (permission.get("FunctionCall") or {}) if isinstance(permission, dict) else {}
    return NearAccessKey(
        public_key=raw["public_key"],
        nonce=int(access_key.get("nonce", 0)),
        permission=permission if isinstance(permission, str) else "FunctionCall",
        receiver_id=call.get("receiver_id"),
        method_names=list(call.get("method_names") or []),
        allowance=call.get("allowance"),
    )


def _transaction_from_rpc(tx_hash: str, sender: str, raw: dict) -> NearTransaction:
    status = raw.get("status") or {}
    # {"SuccessValue": ...}, {"SuccessReceiptId": ...} or {"Failure": {...}}
    status_name = next(iter(status), "Unknown") if isinstance(status, dict) else str(status)
    outcome = (raw.get("transaction_outcome") or {}).get("outcome") or {}
    transaction = raw.get("transaction") or {}
    return NearTransaction(
        hash=tx_hash,
        sender=sender,
        receiver=transaction.get("receiver_id"),
        status=status_name,
        succeeded=status_name.startswith("Success"),
        actions=list(transaction.get("actions") or []),
        gas_burnt=outcome.get("gas_burnt"),
        tokens_burnt_yocto=outcome.get("tokens_burnt"),
        logs=list(outcome.get("logs") or []),
        receipt_count=len(raw.get("receipts_outcome") or []),
    )


def _decode_view_result(data: list[int]) -> Any:
    text = bytes(data).decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def _validator_from_rpc(raw: dict) -> NearValidator:
    stake = int(raw.get("stake", 0))
    produced = int(raw.get("num_produced_blocks", 0))
    expected = int(raw.get("num_expected_blocks", 0))
    return NearValidator(
        account_id=raw["account_id"],
        stake_yocto=str(stake),
        stake=format_units(stake, NEAR_DECIMALS),
        blocks_produced=produced,
        blocks_expected=expected,
        uptime_pct=round(produced / expected * 100, 2) if expected else None,
    )


def register_near_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    def rpc(method: str, params: Any) -> Any:
        return ctx.json_rpc(ctx.settings.near_rpc_url, method, params)

    async def _view_account(account_id: str) -> dict:
        account_id = require_match(_NEAR_ACCOUNT, account_id, "NEAR account id")
        raw = await rpc(
            "query",
            {"request_type": "view_account", "finality": "final", "account_id": account_id},
        )
        return {"account_id": account_id, **raw}

    async def _balance(account_id: str) -> NearBalance:
        raw = await _view_account(account_id)
        amount = int(raw["amount"])
        return NearBalance(
            account_id=raw["account_id"],
            amount_yocto=str(amount),
            locked_yocto=str(raw.get("locked", "0")),
            balance=format_units(amount, NEAR_DECIMALS),
        )

    async def _account(account_id: str) -> NearAccountInfo:
        raw = await _view_account(account_id)
        code_hash = raw.get("code_hash", _EMPTY_CODE_HASH)
        return NearAccountInfo(
            account_id=raw["account_id"],
            amount_yocto=str(raw["amount"]),
            locked_yocto=str(raw.get("locked", "0")),
            code_hash=code_hash,
            has_contract=code_hash != _EMPTY_CODE_HASH,
            storage_usage=int(raw.get("storage_usage", 0)),
            block_height=int(raw.get("block_height", 0)),
        )

    async def _block(block_id: int | None) -> NearBlock:
        params = {"finality": "final"} if block_id is None else {"block_id": block_id}
        return _block_from_rpc(await rpc("block", params))

    async def _gas_price() -> NearGasPrice:
        raw = await rpc("gas_price", [None])
        return NearGasPrice(gas_price_yocto=str(raw["gas_price"]))

    async def _network_info() -> NearNetworkInfo:
        raw = await rpc("status", [])
        sync = raw.get("sync_info") or {}
        return NearNetworkInfo(
            chain_id=raw.get("chain_id", "unknown"),
            protocol_version=raw.get("protocol_version"),
            latest_block_height=sync.get("latest_block_height"),
            latest_block_hash=sync.get("latest_block_hash"),
            syncing=sync.get("syncing"),
            validator_count=len(raw.get("validators") or []),
        )

    async def _access_keys(account_id: str) -> NearAccessKeys:
        account_id = require_match(_NEAR_ACCOUNT, account_id, "NEAR account id")
        raw = await rpc(
            "query",
            {"request_type": "view_access_key_list", "finality": "final", "account_id": account_id},
        )
        keys = [_access_key_from_rpc(k) for k in raw.get("keys") or []]
        return NearAccessKeys(account_id=account_id, key_count=len(keys), keys=keys)

    async def _transaction(tx_hash: str, sender: str) -> NearTransaction:
        tx_hash = require_match(_NEAR_HASH, tx_hash, "transaction hash")
        sender = require_match(_NEAR_ACCOUNT, sender, "NEAR account id")
        return _transaction_from_rpc(tx_hash, sender, await rpc("tx", [tx_hash, sender]))

    async def _view_function(
        contract_id: str, method_name: str, args: dict[str, Any]
    ) -> NearViewResult:
        contract_id = require_match(_NEAR_ACCOUNT, contract_id, "NEAR account id")
        method_name = require_match(_METHOD_NAME, method_name, "method name")
        raw = await rpc(
            "query",
            {
                "request_type": "call_function",
                "finality": "final",
                "account_id": contract_id,
                "method_name": method_name,
                "args_base64": base64.b64encode(json.dumps(args).encode()).decode(),
            },
        )
        return NearViewResult(
            contract_id=contract_id,
            method_name=method_name,
            args=args,
            result=_decode_view_result(raw.get("result") or []),
            logs=list(raw.get("logs") or []),
            block_height=raw.get("block_height"),
        )

    async def _contract_state(contract_id: str, prefix: str, limit: int) -> NearContractState:
        contract_id = require_match(_NEAR_ACCOUNT, contract_id, "NEAR account id")
        raw = await rpc(
            "query",
            {
                "request_type": "view_state",
                "finality": "final",
                "account_id": contract_id,
                "prefix_base64": base64.b64encode(prefix.encode()).decode(),
            },
        )
        values = raw.get("values") or []
        entries = [
            NearStateEntry(
                key=base64.b64decode(v["key"]).decode("utf-8", errors="replace"),
                value=base64.b64decode(v["value"]).decode("utf-8", errors="replace"),
            )
            for v in values[:limit]
        ]
        return NearContractState(contract_id=contract_id, total_entries=len(values), entries=entries)

    async def _validators(limit: int) -> NearValidators:
        raw = await rpc("validators", [None])
        validators = [_validator_from_rpc(v) for v in raw.get("current_validators") or []]
        validators.sort(key=lambda v: int(v.stake_yocto), reverse=True)
        total = sum(int(v.stake_yocto) for v in validators)
        return NearValidators(
            epoch_start_height=raw.get("epoch_start_height"),
            validator_count=len(validators),
            total_stake=format_units(total, NEAR_DECIMALS),
            validators=validators[:limit],
        )

    @mcp.tool(name="near_get_balance")
    async def near_get_balance(account_id: NearAccount) -> NearBalance:
        """NEAR balance of an account in yoctoNEAR and NEAR."""
        return await run_tool("fetching NEAR balance", _balance(account_id))

    @mcp.tool(name="near_get_account")
    async def near_get_account(account_id: NearAccount) -> NearAccountInfo:
        """Account state: balance, storage usage and whether a contract is deployed."""
        return await run_tool("fetching account", _account(account_id))

    @mcp.tool(name="near_get_block")
    async def near_get_block(
        block_id: Annotated[
            int | None, Field(ge=0, description="Block height; latest final block if omitted")
        ] = None,
    ) -> NearBlock:
        """Header summary of a block."""
        return await run_tool("fetching block", _block(block_id))

    @mcp.tool(name="near_get_gas_price")
    async def near_get_gas_price() -> NearGasPrice:
        return await run_tool("fetching gas price", _gas_price())

    @mcp.tool(name="near_get_network_info")
    async def near_get_network_info() -> NearNetworkInfo:
        """Chain id, protocol version and sync state of the RPC node."""
        return await run_tool("fetching network info", _network_info())

    @mcp.tool(name="near_get_access_keys")
    async def near_get_access_keys(account_id: NearAccount) -> NearAccessKeys:
        """Full-access and function-call keys registered on an account."""
        return await run_tool("fetching access keys", _access_keys(account_id))

    @mcp.tool(name="near_get_transaction")
    async def near_get_transaction(
        tx_hash: Annotated[str, Field(description="Base58 transaction hash")],
        sender_account_id: Annotated[str, Field(description="Account that signed the transaction")],
    ) -> NearTransaction:
        """Outcome, actions and gas burnt of a transaction."""
        return await run_tool("fetching transaction", _transaction(tx_hash, sender_account_id))

    @mcp.tool(name="near_view_function")
    async def near_view_function(
        contract_id: NearAccount,
        method_name: Annotated[str, Field(description="View method to call")],
        args: Annotated[dict[str, Any] | None, Field(description="JSON arguments")] = None,
    ) -> NearViewResult:
        """Call a contract view method; JSON return values are decoded."""
        return await run_tool(
            "calling view function", _view_function(contract_id, method_name, args or {})
        )

    @mcp.tool(name="near_get_contract_state")
    async def near_get_contract_state(
        contract_id: NearAccount,
        prefix: Annotated[str, Field(description="Only keys starting with this prefix")] = "",
        limit: Annotated[int, Field(ge=1, le=500)] = 50,
    ) -> NearContractState:
        """Raw key/value storage of a contract, decoded as UTF-8."""
        return await run_tool("fetching contract state", _contract_state(contract_id, prefix, limit))

    @mcp.tool(name="near_get_validators")
    async def near_get_validators(
        limit: Annotated[int, Field(ge=1, le=500, description="Validators to list")] = 20,
    ) -> NearValidators:
        """Current epoch validators, largest stake first, with block production uptime."""
        return await run_tool("fetching validators", _validators(limit))
