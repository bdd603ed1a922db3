"""Solana tools over the cluster JSON-RPC API."""

import asyncio
import re
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.results import format_units, run_tool
from multichain_mcp.vendors import require_match

SOL_DECIMALS = 9
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

_BASE58_ADDRESS = re.compile(r"[1-9A-HJ-NP-Za-km-z]{32,44}")

SolanaAddress = Annotated[str, Field(description="Base58 Solana account address")]


class SolBalance(BaseModel):
    address: str
    lamports: int
    balance: str
    symbol: str = "SOL"


class SolAccountInfo(BaseModel):
    address: str
    exists: bool
    lamports: int | None = None
    owner: str | None = None
    executable: bool | None = None
    rent_epoch: int | None = None
    data_size: int | None = None


class SplTokenBalance(BaseModel):
    token_account: str
    mint: str
    amount: str
    decimals: int
    balance: str


class SplTokenBalances(BaseModel):
    address: str
    token_count: int
    tokens: list[SplTokenBalance]


class SolSlot(BaseModel):
    slot: int
    block_height: int


def _account_from_rpc(address: str, value: dict | None) -> SolAccountInfo:
    if value is None:
        return SolAccountInfo(address=address, exists=False)
    data = value.get("data")
    space = value.get("space")
    if space is None and isinstance(data, list) and data:
        # base64 payload length → byte length
        space = len(data[0]) * 3 // 4 - data[0].count("=")
    return SolAccountInfo(
        address=address,
        exists=True,
        lamports=value.get("lamports"),
        owner=value.get("owner"),
        executable=value.get("executable"),
        rent_epoch=value.get("rentEpoch"),
        data_size=space,
    )


def _token_from_rpc(entry: dict) -> SplTokenBalance:
    info = entry["account"]["data"]["parsed"]["info"]
    amount = info["tokenAmount"]
    decimals = int(amount["decimals"])
    return SplTokenBalance(
        token_account=entry["pubkey"],
        mint=info["mint"],
        amount=str(amount["amount"]),
        decimals=decimals,
        balance=format_units(int(amount["amount"]), decimals),
    )


def register_solana_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    def rpc(method: str, params: list[Any]) -> Any:
        return ctx.json_rpc(ctx.settings.solana_rpc_url, method, params)

    async def _balance(address: str) -> SolBalance:
        address = require_match(_BASE58_ADDRESS, address, "Solana address")
        result = await rpc("getBalance", [address])
        lamports = int(result["value"])
        return SolBalance(
            address=address, lamports=lamports, balance=format_units(lamports, SOL_DECIMALS)
        )

    async def _account_info(address: str) -> SolAccountInfo:
        address = require_match(_BASE58_ADDRESS, address, "Solana address")
        result = await rpc("getAccountInfo", [address, {"encoding": "base64"}])
        return _account_from_rpc(address, result.get("value"))

    async def _token_balances(address: str, include_zero: bool) -> SplTokenBalances:
        address = require_match(_BASE58_ADDRESS, address, "Solana address")
        result = await rpc(
            "getTokenAccountsByOwner",
            [address, {"programId": TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
        )
        tokens = [_token_from_rpc(entry) for entry in result.get("value") or []]
        if not include_zero:
            tokens = [t for t in tokens if int(t.amount) > 0]
        return SplTokenBalances(address=address, token_count=len(tokens), tokens=tokens)

    async def _slot() -> SolSlot:
        slot, height = await asyncio.gather(rpc("getSlot", []), rpc("getBlockHeight", []))
        return SolSlot(slot=int(slot), block_height=int(height))

    @mcp.tool(name="solana_get_balance")
    async def solana_get_balance(address: SolanaAddress) -> SolBalance:
        """SOL balance of an account in lamports and SOL."""
        return await run_tool("fetching SOL balance", _balance(address))

    @mcp.tool(name="solana_get_account_info")
    async def solana_get_account_info(address: SolanaAddress) -> SolAccountInfo:
        """Owner program, lamports and data size of an account; `exists` is false if absent."""
        return await run_tool("fetching account info", _account_info(address))

    @mcp.tool(name="solana_get_token_balances")
    async def solana_get_token_balances(
        address: SolanaAddress,
        include_zero: Annotated[bool, Field(description="Keep empty token accounts")] = False,
    ) -> SplTokenBalances:
        """SPL token balances held by a wallet, one entry per token account."""
        return await run_tool("fetching token balances", _token_balances(address, include_zero))

    @mcp.tool(name="solana_get_slot")
    async def solana_get_slot() -> SolSlot:
        """Current slot and block height of the cluster."""
        return await run_tool("fetching slot", _slot())
