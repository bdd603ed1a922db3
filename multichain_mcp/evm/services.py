"""EVM read queries and their response models.

Each query borrows a client from the context's cache, runs the RPC calls and
maps the raw web3 payload into one of the models below through a single
``_..._from_rpc`` function, so loosely typed node responses never leak past
this module.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal, Mapping

from fastmcp.exceptions import ToolError
from pydantic import BaseModel
from web3 import Web3
from web3.exceptions import Web3Exception

from multichain_mcp.context import ServiceContext
from multichain_mcp.evm.chains import ChainDefinition, NetworkInput
from multichain_mcp.evm.clients import redact_url
from multichain_mcp.results import format_units

logger = logging.getLogger(__name__)

ERC20_ABI: list[dict[str, Any]] = [
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"name": "decimals", "type": "function", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "uint8"}]},
    {"name": "totalSupply", "type": "function", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "uint256"}]},
    {"name": "balanceOf", "type": "function", "stateMutability": "view",
     "inputs": [{"name": "account", "type": "address"}],
     "outputs": [{"name": "", "type": "uint256"}]},
]

GWEI = 10**9


# ----------------------------------------------------------------------------
# Response models
# ----------------------------------------------------------------------------


class NetworkSummary(BaseModel):
    chain_id: int
    key: str
    name: str
    native_currency_symbol: str
    is_testnet: bool
    aliases: list[str]


class SupportedNetworks(BaseModel):
    default_network: str
    supported_networks: list[str]
    mainnets: list[NetworkSummary]
    testnets: list[NetworkSummary]


class ChainInfo(BaseModel):
    network: str
    chain_id: int
    name: str | None
    native_currency_symbol: str | None
    is_testnet: bool | None
    block_number: int
    rpc_url: str
    fallback_to_default: bool = False


class BlockSummary(BaseModel):
    chain_id: int
    network: str
    number: int
    hash: str | None
    parent_hash: str | None
    timestamp: int
    miner: str | None = None
    gas_used: str
    gas_limit: str
    base_fee_per_gas: str | None = None
    transaction_count: int
    transactions: list[str]


class TransactionSummary(BaseModel):
    chain_id: int
    network: str
    hash: str
    block_number: int | None
    from_address: str | None
    to_address: str | None
    value_wei: str
    value: str
    symbol: str | None
    gas: str | None
    gas_price: str | None
    nonce: int | None
    input: str | None


class ReceiptSummary(BaseModel):
    chain_id: int
    network: str
    transaction_hash: str
    block_number: int | None
    status: Literal["success", "reverted", "unknown"]
    gas_used: str | None
    effective_gas_price: str | None
    contract_address: str | None
    log_count: int


class NativeBalance(BaseModel):
    chain_id: int
    network: str
    address: str
    symbol: str | None
    balance_wei: str
    balance: str


class TokenInfo(BaseModel):
    chain_id: int
    network: str
    token_address: str
    name: str
    symbol: str
    decimals: int
    total_supply: str
    total_supply_formatted: str


class TokenBalance(BaseModel):
    chain_id: int
    network: str
    token_address: str
    address: str
    symbol: str
    decimals: int
    balance_raw: str
    balance: str


class GasPrice(BaseModel):
    chain_id: int
    network: str
    gas_price_wei: str
    gas_price_gwei: str


class BlockTimeEstimate(BaseModel):
    chain_id: int
    network: str
    sample_size: int
    latest_block: int
    average_block_time_seconds: float
    blocks_per_minute: float


class FinalityStatus(BaseModel):
    chain_id: int
    network: str
    latest_block: int
    safe_block: int | None
    finalized_block: int | None
    blocks_until_finalized: int | None
    finality_status: Literal["supported", "unsupported"]


class ContractCheck(BaseModel):
    chain_id: int
    network: str
    address: str
    is_contract: bool
    code_size: int


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------


def _hex(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _network_label(chain: ChainDefinition, network: NetworkInput) -> str:
    if network is None or (isinstance(network, str) and not network.strip()):
        return chain.key or str(chain.id)
    return str(network)


def checksum_address(address: str, field: str = "address") -> str:
    if not Web3.is_address(address):
        raise ToolError(f"Invalid {field}: {address!r} is not an EVM address")
    return Web3.to_checksum_address(address)


def _tx_hash(value: str) -> str:
    text = value.strip()
    body = text[2:] if text.lower().startswith("0x") else text
    if len(body) != 64 or any(c not in "0123456789abcdefABCDEF" for c in body):
        raise ToolError(f"Invalid hash: {value!r} must be 32 bytes of hex")
    return "0x" + body.lower()


async def _client(ctx: ServiceContext, network: NetworkInput) -> tuple[ChainDefinition, Any]:
    chain = ctx.registry.get_chain(network, strict=ctx.clients.strict)
    client = await ctx.clients.get_client(chain.id)
    return chain, client


def _block_from_rpc(raw: Mapping[str, Any], chain: ChainDefinition, network: str) -> BlockSummary:
    transactions = [
        _hex(tx.get("hash")) if isinstance(tx, Mapping) else _hex(tx)
        for tx in raw.get("transactions") or []
    ]
    return BlockSummary(
        chain_id=chain.id,
        network=network,
        number=int(raw["number"]),
        hash=_hex(raw.get("hash")),
        parent_hash=_hex(raw.get("parentHash")),
        timestamp=int(raw["timestamp"]),
        miner=_opt_str(raw.get("miner")),
        gas_used=str(raw.get("gasUsed", 0)),
        gas_limit=str(raw.get("gasLimit", 0)),
        base_fee_per_gas=_opt_str(raw.get("baseFeePerGas")),
        transaction_count=len(transactions),
        transactions=[tx for tx in transactions if tx],
    )


def _transaction_from_rpc(
    raw: Mapping[str, Any], chain: ChainDefinition, network: str
) -> TransactionSummary:
    value = int(raw.get("value") or 0)
    block_number = raw.get("blockNumber")
    nonce = raw.get("nonce")
    return TransactionSummary(
        chain_id=chain.id,
        network=network,
        hash=_hex(raw.get("hash")) or "",
        block_number=None if block_number is None else int(block_number),
        from_address=_opt_str(raw.get("from")),
        to_address=_opt_str(raw.get("to")),
        value_wei=str(value),
        value=format_units(value, chain.native_currency_decimals or 18),
        symbol=chain.native_currency_symbol,
        gas=_opt_str(raw.get("gas")),
        gas_price=_opt_str(raw.get("gasPrice")),
        nonce=None if nonce is None else int(nonce),
        input=_hex(raw.get("input")),
    )


def _receipt_from_rpc(raw: Mapping[str, Any], chain: ChainDefinition, network: str) -> ReceiptSummary:
    status = raw.get("status")
    block_number = raw.get("blockNumber")
    return ReceiptSummary(
        chain_id=chain.id,
        network=network,
        transaction_hash=_hex(raw.get("transactionHash")) or "",
        block_number=None if block_number is None else int(block_number),
        status="success" if status == 1 else "reverted" if status == 0 else "unknown",
        gas_used=_opt_str(raw.get("gasUsed")),
        effective_gas_price=_opt_str(raw.get("effectiveGasPrice")),
        contract_address=_opt_str(raw.get("contractAddress")),
        log_count=len(raw.get("logs") or []),
    )


# ----------------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------------


def supported_networks(ctx: ServiceContext) -> SupportedNetworks:
    registry = ctx.registry

    def summary(chain: ChainDefinition) -> NetworkSummary:
        return NetworkSummary(
            chain_id=chain.id,
            key=chain.key or str(chain.id),
            name=chain.name or "",
            native_currency_symbol=chain.native_currency_symbol or "",
            is_testnet=bool(chain.is_testnet),
            aliases=registry.aliases_for(chain.id),
        )

    default = registry.get(registry.default_chain_id)
    return SupportedNetworks(
        default_network=default.key if default and default.key else str(registry.default_chain_id),
        supported_networks=sorted(registry.name_map),
        mainnets=[summary(c) for c in registry.mainnets()],
        testnets=[summary(c) for c in registry.testnets()],
    )


async def get_chain_info(ctx: ServiceContext, network: NetworkInput = None) -> ChainInfo:
    chain, client = await _client(ctx, network)
    chain_id, block_number = await asyncio.gather(client.eth.chain_id, client.eth.block_number)
    return ChainInfo(
        network=_network_label(chain, network),
        chain_id=int(chain_id),
        name=chain.name,
        native_currency_symbol=chain.native_currency_symbol,
        is_testnet=chain.is_testnet,
        block_number=int(block_number),
        rpc_url=redact_url(ctx.clients.bound_url(chain.id)),
        fallback_to_default=ctx.registry.is_fallback(network),
    )


async def get_block(
    ctx: ServiceContext,
    block_identifier: int | str,
    network: NetworkInput = None,
) -> BlockSummary:
    chain, client = await _client(ctx, network)
    raw = await client.eth.get_block(block_identifier, full_transactions=False)
    if raw is None:
        raise ToolError(f"Block {block_identifier} not found on chain {chain.id}")
    return _block_from_rpc(raw, chain, _network_label(chain, network))


async def get_block_by_hash(ctx: ServiceContext, block_hash: str, network: NetworkInput = None) -> BlockSummary:
    return await get_block(ctx, _tx_hash(block_hash), network)


async def get_transaction(ctx: ServiceContext, tx_hash: str, network: NetworkInput = None) -> TransactionSummary:
    chain, client = await _client(ctx, network)
    raw = await client.eth.get_transaction(_tx_hash(tx_hash))
    return _transaction_from_rpc(raw, chain, _network_label(chain, network))


async def get_transaction_receipt(
    ctx: ServiceContext, tx_hash: str, network: NetworkInput = None
) -> ReceiptSummary:
    chain, client = await _client(ctx, network)
    raw = await client.eth.get_transaction_receipt(_tx_hash(tx_hash))
    return _receipt_from_rpc(raw, chain, _network_label(chain, network))


async def get_native_balance(ctx: ServiceContext, address: str, network: NetworkInput = None) -> NativeBalance:
    account = checksum_address(address)
    chain, client = await _client(ctx, network)
    wei = int(await client.eth.get_balance(account))
    return NativeBalance(
        chain_id=chain.id,
        network=_network_label(chain, network),
        address=account,
        symbol=chain.native_currency_symbol,
        balance_wei=str(wei),
        balance=format_units(wei, chain.native_currency_decimals or 18),
    )


async def get_erc20_token_info(
    ctx: ServiceContext, token_address: str, network: NetworkInput = None
) -> TokenInfo:
    token = checksum_address(token_address, "token address")
    chain, client = await _client(ctx, network)
    contract = client.eth.contract(address=token, abi=ERC20_ABI)
    name, symbol, decimals, total_supply = await asyncio.gather(
        contract.functions.name().call(),
        contract.functions.symbol().call(),
        contract.functions.decimals().call(),
        contract.functions.totalSupply().call(),
    )
    return TokenInfo(
        chain_id=chain.id,
        network=_network_label(chain, network),
        token_address=token,
        name=name,
        symbol=symbol,
        decimals=int(decimals),
        total_supply=str(total_supply),
        total_supply_formatted=format_units(int(total_supply), int(decimals)),
    )


async def get_erc20_balance(
    ctx: ServiceContext,
    token_address: str,
    address: str,
    network: NetworkInput = None,
) -> TokenBalance:
    token = checksum_address(token_address, "token address")
    account = checksum_address(address)
    chain, client = await _client(ctx, network)
    contract = client.eth.contract(address=token, abi=ERC20_ABI)
    raw, symbol, decimals = await asyncio.gather(
        contract.functions.balanceOf(account).call(),
        contract.functions.symbol().call(),
        contract.functions.decimals().call(),
    )
    return TokenBalance(
        chain_id=chain.id,
        network=_network_label(chain, network),
        token_address=token,
        address=account,
        symbol=symbol,
        decimals=int(decimals),
        balance_raw=str(raw),
        balance=format_units(int(raw), int(decimals)),
    )


async def get_gas_price(ctx: ServiceContext, network: NetworkInput = None) -> GasPrice:
    chain, client = await _client(ctx, network)
    wei = int(await client.eth.gas_price)
    return GasPrice(
        chain_id=chain.id,
        network=_network_label(chain, network),
        gas_price_wei=str(wei),
        gas_price_gwei=format_units(wei, 9),
    )


async def estimate_block_time(
    ctx: ServiceContext, network: NetworkInput = None, sample_size: int = 10
) -> BlockTimeEstimate:
    chain, client = await _client(ctx, network)
    latest = await client.eth.get_block("latest")
    latest_number = int(latest["number"])
    if latest_number == 0:
        # Only genesis exists, nothing to average over
        return BlockTimeEstimate(
            chain_id=chain.id,
            network=_network_label(chain, network),
            sample_size=0,
            latest_block=0,
            average_block_time_seconds=0.0,
            blocks_per_minute=0.0,
        )
    span = max(1, min(sample_size, latest_number))
    earlier = await client.eth.get_block(latest_number - span)
    elapsed = int(latest["timestamp"]) - int(earlier["timestamp"])
    average = elapsed / span
    return BlockTimeEstimate(
        chain_id=chain.id,
        network=_network_label(chain, network),
        sample_size=span,
        latest_block=latest_number,
        average_block_time_seconds=round(average, 3),
        blocks_per_minute=round(60 / average, 3) if average > 0 else 0.0,
    )


async def _tagged_block_number(client: Any, tag: str) -> int | None:
    try:
        block = await client.eth.get_block(tag)
    except Web3Exception as exc:
        logger.debug("Block tag %r unavailable: %s", tag, exc)
        return None
    return int(block["number"])


async def get_finality_status(ctx: ServiceContext, network: NetworkInput = None) -> FinalityStatus:
    chain, client = await _client(ctx, network)
    latest = int(await client.eth.block_number)
    safe, finalized = await asyncio.gather(
        _tagged_block_number(client, "safe"),
        _tagged_block_number(client, "finalized"),
    )
    return FinalityStatus(
        chain_id=chain.id,
        network=_network_label(chain, network),
        latest_block=latest,
        safe_block=safe,
        finalized_block=finalized,
        blocks_until_finalized=None if finalized is None else max(0, latest - finalized),
        finality_status="supported" if finalized is not None else "unsupported",
    )


async def is_contract(ctx: ServiceContext, address: str, network: NetworkInput = None) -> ContractCheck:
    account = checksum_address(address)
    chain, client = await _client(ctx, network)
    code = await client.eth.get_code(account)
    size = len(bytes(code)) if isinstance(code, (bytes, bytearray)) else max(0, (len(str(code)) - 2) // 2)
    return ContractCheck(
        chain_id=chain.id,
        network=_network_label(chain, network),
        address=account,
        is_contract=size > 0,
        code_size=size,
    )
