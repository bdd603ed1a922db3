from typing import Annotated

from fastmcp import FastMCP
from pydantic import Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.evm import services
from multichain_mcp.evm.services import (
    BlockSummary,
    BlockTimeEstimate,
    ChainInfo,
    ContractCheck,
    FinalityStatus,
    GasPrice,
    NativeBalance,
    ReceiptSummary,
    SupportedNetworks,
    TokenBalance,
    TokenInfo,
    TransactionSummary,
)
from multichain_mcp.results import run_tool

Network = Annotated[
    int | str | None,
    Field(
        description=(
            "Chain id (e.g. 1, 56, 137) or network name/alias (e.g. 'ethereum', "
            "'bsc', 'polygon-amoy', 'sepolia'). Defaults to Ethereum mainnet."
        )
    ),
]
Address = Annotated[str, Field(description="0x-prefixed EVM account address")]
TokenAddress = Annotated[str, Field(description="0x-prefixed ERC-20 contract address")]
TxHash = Annotated[str, Field(description="0x-prefixed 32-byte transaction hash")]


def register_evm_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    """Register every EVM tool on ``mcp``, bound to ``ctx``."""

    @mcp.tool(name="get_supported_networks")
    async def get_supported_networks() -> SupportedNetworks:
        """List every EVM network name and alias accepted by the `network` argument.

        Unknown names fall back to Ethereum mainnet, so check this list when a
        result looks like it came from the wrong chain.
        """
        return services.supported_networks(ctx)

    @mcp.tool(name="get_chain_info")
    async def get_chain_info(network: Network = None) -> ChainInfo:
        """Chain id, display name, native currency and latest block for a network.

        `fallback_to_default` is true when the given name was not recognised
        and Ethereum mainnet was used instead.
        """
        return await run_tool("fetching chain info", services.get_chain_info(ctx, network))

    @mcp.tool(name="get_latest_block")
    async def get_latest_block(network: Network = None) -> BlockSummary:
        """Latest block header with transaction hashes."""
        return await run_tool("fetching latest block", services.get_block(ctx, "latest", network))

    @mcp.tool(name="get_block_by_number")
    async def get_block_by_number(
        block_number: Annotated[int, Field(ge=0, description="Block height")],
        network: Network = None,
    ) -> BlockSummary:
        """Block header and transaction hashes at a given height."""
        return await run_tool(
            f"fetching block {block_number}", services.get_block(ctx, block_number, network)
        )

    @mcp.tool(name="get_block_by_hash")
    async def get_block_by_hash(
        block_hash: Annotated[str, Field(description="0x-prefixed 32-byte block hash")],
        network: Network = None,
    ) -> BlockSummary:
        """Block header and transaction hashes for a block hash."""
        return await run_tool("fetching block", services.get_block_by_hash(ctx, block_hash, network))

    @mcp.tool(name="get_transaction")
    async def get_transaction(tx_hash: TxHash, network: Network = None) -> TransactionSummary:
        """Transaction details (sender, recipient, value, gas, input data)."""
        return await run_tool("fetching transaction", services.get_transaction(ctx, tx_hash, network))

    @mcp.tool(name="get_transaction_receipt")
    async def get_transaction_receipt(tx_hash: TxHash, network: Network = None) -> ReceiptSummary:
        """Execution status, gas used and log count for a mined transaction."""
        return await run_tool(
            "fetching transaction receipt",
            services.get_transaction_receipt(ctx, tx_hash, network),
        )

    @mcp.tool(name="get_native_balance")
    async def get_native_balance(address: Address, network: Network = None) -> NativeBalance:
        """Native token balance (ETH, BNB, POL, ...) in wei and in whole units."""
        return await run_tool("fetching balance", services.get_native_balance(ctx, address, network))

    @mcp.tool(name="get_erc20_token_info")
    async def get_erc20_token_info(token_address: TokenAddress, network: Network = None) -> TokenInfo:
        """ERC-20 name, symbol, decimals and total supply."""
        return await run_tool(
            "fetching token info", services.get_erc20_token_info(ctx, token_address, network)
        )

    @mcp.tool(name="get_erc20_balance")
    async def get_erc20_balance(
        token_address: TokenAddress,
        address: Address,
        network: Network = None,
    ) -> TokenBalance:
        """ERC-20 balance of `address`, raw and scaled by the token's decimals."""
        return await run_tool(
            "fetching token balance",
            services.get_erc20_balance(ctx, token_address, address, network),
        )

    @mcp.tool(name="get_gas_price")
    async def get_gas_price(network: Network = None) -> GasPrice:
        """Current gas price in wei and gwei."""
        return await run_tool("fetching gas price", services.get_gas_price(ctx, network))

    @mcp.tool(name="estimate_block_time")
    async def estimate_block_time(
        network: Network = None,
        sample_size: Annotated[
            int, Field(ge=1, le=1000, description="Number of recent blocks to average over")
        ] = 10,
    ) -> BlockTimeEstimate:
        """Average block time over the last `sample_size` blocks."""
        return await run_tool(
            "estimating block time", services.estimate_block_time(ctx, network, sample_size)
        )

    @mcp.tool(name="get_finality_status")
    async def get_finality_status(network: Network = None) -> FinalityStatus:
        """Latest, safe and finalized block heights.

        Chains without the `safe`/`finalized` block tags report
        `finality_status: "unsupported"`.
        """
        return await run_tool("fetching finality status", services.get_finality_status(ctx, network))

    @mcp.tool(name="is_contract")
    async def is_contract(address: Address, network: Network = None) -> ContractCheck:
        """Whether `address` holds contract code on the network."""
        return await run_tool("checking address code", services.is_contract(ctx, address, network))
