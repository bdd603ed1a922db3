from __future__ import annotations

import logging

from fastmcp import FastMCP

from multichain_mcp.config import Settings, configure_logging
from multichain_mcp.context import ServiceContext
from multichain_mcp.evm.services import supported_networks
from multichain_mcp.evm.tools import register_evm_tools
from multichain_mcp.market import register_market_tools
from multichain_mcp.vendors import register_vendor_tools

logger = logging.getLogger(__name__)

INSTRUCTIONS = """\
Read-only blockchain data across EVM and non-EVM networks.

EVM tools take a `network` argument: a chain id (1, 56, 137, ...) or a name
such as 'ethereum', 'bsc', 'polygon-amoy'. Unknown names fall back to
Ethereum mainnet; call get_supported_networks when unsure. Solana, Sui,
Aptos, NEAR, Cosmos and Algorand tools are prefixed with the chain name.
Amounts are returned both in base units (strings) and in display units.
"""


def create_server(ctx: ServiceContext | None = None) -> FastMCP:
    """Build a server with every tool bound to ``ctx`` (read from the environment if omitted)."""
    ctx = ctx or ServiceContext.from_env()
    mcp = FastMCP(name="Multichain MCP", instructions=INSTRUCTIONS)

    register_evm_tools(mcp, ctx)
    register_vendor_tools(mcp, ctx)
    register_market_tools(mcp, ctx)

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    @mcp.resource("networks://evm", mime_type="application/json")
    async def evm_networks() -> dict:
        """EVM networks with their chain ids, aliases and native currency. Same data as get_supported_networks."""
        return supported_networks(ctx).model_dump()

    return mcp


def main() -> None:
    """Entry point: stdio by default, Streamable HTTP when MULTICHAIN_MCP_TRANSPORT=http."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    mcp = create_server(ServiceContext(settings=settings))

    if settings.transport == "http":
        logger.info(
            "Serving Streamable HTTP on %s:%s%s", settings.host, settings.port, settings.path
        )
        mcp.run(transport="http", host=settings.host, port=settings.port, path=settings.path)
    else:
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
