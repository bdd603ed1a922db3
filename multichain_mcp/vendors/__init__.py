"""Non-EVM vendor modules.

Each module talks to one chain's public JSON-RPC or REST API through the
service context's HTTP helpers and exposes read-only tools.
"""

import re

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from multichain_mcp.context import ServiceContext


def require_match(pattern: "re.Pattern[str]", value: str, label: str) -> str:
    """Return ``value`` stripped, or raise ``ToolError`` if it doesn't match."""
    text = (value or "").strip()
    if not pattern.fullmatch(text):
        raise ToolError(f"Invalid {label}: {value!r}")
    return text


def register_vendor_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    from multichain_mcp.vendors import algorand, aptos, cosmos, near, solana, sui

    solana.register_solana_tools(mcp, ctx)
    sui.register_sui_tools(mcp, ctx)
    aptos.register_aptos_tools(mcp, ctx)
    near.register_near_tools(mcp, ctx)
    cosmos.register_cosmos_tools(mcp, ctx)
    algorand.register_algorand_tools(mcp, ctx)
