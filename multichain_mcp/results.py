"""Shared tool-result helpers.

Every tool body goes through ``run_tool`` so failures reach the client the
same way regardless of vendor: a ``ToolError`` whose text starts with
``Error``, which FastMCP turns into an ``isError`` result.
"""

from __future__ import annotations

import logging
from typing import Awaitable, TypeVar

from fastmcp.exceptions import ToolError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_tool(action: str, call: Awaitable[T]) -> T:
    """Await ``call``; wrap anything but ``ToolError`` as ``Error <action>: ...``."""
    try:
        return await call
    except ToolError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.warning("Tool call failed while %s: %s", action, exc)
        raise ToolError(f"Error {action}: {exc}") from exc


def format_units(value: int, decimals: int) -> str:
    """Render an integer amount of base units as a plain decimal string."""
    if decimals <= 0:
        return str(value)
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_text}" if frac_text else f"{sign}{whole}"
