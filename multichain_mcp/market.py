"""Market data tools: Fear & Greed index and CoinGecko quotes."""

import re
from typing import Annotated, Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import BaseModel, Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.results import run_tool
from multichain_mcp.vendors import require_match

_COIN_ID = re.compile(r"[a-z0-9-]+")


class FearGreedEntry(BaseModel):
    value: int
    classification: str
    timestamp: int


class FearGreedIndex(BaseModel):
    current: FearGreedEntry
    time_until_update_s: int | None = None


class FearGreedHistory(BaseModel):
    count: int
    average: float
    entries: list[FearGreedEntry]


class CoinQuote(BaseModel):
    id: str
    symbol: str
    name: str
    current_price_usd: float | None = None
    market_cap_usd: float | None = None
    market_cap_rank: int | None = None
    total_volume_usd: float | None = None
    price_change_24h_pct: float | None = None


class CoinDetail(CoinQuote):
    description: str | None = None
    homepage: str | None = None
    genesis_date: str | None = None
    circulating_supply: float | None = None
    max_supply: float | None = None


class TrendingCoin(BaseModel):
    id: str
    symbol: str
    name: str
    market_cap_rank: int | None = None


class MarketOverview(BaseModel):
    total_market_cap_usd: float | None
    total_volume_usd: float | None
    btc_dominance_pct: float | None
    eth_dominance_pct: float | None
    market_cap_change_24h_pct: float | None
    active_cryptocurrencies: int | None
    markets: int | None
    updated_at: int | None


def _fear_greed_from_api(raw: dict) -> FearGreedEntry:
    return FearGreedEntry(
        value=int(raw["value"]),
        classification=raw["value_classification"],
        timestamp=int(raw["timestamp"]),
    )


def _quote_from_markets(raw: dict) -> CoinQuote:
    return CoinQuote(
        id=raw["id"],
        symbol=raw["symbol"].upper(),
        name=raw["name"],
        current_price_usd=raw.get("current_price"),
        market_cap_usd=raw.get("market_cap"),
        market_cap_rank=raw.get("market_cap_rank"),
        total_volume_usd=raw.get("total_volume"),
        price_change_24h_pct=raw.get("price_change_percentage_24h"),
    )


def _detail_from_coin(raw: dict) -> CoinDetail:
    market = raw.get("market_data") or {}

    def usd(field: str) -> float | None:
        return (market.get(field) or {}).get("usd")

    homepages = [h for h in (raw.get("links") or {}).get("homepage") or [] if h]
    return CoinDetail(
        id=raw["id"],
        symbol=raw["symbol"].upper(),
        name=raw["name"],
        current_price_usd=usd("current_price"),
        market_cap_usd=usd("market_cap"),
        market_cap_rank=raw.get("market_cap_rank"),
        total_volume_usd=usd("total_volume"),
        price_change_24h_pct=market.get("price_change_percentage_24h"),
        description=((raw.get("description") or {}).get("en") or None),
        homepage=homepages[0] if homepages else None,
        genesis_date=raw.get("genesis_date"),
        circulating_supply=market.get("circulating_supply"),
        max_supply=market.get("max_supply"),
    )


def _overview_from_global(raw: dict) -> MarketOverview:
    data = raw.get("data") or {}
    dominance = data.get("market_cap_percentage") or {}
    return MarketOverview(
        total_market_cap_usd=(data.get("total_market_cap") or {}).get("usd"),
        total_volume_usd=(data.get("total_volume") or {}).get("usd"),
        btc_dominance_pct=dominance.get("btc"),
        eth_dominance_pct=dominance.get("eth"),
        market_cap_change_24h_pct=data.get("market_cap_change_percentage_24h_usd"),
        active_cryptocurrencies=data.get("active_cryptocurrencies"),
        markets=data.get("markets"),
        updated_at=data.get("updated_at"),
    )


def register_market_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    settings = ctx.settings

    def coingecko(path: str, params: dict | None = None) -> Any:
        headers = {}
        if settings.coingecko_api_key:
            headers["x-cg-demo-api-key"] = settings.coingecko_api_key
        return ctx.get_json(
            f"{settings.coingecko_api_url.rstrip('/')}{path}", params=params, headers=headers
        )

    async def _fear_greed(limit: int) -> list[FearGreedEntry]:
        raw = await ctx.get_json(settings.fear_greed_api_url, params={"limit": str(limit)})
        entries = [_fear_greed_from_api(e) for e in raw.get("data") or []]
        if not entries:
            raise ToolError("Error fetching Fear & Greed index: empty response")
        return entries

    async def _current() -> FearGreedIndex:
        raw = await ctx.get_json(settings.fear_greed_api_url, params={"limit": "1"})
        data = raw.get("data") or []
        if not data:
            raise ToolError("Error fetching Fear & Greed index: empty response")
        until = data[0].get("time_until_update")
        return FearGreedIndex(
            current=_fear_greed_from_api(data[0]),
            time_until_update_s=int(until) if until is not None else None,
        )

    async def _history(limit: int) -> FearGreedHistory:
        entries = await _fear_greed(limit)
        return FearGreedHistory(
            count=len(entries),
            average=round(sum(e.value for e in entries) / len(entries), 2),
            entries=entries,
        )

    async def _coins(limit: int, page: int, symbol: str | None, name: str | None) -> list[CoinQuote]:
        raw = await coingecko(
            "/coins/markets",
            params={
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": str(limit),
                "page": str(page),
            },
        )
        quotes = [_quote_from_markets(c) for c in raw or []]
        if symbol:
            quotes = [q for q in quotes if q.symbol == symbol.strip().upper()]
        if name:
            needle = name.strip().lower()
            quotes = [q for q in quotes if needle in q.name.lower()]
        return quotes

    async def _coin(coin_id: str) -> CoinDetail:
        # Used verbatim as a URL path segment
        coin_id = require_match(_COIN_ID, coin_id.lower(), "coin id")
        raw = await coingecko(
            f"/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "community_data": "false",
                "developer_data": "false",
            },
        )
        return _detail_from_coin(raw)

    async def _trending() -> list[TrendingCoin]:
        raw = await coingecko("/search/trending")
        return [
            TrendingCoin(
                id=c["item"]["id"],
                symbol=c["item"]["symbol"].upper(),
                name=c["item"]["name"],
                market_cap_rank=c["item"].get("market_cap_rank"),
            )
            for c in raw.get("coins") or []
        ]

    async def _overview() -> MarketOverview:
        return _overview_from_global(await coingecko("/global"))

    @mcp.tool(name="market_get_fear_greed")
    async def market_get_fear_greed() -> FearGreedIndex:
        """Current crypto Fear & Greed index (0 = extreme fear, 100 = extreme greed)."""
        return await run_tool("fetching Fear & Greed index", _current())

    @mcp.tool(name="market_get_fear_greed_history")
    async def market_get_fear_greed_history(
        limit: Annotated[int, Field(ge=1, le=365, description="Number of days")] = 7,
    ) -> FearGreedHistory:
        """Daily Fear & Greed values, newest first, with their average."""
        return await run_tool("fetching Fear & Greed history", _history(limit))

    @mcp.tool(name="market_get_coins")
    async def market_get_coins(
        limit: Annotated[int, Field(ge=1, le=250)] = 20,
        page: Annotated[int, Field(ge=1)] = 1,
        symbol: Annotated[str | None, Field(description="Exact ticker filter, e.g. 'ETH'")] = None,
        name: Annotated[str | None, Field(description="Case-insensitive name substring")] = None,
    ) -> list[CoinQuote]:
        """Coins by market cap with USD price, volume and 24h change."""
        return await run_tool("fetching coins", _coins(limit, page, symbol, name))

    @mcp.tool(name="market_get_coin_by_id")
    async def market_get_coin_by_id(
        coin_id: Annotated[str, Field(description="CoinGecko id, e.g. 'ethereum'")],
    ) -> CoinDetail:
        return await run_tool("fetching coin", _coin(coin_id))

    @mcp.tool(name="market_get_trending")
    async def market_get_trending() -> list[TrendingCoin]:
        """Coins trending in CoinGecko searches over the last 24 hours."""
        return await run_tool("fetching trending coins", _trending())

    @mcp.tool(name="market_get_overview")
    async def market_get_overview() -> MarketOverview:
        """Total market cap, 24h volume and BTC/ETH dominance across all coins."""
        return await run_tool("fetching market overview", _overview())
