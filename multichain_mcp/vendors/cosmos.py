"""Cosmos SDK tools over the LCD (REST) API of several public chains."""

import re
from typing import Annotated, Any, Literal

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from multichain_mcp.context import ServiceContext
from multichain_mcp.results import format_units, run_tool
from multichain_mcp.vendors import require_match


class CosmosChain(BaseModel, frozen=True):
    key: str
    name: str
    rest_url: str
    bech32_prefix: str
    denom: str
    decimals: int
    symbol: str


COSMOS_CHAINS: dict[str, CosmosChain] = {
    c.key: c
    for c in (
        CosmosChain(
            key="cosmoshub",
            name="Cosmos Hub",
            rest_url="https://cosmos-rest.publicnode.com",
            bech32_prefix="cosmos",
            denom="uatom",
            decimals=6,
            symbol="ATOM",
        ),
        CosmosChain(
            key="osmosis",
            name="Osmosis",
            rest_url="https://osmosis-rest.publicnode.com",
            bech32_prefix="osmo",
            denom="uosmo",
            decimals=6,
            symbol="OSMO",
        ),
        CosmosChain(
            key="juno",
            name="Juno",
            rest_url="https://juno-rest.publicnode.com",
            bech32_prefix="juno",
            denom="ujuno",
            decimals=6,
            symbol="JUNO",
        ),
        CosmosChain(
            key="stargaze",
            name="Stargaze",
            rest_url="https://stargaze-rest.publicnode.com",
            bech32_prefix="stars",
            denom="ustars",
            decimals=6,
            symbol="STARS",
        ),
        CosmosChain(
            key="akash",
            name="Akash",
            rest_url="https://akash-rest.publicnode.com",
            bech32_prefix="akash",
            denom="uakt",
            decimals=6,
            symbol="AKT",
        ),
        CosmosChain(
            key="injective",
            name="Injective",
            rest_url="https://injective-rest.publicnode.com",
            bech32_prefix="inj",
            denom="inj",
            decimals=18,
            symbol="INJ",
        ),
    )
}

DEFAULT_COSMOS_CHAIN = "cosmoshub"

_BECH32_BODY = "[02-9ac-hj-np-z]{38,58}"
_TX_HASH = re.compile(r"[0-9A-Fa-f]{64}")

ProposalStatus = Literal[
    "PROPOSAL_STATUS_DEPOSIT_PERIOD",
    "PROPOSAL_STATUS_VOTING_PERIOD",
    "PROPOSAL_STATUS_PASSED",
    "PROPOSAL_STATUS_REJECTED",
    "PROPOSAL_STATUS_FAILED",
]

CosmosChainName = Annotated[
    str | None,
    Field(description="Chain key, e.g. 'cosmoshub', 'osmosis'; defaults to cosmoshub"),
]
CosmosAddress = Annotated[str, Field(description="Bech32 account address")]


class CosmosSupportedChain(BaseModel):
    key: str
    name: str
    symbol: str
    denom: str
    bech32_prefix: str


class CosmosCoin(BaseModel):
    denom: str
    amount: str
    display_amount: str | None = None


class CosmosBalance(BaseModel):
    chain: str
    address: str
    native: CosmosCoin
    balances: list[CosmosCoin]


class CosmosAccount(BaseModel):
    chain: str
    address: str
    type: str | None
    account_number: str | None
    sequence: str | None


class CosmosDelegation(BaseModel):
    validator_address: str
    shares: str
    amount: str
    display_amount: str


class CosmosDelegations(BaseModel):
    chain: str
    address: str
    total: str
    delegations: list[CosmosDelegation]


class CosmosValidator(BaseModel):
    operator_address: str
    moniker: str
    tokens: str
    commission_rate: str | None
    jailed: bool


class CosmosValidators(BaseModel):
    chain: str
    count: int
    validators: list[CosmosValidator]


class CosmosValidatorReward(BaseModel):
    validator_address: str
    amount: str
    display_amount: str


class CosmosRewards(BaseModel):
    chain: str
    address: str
    symbol: str
    total: str
    rewards: list[CosmosValidatorReward]


class CosmosIbcChannel(BaseModel):
    channel_id: str
    port_id: str
    state: str | None
    counterparty_channel_id: str | None
    counterparty_port_id: str | None
    connection_hops: list[str]


class CosmosIbcChannels(BaseModel):
    chain: str
    channel_count: int
    channels: list[CosmosIbcChannel]


class CosmosProposal(BaseModel):
    id: str
    title: str | None
    status: str | None
    submit_time: str | None
    voting_end_time: str | None
    total_deposit: list[CosmosCoin]


class CosmosProposals(BaseModel):
    chain: str
    proposal_count: int
    proposals: list[CosmosProposal]


class CosmosTransaction(BaseModel):
    chain: str
    hash: str
    height: str | None
    code: int
    succeeded: bool
    gas_used: str | None
    gas_wanted: str | None
    timestamp: str | None
    memo: str | None
    message_types: list[str]
    raw_log: str | None = None


def get_cosmos_chain(chain: str | None) -> CosmosChain:
    """Look up a chain by key; unknown or missing names select the Cosmos Hub."""
    key = (chain or "").strip().lower()
    return COSMOS_CHAINS.get(key, COSMOS_CHAINS[DEFAULT_COSMOS_CHAIN])


def _address_pattern(chain: CosmosChain) -> "re.Pattern[str]":
    return re.compile(rf"{chain.bech32_prefix}1{_BECH32_BODY}")


def _coin(raw: dict, chain: CosmosChain) -> CosmosCoin:
    amount = str(raw.get("amount", "0"))
    display = None
    if raw.get("denom") == chain.denom:
        display = format_units(int(amount.split(".")[0]), chain.decimals)
    return CosmosCoin(denom=raw.get("denom", ""), amount=amount, display_amount=display)


def _validator_from_rest(raw: dict) -> CosmosValidator:
    rates = (raw.get("commission") or {}).get("commission_rates") or {}
    return CosmosValidator(
        operator_address=raw["operator_address"],
        moniker=(raw.get("description") or {}).get("moniker", ""),
        tokens=str(raw.get("tokens", "0")),
        commission_rate=rates.get("rate"),
        jailed=bool(raw.get("jailed", False)),
    )


def _native_amount(coins: list[dict] | None, chain: CosmosChain) -> int:
    # Reward amounts are DecCoins such as "1234.560000000000000000"
    for coin in coins or []:
        if coin.get("denom") == chain.denom:
            return int(str(coin.get("amount", "0")).split(".")[0])
    return 0


def _channel_from_rest(raw: dict) -> CosmosIbcChannel:
    counterparty = raw.get("counterparty") or {}
    return CosmosIbcChannel(
        channel_id=raw["channel_id"],
        port_id=raw["port_id"],
        state=raw.get("state"),
        counterparty_channel_id=counterparty.get("channel_id"),
        counterparty_port_id=counterparty.get("port_id"),
        connection_hops=list(raw.get("connection_hops") or []),
    )


def _proposal_from_rest(raw: dict, chain: CosmosChain) -> CosmosProposal:
    # gov v1 carries id/title at the top level; v1beta1 nests the title in content
    return CosmosProposal(
        id=str(raw.get("id") or raw.get("proposal_id")),
        title=raw.get("title") or (raw.get("content") or {}).get("title"),
        status=raw.get("status"),
        submit_time=raw.get("submit_time"),
        voting_end_time=raw.get("voting_end_time"),
        total_deposit=[_coin(c, chain) for c in raw.get("total_deposit") or []],
    )


def _transaction_from_rest(raw: dict, chain: CosmosChain) -> CosmosTransaction:
    response = raw.get("tx_response") or {}
    body = (raw.get("tx") or {}).get("body") or {}
    code = int(response.get("code", 0))
    return CosmosTransaction(
        chain=chain.key,
        hash=response.get("txhash", ""),
        height=response.get("height"),
        code=code,
        succeeded=code == 0,
        gas_used=response.get("gas_used"),
        gas_wanted=response.get("gas_wanted"),
        timestamp=response.get("timestamp"),
        memo=body.get("memo") or None,
        message_types=[m.get("@type", "") for m in body.get("messages") or []],
        raw_log=response.get("raw_log") or None,
    )


def register_cosmos_tools(mcp: FastMCP, ctx: ServiceContext) -> None:
    def get(chain: CosmosChain, path: str, params: dict | None = None) -> Any:
        return ctx.get_json(f"{chain.rest_url.rstrip('/')}{path}", params=params)

    def _account_address(chain: CosmosChain, address: str) -> str:
        return require_match(_address_pattern(chain), address, f"{chain.name} address")

    async def _balance(address: str, chain_key: str | None) -> CosmosBalance:
        chain = get_cosmos_chain(chain_key)
        address = _account_address(chain, address)
        raw = await get(chain, f"/cosmos/bank/v1beta1/balances/{address}")
        coins = [_coin(c, chain) for c in raw.get("balances") or []]
        native = next(
            (c for c in coins if c.denom == chain.denom),
            CosmosCoin(denom=chain.denom, amount="0", display_amount="0"),
        )
        return CosmosBalance(chain=chain.key, address=address, native=native, balances=coins)

    async def _account(address: str, chain_key: str | None) -> CosmosAccount:
        chain = get_cosmos_chain(chain_key)
        address = _account_address(chain, address)
        raw = (await get(chain, f"/cosmos/auth/v1beta1/accounts/{address}")).get("account") or {}
        # Vesting and module accounts nest the common fields under base_account
        base = raw.get("base_account") or (raw.get("base_vesting_account") or {}).get(
            "base_account"
        ) or raw
        return CosmosAccount(
            chain=chain.key,
            address=address,
            type=raw.get("@type"),
            account_number=base.get("account_number"),
            sequence=base.get("sequence"),
        )

    async def _delegations(address: str, chain_key: str | None) -> CosmosDelegations:
        chain = get_cosmos_chain(chain_key)
        address = _account_address(chain, address)
        raw = await get(chain, f"/cosmos/staking/v1beta1/delegations/{address}")
        delegations = []
        total = 0
        for entry in raw.get("delegation_responses") or []:
            amount = int(str(entry["balance"]["amount"]).split(".")[0])
            total += amount
            delegations.append(
                CosmosDelegation(
                    validator_address=entry["delegation"]["validator_address"],
                    shares=str(entry["delegation"]["shares"]),
                    amount=str(amount),
                    display_amount=format_units(amount, chain.decimals),
                )
            )
        return CosmosDelegations(
            chain=chain.key,
            address=address,
            total=format_units(total, chain.decimals),
            delegations=delegations,
        )

    async def _validators(chain_key: str | None, limit: int) -> CosmosValidators:
        chain = get_cosmos_chain(chain_key)
        raw = await get(
            chain,
            "/cosmos/staking/v1beta1/validators",
            params={"status": "BOND_STATUS_BONDED", "pagination.limit": str(limit)},
        )
        validators = [_validator_from_rest(v) for v in raw.get("validators") or []]
        validators.sort(key=lambda v: int(v.tokens.split(".")[0]), reverse=True)
        return CosmosValidators(chain=chain.key, count=len(validators), validators=validators)

    async def _rewards(address: str, chain_key: str | None) -> CosmosRewards:
        chain = get_cosmos_chain(chain_key)
        address = _account_address(chain, address)
        raw = await get(chain, f"/cosmos/distribution/v1beta1/delegators/{address}/rewards")
        rewards = []
        for entry in raw.get("rewards") or []:
            amount = _native_amount(entry.get("reward"), chain)
            rewards.append(
                CosmosValidatorReward(
                    validator_address=entry["validator_address"],
                    amount=str(amount),
                    display_amount=format_units(amount, chain.decimals),
                )
            )
        return CosmosRewards(
            chain=chain.key,
            address=address,
            symbol=chain.symbol,
            total=format_units(_native_amount(raw.get("total"), chain), chain.decimals),
            rewards=rewards,
        )

    async def _ibc_channels(chain_key: str | None, limit: int) -> CosmosIbcChannels:
        chain = get_cosmos_chain(chain_key)
        raw = await get(
            chain, "/ibc/core/channel/v1/channels", params={"pagination.limit": str(limit)}
        )
        channels = [_channel_from_rest(c) for c in raw.get("channels") or []]
        return CosmosIbcChannels(chain=chain.key, channel_count=len(channels), channels=channels)

    async def _proposals(chain_key: str | None, status: str | None, limit: int) -> CosmosProposals:
        chain = get_cosmos_chain(chain_key)
        params = {"pagination.limit": str(limit), "pagination.reverse": "true"}
        if status:
            params["proposal_status"] = status
        raw = await get(chain, "/cosmos/gov/v1/proposals", params=params)
        proposals = [_proposal_from_rest(p, chain) for p in raw.get("proposals") or []]
        return CosmosProposals(chain=chain.key, proposal_count=len(proposals), proposals=proposals)

    async def _transaction(tx_hash: str, chain_key: str | None) -> CosmosTransaction:
        chain = get_cosmos_chain(chain_key)
        tx_hash = require_match(_TX_HASH, tx_hash, "transaction hash").upper()
        return _transaction_from_rest(await get(chain, f"/cosmos/tx/v1beta1/txs/{tx_hash}"), chain)

    @mcp.tool(name="cosmos_get_supported_chains")
    async def cosmos_get_supported_chains() -> list[CosmosSupportedChain]:
        """Cosmos SDK chains these tools can query."""
        return [
            CosmosSupportedChain(
                key=c.key,
                name=c.name,
                symbol=c.symbol,
                denom=c.denom,
                bech32_prefix=c.bech32_prefix,
            )
            for c in COSMOS_CHAINS.values()
        ]

    @mcp.tool(name="cosmos_get_balance")
    async def cosmos_get_balance(
        address: CosmosAddress, chain: CosmosChainName = None
    ) -> CosmosBalance:
        """Bank balances of an address; `native` holds the staking token."""
        return await run_tool("fetching balance", _balance(address, chain))

    @mcp.tool(name="cosmos_get_account")
    async def cosmos_get_account(
        address: CosmosAddress, chain: CosmosChainName = None
    ) -> CosmosAccount:
        return await run_tool("fetching account", _account(address, chain))

    @mcp.tool(name="cosmos_get_delegations")
    async def cosmos_get_delegations(
        address: CosmosAddress, chain: CosmosChainName = None
    ) -> CosmosDelegations:
        """Staking delegations of a delegator address."""
        return await run_tool("fetching delegations", _delegations(address, chain))

    @mcp.tool(name="cosmos_get_validators")
    async def cosmos_get_validators(
        chain: CosmosChainName = None,
        limit: Annotated[int, Field(ge=1, le=500)] = 50,
    ) -> CosmosValidators:
        """Bonded validators, largest stake first."""
        return await run_tool("fetching validators", _validators(chain, limit))

    @mcp.tool(name="cosmos_get_rewards")
    async def cosmos_get_rewards(
        address: CosmosAddress, chain: CosmosChainName = None
    ) -> CosmosRewards:
        """Pending staking rewards in the native token, per validator and in total."""
        return await run_tool("fetching rewards", _rewards(address, chain))

    @mcp.tool(name="cosmos_get_ibc_channels")
    async def cosmos_get_ibc_channels(
        chain: CosmosChainName = None,
        limit: Annotated[int, Field(ge=1, le=500)] = 50,
    ) -> CosmosIbcChannels:
        """IBC channels with their counterparty ends."""
        return await run_tool("fetching IBC channels", _ibc_channels(chain, limit))

    @mcp.tool(name="cosmos_get_proposals")
    async def cosmos_get_proposals(
        chain: CosmosChainName = None,
        status: Annotated[
            ProposalStatus | None, Field(description="Filter by proposal status")
        ] = None,
        limit: Annotated[int, Field(ge=1, le=200)] = 20,
    ) -> CosmosProposals:
        """Governance proposals, newest first."""
        return await run_tool("fetching proposals", _proposals(chain, status, limit))

    @mcp.tool(name="cosmos_get_transaction")
    async def cosmos_get_transaction(
        tx_hash: Annotated[str, Field(description="Hex transaction hash")],
        chain: CosmosChainName = None,
    ) -> CosmosTransaction:
        """Result code, gas and message types of a transaction."""
        return await run_tool("fetching transaction", _transaction(tx_hash, chain))
