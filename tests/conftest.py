"""Pytest configuration and fixtures."""

import json
from typing import Any, Callable

import httpx
import pytest
from web3.exceptions import Web3Exception

from multichain_mcp.config import Settings
from multichain_mcp.context import ServiceContext
from multichain_mcp.evm.chains import DEFAULT_REGISTRY
from multichain_mcp.evm.clients import ClientCache

ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
TOKEN = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
TX_HASH = "0x" + "ab" * 32
BLOCK_HASH = "0x" + "cd" * 32


async def _value(value: Any) -> Any:
    if isinstance(value, Exception):
        raise value
    return value


class FakeCall:
    def __init__(self, value: Any):
        self.value = value

    def call(self):
        return _value(self.value)


class FakeFunctions:
    def __init__(self, token: dict):
        self.token = token

    def name(self):
        return FakeCall(self.token["name"])

    def symbol(self):
        return FakeCall(self.token["symbol"])

    def decimals(self):
        return FakeCall(self.token["decimals"])

    def totalSupply(self):
        return FakeCall(self.token["totalSupply"])

    def balanceOf(self, account):
        return FakeCall(self.token["balances"].get(account, 0))


class FakeContract:
    def __init__(self, address: str, token: dict):
        self.address = address
        self.functions = FakeFunctions(token)


class FakeEth:
    """Just enough of ``AsyncWeb3.eth`` for the EVM queries."""

    def __init__(self, chain_id: int):
        self.chain_id_value = chain_id
        self.block_number_value = 1_000
        self.gas_price_value = 25 * 10**9
        self.balances: dict[str, int] = {}
        self.code: dict[str, bytes] = {}
        self.blocks: dict[Any, Any] = {}
        self.transactions: dict[str, Any] = {}
        self.receipts: dict[str, Any] = {}
        self.tokens: dict[str, dict] = {}

    @property
    def chain_id(self):
        return _value(self.chain_id_value)

    @property
    def block_number(self):
        return _value(self.block_number_value)

    @property
    def gas_price(self):
        return _value(self.gas_price_value)

    def get_block(self, block_identifier, full_transactions=False):
        if block_identifier not in self.blocks:
            return _value(Web3Exception(f"block {block_identifier!r} not found"))
        return _value(self.blocks[block_identifier])

    def get_transaction(self, tx_hash):
        return _value(self.transactions[tx_hash])

    def get_transaction_receipt(self, tx_hash):
        return _value(self.receipts[tx_hash])

    def get_balance(self, account):
        return _value(self.balances.get(account, 0))

    def get_code(self, account):
        return _value(self.code.get(account, b""))

    def contract(self, address, abi):
        return FakeContract(address, self.tokens[address])


class FakeWeb3:
    def __init__(self, chain_id: int, rpc_url: str):
        self.rpc_url = rpc_url
        self.eth = FakeEth(chain_id)


def block(number: int, timestamp: int, **extra: Any) -> dict:
    data = {
        "number": number,
        "hash": bytes.fromhex(f"{number:064x}"),
        "parentHash": bytes.fromhex(f"{max(number - 1, 0):064x}"),
        "timestamp": timestamp,
        "miner": ADDRESS,
        "gasUsed": 21_000,
        "gasLimit": 30_000_000,
        "baseFeePerGas": 7,
        "transactions": [bytes.fromhex("ab" * 32)],
    }
    data.update(extra)
    return data


class RecordingFactory:
    """Client factory that records each construction and hands out ``FakeWeb3``."""

    def __init__(self):
        self.calls: list[tuple[int, str]] = []
        self.clients: dict[int, FakeWeb3] = {}
        self.configure: Callable[[FakeWeb3], None] | None = None

    def __call__(self, chain, rpc_url):
        self.calls.append((chain.id, rpc_url))
        client = FakeWeb3(chain.id, rpc_url)
        if self.configure is not None:
            self.configure(client)
        self.clients[chain.id] = client
        return client


def json_rpc_handler(results: dict[str, Any]) -> Callable[[httpx.Request], httpx.Response]:
    """MockTransport handler answering JSON-RPC calls from a method → result table.

    A value that is a callable receives the request params.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        if method not in results:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"],
                      "error": {"code": -32601, "message": f"Method {method} not found"}},
            )
        result = results[method]
        if callable(result):
            result = result(body["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return handler


def rest_handler(routes: dict[str, Any]) -> Callable[[httpx.Request], httpx.Response]:
    """MockTransport handler answering requests by exact URL path; unknown paths 404.

    A value that is a callable receives the request and returns the JSON body.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path not in routes:
            return httpx.Response(404, json={"message": "not found"})
        body = routes[request.url.path]
        if callable(body):
            body = body(request)
        return httpx.Response(200, json=body)

    return handler


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def make_context(factory):
    """Build a ``ServiceContext`` with a fake EVM factory and an optional HTTP handler."""

    def build(
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
        *,
        settings: Settings | None = None,
        environ: dict[str, str] | None = None,
    ) -> ServiceContext:
        settings = settings or Settings()
        clients = ClientCache(
            DEFAULT_REGISTRY,
            environ=environ or {},
            factory=factory,
            strict=settings.strict_network_resolution,
        )
        return ServiceContext(
            settings=settings,
            clients=clients,
            http_transport=httpx.MockTransport(handler) if handler else None,
        )

    return build


def tool_text(result) -> str:
    return "".join(getattr(block, "text", "") for block in result.content)
