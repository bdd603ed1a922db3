"""Tests for the non-EVM vendor tools over mocked HTTP endpoints."""

import base64
import json

import httpx
import pytest
from fastmcp import Client

from conftest import json_rpc_handler, rest_handler, tool_text
from multichain_mcp.server import create_server
from multichain_mcp.vendors.cosmos import get_cosmos_chain

SOL_ADDRESS = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
SUI_ADDRESS = "0x" + "a1" * 32
COSMOS_ADDRESS = "cosmos1qypqxpq9qcrsszg2pvxq6rs0zqg3yyc5lzv7xu"
ALGO_ADDRESS = "VCMJKWOY5P5P7SKMZFFOCEROPJCZOTIJMNIYNUCKH7LRO45JMJP6UYBIJA"
NEAR_TX_HASH = "9FtHUFBQsZ2MG77K3x3MJ9wjX3UT8zE1TczCrhZEcG8U"
COSMOS_TX_HASH = "AB" * 32
APT_COIN_INFO = "/v1/accounts/0x1/resource/0x1::coin::CoinInfo<0x1::aptos_coin::AptosCoin>"


async def call(server, tool, **arguments):
    async with Client(server) as client:
        return await client.call_tool(tool, arguments, raise_on_error=False)


class TestSolanaTools:
    """Tests for Solana tools."""

    @pytest.fixture
    def server(self, make_context):
        token_account = {
            "pubkey": "TokenAcct1111111111111111111111111111111111",
            "account": {"data": {"parsed": {"info": {
                "mint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
                "tokenAmount": {"amount": "2500000", "decimals": 6},
            }}}},
        }
        empty_account = {
            "pubkey": "TokenAcct2222222222222222222222222222222222",
            "account": {"data": {"parsed": {"info": {
                "mint": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
                "tokenAmount": {"amount": "0", "decimals": 6},
            }}}},
        }
        handler = json_rpc_handler({
            "getBalance": {"context": {"slot": 1}, "value": 1_250_000_000},
            "getAccountInfo": lambda params: {"context": {"slot": 1}, "value": {
                "lamports": 1_250_000_000,
                "owner": "11111111111111111111111111111111",
                "executable": False,
                "rentEpoch": 361,
                "data": [base64.b64encode(b"\x00" * 10).decode(), "base64"],
            }},
            "getTokenAccountsByOwner": {"context": {"slot": 1}, "value": [token_account, empty_account]},
            "getSlot": 250_000_000,
            "getBlockHeight": 230_000_000,
        })
        return create_server(make_context(handler))

    @pytest.mark.asyncio
    async def test_get_balance(self, server):
        result = await call(server, "solana_get_balance", address=SOL_ADDRESS)

        data = result.structured_content
        assert data["lamports"] == 1_250_000_000
        assert data["balance"] == "1.25"
        assert data["symbol"] == "SOL"

    @pytest.mark.asyncio
    async def test_get_account_info(self, server):
        result = await call(server, "solana_get_account_info", address=SOL_ADDRESS)

        data = result.structured_content
        assert data["exists"] is True
        assert data["data_size"] == 10
        assert data["owner"] == "11111111111111111111111111111111"

    @pytest.mark.asyncio
    async def test_token_balances_skip_empty(self, server):
        """Test zero-balance token accounts are dropped by default."""
        result = await call(server, "solana_get_token_balances", address=SOL_ADDRESS)

        data = result.structured_content
        assert data["token_count"] == 1
        assert data["tokens"][0]["balance"] == "2.5"

    @pytest.mark.asyncio
    async def test_token_balances_include_empty(self, server):
        result = await call(
            server, "solana_get_token_balances", address=SOL_ADDRESS, include_zero=True
        )

        assert result.structured_content["token_count"] == 2

    @pytest.mark.asyncio
    async def test_get_slot(self, server):
        result = await call(server, "solana_get_slot")

        assert result.structured_content == {"slot": 250_000_000, "block_height": 230_000_000}

    @pytest.mark.asyncio
    async def test_invalid_address(self, server):
        """Test base58 validation happens before any RPC call."""
        result = await call(server, "solana_get_balance", address="0xnot-base58")

        assert result.is_error
        assert tool_text(result).startswith("Invalid Solana address")

    @pytest.mark.asyncio
    async def test_missing_account(self, make_context):
        handler = json_rpc_handler({"getAccountInfo": {"context": {"slot": 1}, "value": None}})

        result = await call(
            create_server(make_context(handler)), "solana_get_account_info", address=SOL_ADDRESS
        )

        assert result.structured_content["exists"] is False

    @pytest.mark.asyncio
    async def test_rpc_error_object(self, make_context):
        """Test JSON-RPC error objects become tool errors."""
        result = await call(create_server(make_context(json_rpc_handler({}))), "solana_get_slot")

        assert result.is_error
        assert tool_text(result).startswith("Error fetching slot:")
        assert "not found" in tool_text(result)


class TestSuiTools:
    """Tests for Sui tools."""

    @pytest.fixture
    def server(self, make_context):
        sui_balance = {"coinType": "0x2::sui::SUI", "coinObjectCount": 3, "totalBalance": "4200000000"}
        usdc_balance = {
            "coinType": "0xdba3::usdc::USDC", "coinObjectCount": 1, "totalBalance": "1000000"
        }
        handler = json_rpc_handler({
            "suix_getBalance": sui_balance,
            "suix_getAllBalances": [sui_balance, usdc_balance],
            "sui_getObject": lambda params: {"data": {
                "objectId": params[0], "version": "12", "digest": "abc", "type": "0x2::coin::Coin",
                "owner": {"AddressOwner": SUI_ADDRESS},
            }},
            "sui_getTransactionBlock": lambda params: {
                "digest": params[0],
                "checkpoint": "100",
                "timestampMs": "1700000000000",
                "effects": {
                    "status": {"status": "success"},
                    "gasUsed": {"computationCost": "1000", "storageCost": "2000", "storageRebate": "500"},
                },
            },
            "sui_getLatestCheckpointSequenceNumber": "123456",
            "sui_getCheckpoint": lambda params: {
                "sequenceNumber": params[0], "digest": "cp", "epoch": "500",
                "timestampMs": "1700000000000", "transactions": ["a", "b"],
            },
            "suix_getReferenceGasPrice": "750",
            "suix_getOwnedObjects": {
                "data": [
                    {"data": {"objectId": "0x5", "version": "3", "digest": "d1",
                              "type": "0x2::coin::Coin<0x2::sui::SUI>"}},
                    {"data": {"objectId": "0x9", "version": "8", "digest": "d2",
                              "type": "0xbeef::nft::Ticket"}},
                ],
                "hasNextPage": True,
                "nextCursor": "0x9",
            },
            "suix_getCoinMetadata": lambda params: {
                "decimals": 9, "name": "Sui", "symbol": "SUI", "description": "", "iconUrl": None,
            } if params[0] == "0x2::sui::SUI" else None,
            "suix_getTotalSupply": {"value": "10000000000000000000"},
            "suix_getLatestSuiSystemState": {
                "epoch": "500",
                "totalStake": "5001000000000",
                "activeValidators": [
                    {"name": "Small", "suiAddress": "0x" + "01" * 32, "stakingPoolSuiBalance": "1000000000",
                     "commissionRate": "200", "votingPower": "10"},
                    {"name": "Big", "suiAddress": "0x" + "02" * 32, "stakingPoolSuiBalance": "5000000000000",
                     "commissionRate": "500", "votingPower": "90"},
                ],
            },
        })
        return create_server(make_context(handler))

    @pytest.mark.asyncio
    async def test_get_balance(self, server):
        result = await call(server, "sui_get_balance", address=SUI_ADDRESS)

        data = result.structured_content
        assert data["balance"] == "4.2"
        assert data["coin_object_count"] == 3
        assert data["name"] == "SUI"

    @pytest.mark.asyncio
    async def test_get_all_balances(self, server):
        """Test non-SUI coins carry no display amount."""
        result = await call(server, "sui_get_all_balances", address=SUI_ADDRESS)

        data = result.structured_content
        assert data["token_count"] == 2
        assert data["balances"][1]["name"] == "USDC"
        assert data["balances"][1]["balance"] is None

    @pytest.mark.asyncio
    async def test_get_object(self, server):
        result = await call(server, "sui_get_object", object_id="0x5")

        assert result.structured_content["object_id"] == "0x5"
        assert result.structured_content["type"] == "0x2::coin::Coin"

    @pytest.mark.asyncio
    async def test_get_transaction(self, server):
        result = await call(server, "sui_get_transaction", digest=SOL_ADDRESS)

        data = result.structured_content
        assert data["status"] == "success"
        assert data["storage_rebate"] == "500"

    @pytest.mark.asyncio
    async def test_latest_checkpoint_and_gas(self, server):
        checkpoint = await call(server, "sui_get_latest_checkpoint")
        gas = await call(server, "sui_get_gas_price")

        assert checkpoint.structured_content["sequence_number"] == "123456"
        assert checkpoint.structured_content["transaction_count"] == 2
        assert gas.structured_content["reference_gas_price_mist"] == "750"

    @pytest.mark.asyncio
    async def test_invalid_address(self, server):
        result = await call(server, "sui_get_balance", address="alice")

        assert result.is_error
        assert "Invalid Sui address" in tool_text(result)

    @pytest.mark.asyncio
    async def test_get_owned_objects(self, server):
        result = await call(server, "sui_get_owned_objects", address=SUI_ADDRESS, limit=2)

        data = result.structured_content
        assert data["object_count"] == 2
        assert data["has_next_page"] is True
        assert data["next_cursor"] == "0x9"
        assert data["objects"][1]["type"] == "0xbeef::nft::Ticket"

    @pytest.mark.asyncio
    async def test_coin_metadata(self, server):
        result = await call(server, "sui_get_coin_metadata")

        data = result.structured_content
        assert data["symbol"] == "SUI"
        assert data["decimals"] == 9
        assert data["description"] is None

    @pytest.mark.asyncio
    async def test_coin_metadata_missing(self, server):
        """Test coin types without published metadata are reported as errors."""
        result = await call(server, "sui_get_coin_metadata", coin_type="0xdead::fake::FAKE")

        assert result.is_error
        assert "No metadata published" in tool_text(result)

    @pytest.mark.asyncio
    async def test_total_supply(self, server):
        result = await call(server, "sui_get_total_supply")

        assert result.structured_content["total_supply_raw"] == "10000000000000000000"
        assert result.structured_content["total_supply"] == "10000000000"

    @pytest.mark.asyncio
    async def test_validators_sorted_and_limited(self, server):
        result = await call(server, "sui_get_validators", limit=1)

        data = result.structured_content
        assert data["validator_count"] == 2
        assert [v["name"] for v in data["validators"]] == ["Big"]
        assert data["validators"][0]["staked_sui"] == "5000"
        assert data["validators"][0]["commission_rate_pct"] == 5.0


class TestAptosTools:
    """Tests for Aptos tools."""

    @pytest.fixture
    def server(self, make_context):
        tx_hash = "0x" + "ef" * 32
        handler = rest_handler({
            "/v1/accounts/0x1/balance/0x1::aptos_coin::AptosCoin": 123_450_000,
            "/v1/accounts/0x1": {"sequence_number": "0", "authentication_key": "0x" + "00" * 32},
            f"/v1/transactions/by_hash/{tx_hash}": {
                "hash": tx_hash, "type": "user_transaction", "version": "99", "success": True,
                "vm_status": "Executed successfully", "sender": "0x1", "gas_used": "12",
                "gas_unit_price": "100", "timestamp": "1700000000000000",
            },
            "/v1/accounts/0x1/resources": [
                {"type": "0x1::account::Account", "data": {"sequence_number": "0"}},
                {"type": "0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>",
                 "data": {"coin": {"value": "123450000"}}},
            ],
            "/v1/accounts/0x1/modules": [{"bytecode": "0x00", "abi": {
                "address": "0x1", "name": "coin",
                "exposed_functions": [{"name": "balance"}, {"name": "transfer"}],
                "structs": [{"name": "CoinInfo"}, {"name": "CoinStore"}],
            }}],
            "/v1/accounts/0x1/transactions": [{
                "hash": tx_hash, "type": "user_transaction", "version": "99", "success": True,
                "sender": "0x1", "gas_used": "12", "timestamp": "1700000000000000",
                "payload": {"type": "entry_function_payload", "function": "0x1::coin::transfer"},
            }],
            "/v1/accounts/0x1/events/0x1::account::Account/coin_register_events": [{
                "version": "10", "sequence_number": "0", "type": "0x1::account::CoinRegisterEvent",
                "data": {"type_info": {"module_name": "0x6170746f735f636f696e"}},
            }],
            # Echo the request body so callers can see what was posted
            "/v1/view": lambda request: [json.loads(request.content)],
            APT_COIN_INFO: {"type": "0x1::coin::CoinInfo<0x1::aptos_coin::AptosCoin>", "data": {
                "name": "Aptos Coin", "symbol": "APT", "decimals": 8,
                "supply": {"vec": [{"aggregator": {"vec": []}, "integer": {"vec": [
                    {"limit": "340282366920938463463374607431768211455", "value": "110000000000000000"},
                ]}}]},
            }},
            "/v1/": {
                "chain_id": 1, "epoch": "9000", "ledger_version": "1000000",
                "block_height": "500000", "ledger_timestamp": "1700000000000000", "node_role": "full_node",
            },
            "/v1/estimate_gas_price": {
                "gas_estimate": 100, "deprioritized_gas_estimate": 100, "prioritized_gas_estimate": 150,
            },
        })
        return create_server(make_context(handler))

    @pytest.mark.asyncio
    async def test_get_balance(self, server):
        result = await call(server, "aptos_get_balance", address="0x1")

        assert result.structured_content["balance_octas"] == "123450000"
        assert result.structured_content["balance"] == "1.2345"

    @pytest.mark.asyncio
    async def test_get_account(self, server):
        result = await call(server, "aptos_get_account", address="0x1")

        assert result.structured_content["sequence_number"] == "0"

    @pytest.mark.asyncio
    async def test_get_transaction(self, server):
        result = await call(server, "aptos_get_transaction", tx_hash="0x" + "ef" * 32)

        assert result.structured_content["success"] is True
        assert result.structured_content["version"] == "99"

    @pytest.mark.asyncio
    async def test_ledger_info_and_gas(self, server):
        ledger = await call(server, "aptos_get_ledger_info")
        gas = await call(server, "aptos_estimate_gas")

        assert ledger.structured_content["chain_id"] == 1
        assert gas.structured_content["prioritized_gas_estimate"] == 150

    @pytest.mark.asyncio
    async def test_http_error_is_tool_error(self, server):
        """Test 404s from the REST API surface as Error results."""
        result = await call(server, "aptos_get_account", address="0x2")

        assert result.is_error
        assert tool_text(result).startswith("Error fetching account: GET")
        assert "404" in tool_text(result)

    @pytest.mark.asyncio
    async def test_get_resources(self, server):
        result = await call(server, "aptos_get_resources", address="0x1", limit=10)

        data = result.structured_content
        assert data["resource_count"] == 2
        assert data["resources"][1]["data"] == {"coin": {"value": "123450000"}}

    @pytest.mark.asyncio
    async def test_get_modules(self, server):
        result = await call(server, "aptos_get_modules", address="0x1")

        module = result.structured_content["modules"][0]
        assert module["name"] == "coin"
        assert module["exposed_functions"] == ["balance", "transfer"]
        assert module["structs"] == ["CoinInfo", "CoinStore"]

    @pytest.mark.asyncio
    async def test_get_account_transactions(self, server):
        result = await call(server, "aptos_get_account_transactions", address="0x1", limit=5)

        data = result.structured_content
        assert data["transaction_count"] == 1
        assert data["transactions"][0]["function"] == "0x1::coin::transfer"

    @pytest.mark.asyncio
    async def test_get_events(self, server):
        result = await call(
            server,
            "aptos_get_events",
            address="0x1",
            event_handle="0x1::account::Account",
            field_name="coin_register_events",
        )

        data = result.structured_content
        assert data["event_count"] == 1
        assert data["events"][0]["type"] == "0x1::account::CoinRegisterEvent"

    @pytest.mark.asyncio
    async def test_get_events_rejects_bad_field(self, server):
        result = await call(
            server,
            "aptos_get_events",
            address="0x1",
            event_handle="0x1::account::Account",
            field_name="../resources",
        )

        assert result.is_error
        assert "Invalid field name" in tool_text(result)

    @pytest.mark.asyncio
    async def test_view_function_posts_call(self, server):
        """Test the function id and arguments are posted to /view."""
        result = await call(
            server,
            "aptos_view_function",
            function="0x1::coin::balance",
            type_arguments=["0x1::aptos_coin::AptosCoin"],
            arguments=["0x1"],
        )

        data = result.structured_content
        assert data["result"] == [{
            "function": "0x1::coin::balance",
            "type_arguments": ["0x1::aptos_coin::AptosCoin"],
            "arguments": ["0x1"],
        }]

    @pytest.mark.asyncio
    async def test_view_function_rejects_bad_id(self, server):
        result = await call(server, "aptos_view_function", function="coin::balance")

        assert result.is_error
        assert "Invalid view function" in tool_text(result)

    @pytest.mark.asyncio
    async def test_get_coin_info(self, server):
        result = await call(server, "aptos_get_coin_info")

        data = result.structured_content
        assert data["symbol"] == "APT"
        assert data["decimals"] == 8
        assert data["supply"] == "110000000000000000"


class TestNearTools:
    """Tests for NEAR tools."""

    @pytest.fixture
    def server(self, make_context):
        view = {
            "amount": "5000000000000000000000000",
            "locked": "0",
            "code_hash": "11111111111111111111111111111111",
            "storage_usage": 182,
            "block_height": 100,
        }
        def b64(text):
            return base64.b64encode(text.encode()).decode()

        def query(params):
            kind = params["request_type"]
            if kind == "view_access_key_list":
                return {"block_height": 100, "keys": [
                    {"public_key": "ed25519:Full", "access_key": {"nonce": 5, "permission": "FullAccess"}},
                    {"public_key": "ed25519:Call", "access_key": {"nonce": 1, "permission": {
                        "FunctionCall": {"allowance": "250000000000000000000000",
                                         "receiver_id": "app.near", "method_names": ["vote"]},
                    }}},
                ]}
            if kind == "call_function":
                # "echo" hands back its JSON args, anything else returns plain text
                raw = base64.b64decode(params["args_base64"])
                if params["method_name"] != "echo":
                    raw = b"not json"
                return {"result": list(raw), "logs": ["called"], "block_height": 100}
            if kind == "view_state":
                assert params["prefix_base64"] == b64("STATE")
                return {"block_height": 100, "values": [
                    {"key": b64("STATE"), "value": b64("hello")},
                    {"key": b64("STATEcount"), "value": b64("7")},
                ]}
            return view

        handler = json_rpc_handler({
            "query": query,
            "tx": lambda params: {
                "status": {"SuccessValue": ""},
                "transaction": {"signer_id": params[1], "receiver_id": "app.near",
                                "actions": [{"FunctionCall": {"method_name": "vote"}}]},
                "transaction_outcome": {"outcome": {
                    "gas_burnt": 2_428_000_000_000, "tokens_burnt": "242800000000000000000", "logs": [],
                }},
                "receipts_outcome": [{}, {}],
            },
            "validators": {"epoch_start_height": 90, "current_validators": [
                {"account_id": "small.poolv1.near", "stake": "1000000000000000000000000000",
                 "num_produced_blocks": 9, "num_expected_blocks": 10},
                {"account_id": "big.poolv1.near", "stake": "3000000000000000000000000000",
                 "num_produced_blocks": 0, "num_expected_blocks": 0},
            ]},
            "block": {
                "author": "validator.near",
                "header": {"height": 100, "hash": "blockhash", "prev_hash": "prev",
                           "timestamp": 1700000000000000000, "gas_price": "100000000"},
                "chunks": [{}, {}, {}, {}],
            },
            "gas_price": {"gas_price": "100000000"},
            "status": {
                "chain_id": "mainnet", "protocol_version": 70,
                "sync_info": {"latest_block_height": 100, "latest_block_hash": "blockhash", "syncing": False},
                "validators": [{"account_id": "a"}, {"account_id": "b"}],
            },
        })
        return create_server(make_context(handler))

    @pytest.mark.asyncio
    async def test_get_balance(self, server):
        result = await call(server, "near_get_balance", account_id="alice.near")

        assert result.structured_content["balance"] == "5"

    @pytest.mark.asyncio
    async def test_get_account(self, server):
        result = await call(server, "near_get_account", account_id="alice.near")

        assert result.structured_content["has_contract"] is False
        assert result.structured_content["storage_usage"] == 182

    @pytest.mark.asyncio
    async def test_get_block(self, server):
        result = await call(server, "near_get_block")

        assert result.structured_content["height"] == 100
        assert result.structured_content["chunk_count"] == 4

    @pytest.mark.asyncio
    async def test_gas_and_network_info(self, server):
        gas = await call(server, "near_get_gas_price")
        info = await call(server, "near_get_network_info")

        assert gas.structured_content["gas_price_yocto"] == "100000000"
        assert info.structured_content["chain_id"] == "mainnet"
        assert info.structured_content["validator_count"] == 2

    @pytest.mark.asyncio
    async def test_invalid_account(self, server):
        result = await call(server, "near_get_balance", account_id="Alice!")

        assert result.is_error

    @pytest.mark.asyncio
    async def test_access_keys(self, server):
        result = await call(server, "near_get_access_keys", account_id="alice.near")

        data = result.structured_content
        assert data["key_count"] == 2
        assert data["keys"][0]["permission"] == "FullAccess"
        assert data["keys"][1]["permission"] == "FunctionCall"
        assert data["keys"][1]["receiver_id"] == "app.near"
        assert data["keys"][1]["method_names"] == ["vote"]

    @pytest.mark.asyncio
    async def test_get_transaction(self, server):
        result = await call(
            server, "near_get_transaction", tx_hash=NEAR_TX_HASH, sender_account_id="alice.near"
        )

        data = result.structured_content
        assert data["status"] == "SuccessValue"
        assert data["succeeded"] is True
        assert data["receiver"] == "app.near"
        assert data["gas_burnt"] == 2_428_000_000_000
        assert data["receipt_count"] == 2

    @pytest.mark.asyncio
    async def test_view_function_decodes_json(self, server):
        result = await call(
            server,
            "near_view_function",
            contract_id="app.near",
            method_name="echo",
            args={"account_id": "alice.near"},
        )

        data = result.structured_content
        assert data["result"] == {"account_id": "alice.near"}
        assert data["logs"] == ["called"]

    @pytest.mark.asyncio
    async def test_view_function_plain_text(self, server):
        """Test non-JSON return values come back as text."""
        result = await call(server, "near_view_function", contract_id="app.near", method_name="name")

        assert result.structured_content["result"] == "not json"

    @pytest.mark.asyncio
    async def test_contract_state(self, server):
        result = await call(
            server, "near_get_contract_state", contract_id="app.near", prefix="STATE", limit=1
        )

        data = result.structured_content
        assert data["total_entries"] == 2
        assert data["entries"] == [{"key": "STATE", "value": "hello"}]

    @pytest.mark.asyncio
    async def test_validators(self, server):
        result = await call(server, "near_get_validators")

        data = result.structured_content
        assert data["validator_count"] == 2
        assert data["total_stake"] == "4000"
        assert [v["account_id"] for v in data["validators"]] == ["big.poolv1.near", "small.poolv1.near"]
        assert data["validators"][0]["uptime_pct"] is None
        assert data["validators"][1]["uptime_pct"] == 90.0


class TestCosmosTools:
    """Tests for Cosmos SDK tools."""

    @pytest.fixture
    def requests(self):
        return []

    @pytest.fixture
    def server(self, make_context, requests):
        routes = {
            f"/cosmos/bank/v1beta1/balances/{COSMOS_ADDRESS}": {"balances": [
                {"denom": "ibc/27394FB0", "amount": "10"},
                {"denom": "uatom", "amount": "2500000"},
            ]},
            f"/cosmos/auth/v1beta1/accounts/{COSMOS_ADDRESS}": {"account": {
                "@type": "/cosmos.auth.v1beta1.BaseAccount",
                "address": COSMOS_ADDRESS, "account_number": "42", "sequence": "7",
            }},
            f"/cosmos/staking/v1beta1/delegations/{COSMOS_ADDRESS}": {"delegation_responses": [
                {"delegation": {"validator_address": "cosmosvaloper1a", "shares": "1000000.000"},
                 "balance": {"denom": "uatom", "amount": "1000000"}},
                {"delegation": {"validator_address": "cosmosvaloper1b", "shares": "500000.000"},
                 "balance": {"denom": "uatom", "amount": "500000"}},
            ]},
            "/cosmos/staking/v1beta1/validators": {"validators": [
                {"operator_address": "cosmosvaloper1small", "description": {"moniker": "Small"},
                 "tokens": "100", "jailed": False,
                 "commission": {"commission_rates": {"rate": "0.05"}}},
                {"operator_address": "cosmosvaloper1big", "description": {"moniker": "Big"},
                 "tokens": "9000", "jailed": False,
                 "commission": {"commission_rates": {"rate": "0.10"}}},
            ]},
            f"/cosmos/distribution/v1beta1/delegators/{COSMOS_ADDRESS}/rewards": {
                "rewards": [
                    {"validator_address": "cosmosvaloper1a", "reward": [
                        {"denom": "ibc/27394FB0", "amount": "5.000000000000000000"},
                        {"denom": "uatom", "amount": "1200000.750000000000000000"},
                    ]},
                    {"validator_address": "cosmosvaloper1b", "reward": []},
                ],
                "total": [{"denom": "uatom", "amount": "1200000.750000000000000000"}],
            },
            "/ibc/core/channel/v1/channels": {"channels": [
                {"state": "STATE_OPEN", "ordering": "ORDER_UNORDERED", "version": "ics20-1",
                 "port_id": "transfer", "channel_id": "channel-141",
                 "counterparty": {"port_id": "transfer", "channel_id": "channel-0"},
                 "connection_hops": ["connection-257"]},
            ]},
            "/cosmos/gov/v1/proposals": {"proposals": [
                {"id": "950", "title": "Software upgrade", "status": "PROPOSAL_STATUS_VOTING_PERIOD",
                 "submit_time": "2024-05-01T00:00:00Z", "voting_end_time": "2024-05-15T00:00:00Z",
                 "total_deposit": [{"denom": "uatom", "amount": "250000000"}]},
            ]},
            f"/cosmos/tx/v1beta1/txs/{COSMOS_TX_HASH}": {
                "tx": {"body": {"messages": [{"@type": "/cosmos.bank.v1beta1.MsgSend"}], "memo": "hi"}},
                "tx_response": {"txhash": COSMOS_TX_HASH, "height": "20000000", "code": 0,
                                "gas_used": "80000", "gas_wanted": "100000",
                                "timestamp": "2024-01-01T00:00:00Z", "raw_log": ""},
            },
        }
        inner = rest_handler(routes)

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return inner(request)

        return create_server(make_context(handler))

    def test_chain_selection_falls_back_to_hub(self):
        assert get_cosmos_chain("osmosis").denom == "uosmo"
        assert get_cosmos_chain("OSMOSIS").key == "osmosis"
        assert get_cosmos_chain(None).key == "cosmoshub"
        assert get_cosmos_chain("unknown").key == "cosmoshub"

    @pytest.mark.asyncio
    async def test_supported_chains(self, server):
        result = await call(server, "cosmos_get_supported_chains")

        keys = [c["key"] for c in result.structured_content["result"]]
        assert keys[0] == "cosmoshub"
        assert "injective" in keys

    @pytest.mark.asyncio
    async def test_get_balance(self, server, requests):
        result = await call(server, "cosmos_get_balance", address=COSMOS_ADDRESS)

        data = result.structured_content
        assert data["native"]["display_amount"] == "2.5"
        assert len(data["balances"]) == 2
        assert requests[0].url.host == "cosmos-rest.publicnode.com"

    @pytest.mark.asyncio
    async def test_get_account(self, server):
        result = await call(server, "cosmos_get_account", address=COSMOS_ADDRESS, chain="cosmoshub")

        assert result.structured_content["account_number"] == "42"
        assert result.structured_content["sequence"] == "7"

    @pytest.mark.asyncio
    async def test_get_delegations(self, server):
        result = await call(server, "cosmos_get_delegations", address=COSMOS_ADDRESS)

        data = result.structured_content
        assert data["total"] == "1.5"
        assert len(data["delegations"]) == 2

    @pytest.mark.asyncio
    async def test_validators_sorted_by_stake(self, server, requests):
        result = await call(server, "cosmos_get_validators", limit=10)

        data = result.structured_content
        assert [v["moniker"] for v in data["validators"]] == ["Big", "Small"]
        assert requests[0].url.params["status"] == "BOND_STATUS_BONDED"
        assert requests[0].url.params["pagination.limit"] == "10"

    @pytest.mark.asyncio
    async def test_address_prefix_must_match_chain(self, server, requests):
        """Test a Cosmos Hub address is rejected for Osmosis."""
        result = await call(server, "cosmos_get_balance", address=COSMOS_ADDRESS, chain="osmosis")

        assert result.is_error
        assert "Invalid Osmosis address" in tool_text(result)
        assert requests == []

    @pytest.mark.asyncio
    async def test_get_rewards(self, server):
        """Test DecCoin rewards are truncated to whole base units of the native denom."""
        result = await call(server, "cosmos_get_rewards", address=COSMOS_ADDRESS)

        data = result.structured_content
        assert data["symbol"] == "ATOM"
        assert data["total"] == "1.2"
        assert data["rewards"][0]["amount"] == "1200000"
        assert data["rewards"][1]["display_amount"] == "0"

    @pytest.mark.asyncio
    async def test_ibc_channels(self, server, requests):
        result = await call(server, "cosmos_get_ibc_channels", limit=5)

        channel = result.structured_content["channels"][0]
        assert channel["channel_id"] == "channel-141"
        assert channel["counterparty_channel_id"] == "channel-0"
        assert channel["connection_hops"] == ["connection-257"]
        assert requests[0].url.params["pagination.limit"] == "5"

    @pytest.mark.asyncio
    async def test_proposals_status_filter(self, server, requests):
        result = await call(server, "cosmos_get_proposals", status="PROPOSAL_STATUS_VOTING_PERIOD")

        proposal = result.structured_content["proposals"][0]
        assert proposal["id"] == "950"
        assert proposal["title"] == "Software upgrade"
        assert proposal["total_deposit"][0]["display_amount"] == "250"
        assert requests[0].url.params["proposal_status"] == "PROPOSAL_STATUS_VOTING_PERIOD"
        assert requests[0].url.params["pagination.reverse"] == "true"

    @pytest.mark.asyncio
    async def test_proposals_unknown_status_rejected(self, server, requests):
        result = await call(server, "cosmos_get_proposals", status="PASSED")

        assert result.is_error
        assert requests == []

    @pytest.mark.asyncio
    async def test_get_transaction(self, server, requests):
        """Test lower-case hashes are upper-cased before the lookup."""
        result = await call(server, "cosmos_get_transaction", tx_hash=COSMOS_TX_HASH.lower())

        data = result.structured_content
        assert data["succeeded"] is True
        assert data["height"] == "20000000"
        assert data["memo"] == "hi"
        assert data["message_types"] == ["/cosmos.bank.v1beta1.MsgSend"]
        assert requests[0].url.path.endswith(COSMOS_TX_HASH)


class TestAlgorandTools:
    """Tests for Algorand tools."""

    @pytest.fixture
    def server(self, make_context):
        handler = rest_handler({
            f"/v2/accounts/{ALGO_ADDRESS}": {
                "address": ALGO_ADDRESS, "amount": 12_500_000, "min-balance": 200_000,
                "status": "Offline", "round": 40_000_000,
                "assets": [{"asset-id": 31566704, "amount": 5_000_000, "is-frozen": False}],
                "created-apps": [], "created-assets": [],
            },
            "/v2/status": {"last-round": 40_000_000, "last-version": "v1", "time-since-last-round": 1_000},
            "/v2/assets/31566704": {"current-round": 1, "asset": {"index": 31566704, "params": {
                "name": "USDC", "unit-name": "USDC", "decimals": 6, "total": 18446744073709551615,
                "creator": ALGO_ADDRESS, "url": "https://www.centre.io/usdc",
            }}},
        })
        return create_server(make_context(handler))

    @pytest.mark.asyncio
    async def test_get_account(self, server):
        result = await call(server, "algorand_get_account", address=ALGO_ADDRESS)

        data = result.structured_content
        assert data["balance"] == "12.5"
        assert data["assets"][0]["asset_id"] == 31566704

    @pytest.mark.asyncio
    async def test_node_status(self, server):
        result = await call(server, "algorand_get_node_status")

        assert result.structured_content["last_round"] == 40_000_000

    @pytest.mark.asyncio
    async def test_get_asset(self, server):
        result = await call(server, "algorand_get_asset", asset_id=31566704)

        assert result.structured_content["unit_name"] == "USDC"
        assert result.structured_content["decimals"] == 6

    @pytest.mark.asyncio
    async def test_invalid_address(self, server):
        result = await call(server, "algorand_get_account", address="short")

        assert result.is_error
