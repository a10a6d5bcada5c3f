"""
Tests for the bundler/paymaster gateway client.
"""

import json

import httpx
import pytest

from gasless.core.entrypoint import ENTRY_POINT_V07
from gasless.core.errors import (
    OperationRejected,
    ReceiptInvalid,
    SponsorshipDenied,
    SponsorUnavailable,
    UnsupportedNetwork,
)
from gasless.core.execution.userop import UserOperation
from gasless.core.networks import BASE_SEPOLIA, ETHEREUM_SEPOLIA
from gasless.providers.base import JsonRpcError
from gasless.providers.sponsor import SponsorGatewayClient, classify_rpc_error

USER_OP_HASH = "0x" + "ab" * 32


def _user_op() -> UserOperation:
    return UserOperation(
        sender="0x1111111111111111111111111111111111111111",
        nonce=0,
        call_data="0x",
        max_fee_per_gas=10,
        max_priority_fee_per_gas=1,
    )


def _gateway(handler, **kwargs) -> SponsorGatewayClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("api_key", "test-key")
    kwargs.setdefault("policy_id", "sp_test_policy")
    return SponsorGatewayClient(ETHEREUM_SEPOLIA, client=client, **kwargs)


def _rpc_handler(results, requests=None):
    """Answer JSON-RPC calls from a method -> result (or list of results) map."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if requests is not None:
            requests.append((request, body))
        result = results[body["method"]]
        if isinstance(result, list):
            result = result.pop(0)
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return handler


def test_url_uses_network_and_api_key():
    gateway = _gateway(lambda request: httpx.Response(200))
    assert gateway.rpc_url == "https://api.pimlico.io/v2/11155111/rpc?apikey=test-key"
    assert gateway.policy_id == "sp_test_policy"


def test_unknown_fee_tier_rejected():
    with pytest.raises(ValueError):
        _gateway(lambda request: httpx.Response(200), fee_tier="ludicrous")


@pytest.mark.asyncio
async def test_estimate_fees_uses_configured_tier():
    gateway = _gateway(
        _rpc_handler(
            {
                "pimlico_getUserOperationGasPrice": {
                    "slow": {"maxFeePerGas": "0x1", "maxPriorityFeePerGas": "0x1"},
                    "standard": {"maxFeePerGas": "0x2", "maxPriorityFeePerGas": "0x1"},
                    "fast": {"maxFeePerGas": "0x3", "maxPriorityFeePerGas": "0x2"},
                }
            }
        )
    )

    fees = await gateway.estimate_fees(ETHEREUM_SEPOLIA)

    assert fees.max_fee_per_gas == 3
    assert fees.max_priority_fee_per_gas == 2


@pytest.mark.asyncio
async def test_estimate_fees_for_other_network_rejected():
    gateway = _gateway(_rpc_handler({}))
    with pytest.raises(UnsupportedNetwork):
        await gateway.estimate_fees(BASE_SEPOLIA)


@pytest.mark.asyncio
async def test_sponsor_attaches_policy_and_fills_paymaster():
    requests = []
    gateway = _gateway(
        _rpc_handler(
            {
                "pm_sponsorUserOperation": {
                    "paymaster": "0x4444444444444444444444444444444444444444",
                    "paymasterData": "0xdead",
                    "paymasterVerificationGasLimit": "0x100",
                    "paymasterPostOpGasLimit": "0x1",
                    "callGasLimit": "0x200",
                    "verificationGasLimit": "0x300",
                    "preVerificationGas": "0x400",
                }
            },
            requests,
        )
    )

    sponsored = await gateway.sponsor(_user_op())

    _, body = requests[0]
    assert body["params"][1] == ENTRY_POINT_V07.address
    assert body["params"][2] == {"sponsorshipPolicyId": "sp_test_policy"}
    assert sponsored.paymaster == "0x4444444444444444444444444444444444444444"
    assert sponsored.paymaster_data == "0xdead"
    assert sponsored.pre_verification_gas == 0x400


@pytest.mark.asyncio
async def test_sponsor_without_api_key_is_unavailable():
    gateway = _gateway(_rpc_handler({}), api_key="")
    assert await gateway.ready() is False
    with pytest.raises(SponsorUnavailable):
        await gateway.sponsor(_user_op())


@pytest.mark.asyncio
async def test_submit_returns_hash():
    requests = []
    gateway = _gateway(_rpc_handler({"eth_sendUserOperation": USER_OP_HASH}, requests))

    assert await gateway.submit(_user_op()) == USER_OP_HASH
    _, body = requests[0]
    assert body["params"][0]["sender"] == "0x1111111111111111111111111111111111111111"


@pytest.mark.asyncio
async def test_submit_rejects_malformed_hash():
    gateway = _gateway(_rpc_handler({"eth_sendUserOperation": "0x1234"}))
    with pytest.raises(SponsorUnavailable):
        await gateway.submit(_user_op())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, expected",
    [
        ({"code": -32501, "message": "paymaster validation failed"}, SponsorshipDenied),
        ({"code": -32000, "message": "UserOperation not sponsored by policy sp_x"}, SponsorshipDenied),
        ({"code": -32504, "message": "paymaster throttled"}, SponsorUnavailable),
        ({"code": -32500, "message": "AA23 reverted"}, OperationRejected),
        ({"code": -32603, "message": "internal error"}, SponsorUnavailable),
    ],
)
async def test_rpc_errors_are_classified(error, expected):
    gateway = _gateway(_rpc_handler({"eth_sendUserOperation": {"error": error}}))

    with pytest.raises(expected) as exc_info:
        await gateway.submit(_user_op())

    assert exc_info.value.rpc_code == error["code"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, expected",
    [(503, SponsorUnavailable), (429, SponsorUnavailable), (403, SponsorshipDenied), (400, OperationRejected)],
)
async def test_http_errors_are_classified(status, expected):
    gateway = _gateway(lambda request: httpx.Response(status, json={}))

    with pytest.raises(expected):
        await gateway.submit(_user_op())


@pytest.mark.asyncio
async def test_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway = _gateway(handler)
    with pytest.raises(SponsorUnavailable) as exc_info:
        await gateway.submit(_user_op())
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_non_json_response_is_unavailable():
    gateway = _gateway(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(SponsorUnavailable):
        await gateway.submit(_user_op())


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"[]", b"null", b"\"ok\"", b"42"])
async def test_non_object_json_response_is_unavailable(body):
    gateway = _gateway(lambda request: httpx.Response(200, content=body))

    with pytest.raises(SponsorUnavailable) as exc_info:
        await gateway.submit(_user_op())
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_wait_for_receipt_polls_until_included():
    receipt_payload = {
        "userOpHash": USER_OP_HASH,
        "success": True,
        "actualGasUsed": "0x100",
        "receipt": {"transactionHash": "0x" + "cd" * 32, "blockNumber": "0x10", "status": "0x1"},
    }
    gateway = _gateway(
        _rpc_handler({"eth_getUserOperationReceipt": [None, None, receipt_payload]}),
        poll_interval_s=0.001,
    )

    receipt = await gateway.wait_for_receipt(USER_OP_HASH)

    assert receipt.success is True
    assert receipt.block_number == 16
    assert receipt.gas_used == 256


@pytest.mark.asyncio
async def test_wait_for_receipt_times_out():
    gateway = _gateway(
        lambda request: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None}),
        poll_interval_s=0.001,
        receipt_timeout_s=0.01,
    )

    with pytest.raises(SponsorUnavailable):
        await gateway.wait_for_receipt(USER_OP_HASH)


@pytest.mark.asyncio
async def test_malformed_receipt_is_invalid():
    gateway = _gateway(_rpc_handler({"eth_getUserOperationReceipt": {"success": True}}))

    with pytest.raises(ReceiptInvalid):
        await gateway.wait_for_receipt(USER_OP_HASH)


@pytest.mark.asyncio
async def test_health_check_reports_chain_id():
    gateway = _gateway(_rpc_handler({"eth_chainId": "0xaa36a7"}))
    assert await gateway.health_check() == {"status": "healthy", "chainId": "0xaa36a7"}


def test_classify_rpc_error_without_code():
    assert isinstance(classify_rpc_error(JsonRpcError(None, "gateway hiccup")), SponsorUnavailable)
