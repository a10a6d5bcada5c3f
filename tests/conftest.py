"""
Shared fakes for the wallet collaborator and the sponsor gateway.
"""

import asyncio
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_utils import keccak

from gasless.core.entrypoint import ENTRY_POINT_V07
from gasless.core.execution.userop import FeeEstimate, UserOpReceipt
from gasless.core.wallet.handle import ChainReadClient, SigningClient, WalletHandle


OWNER_A = "0x1111111111111111111111111111111111111111"
OWNER_B = "0x2222222222222222222222222222222222222222"
RECIPIENT = "0xcC90c7c3E3Ad6e4E6bd8CF4fB10D09edC20a9506"
USER_OP_HASH = "0x" + "ab" * 32
TX_HASH = "0x" + "cd" * 32

GET_ADDRESS_SELECTOR = "0x" + keccak(text="getAddress(bytes,bytes32)")[:4].hex()
GET_NONCE_SELECTOR = "0x" + keccak(text="getNonce(address,uint192)")[:4].hex()

SPONSOR_RESULT = {
    "paymaster": "0x777777777777777777777777777777777777777a",
    "paymasterData": "0x1234",
    "paymasterVerificationGasLimit": "0x8000",
    "paymasterPostOpGasLimit": "0x1",
    "callGasLimit": "0x9000",
    "verificationGasLimit": "0x40000",
    "preVerificationGas": "0xc000",
}


class FakeSigner(SigningClient):
    def __init__(self, address: str = OWNER_A, fail: bool = False) -> None:
        self._address = address
        self.fail = fail
        self.messages: List[bytes] = []

    @property
    def address(self) -> str:
        return self._address

    async def sign_message(self, message: bytes) -> str:
        if self.fail:
            raise RuntimeError("user rejected signature")
        self.messages.append(message)
        return "0x" + "11" * 65


class FakeChainReader(ChainReadClient):
    """Answers the Kernel factory and EntryPoint calls the core makes."""

    def __init__(self, nonce: int = 0, code: str = "0x", fail: bool = False) -> None:
        self.nonce = nonce
        self.code = code
        self.fail = fail
        self.calls: List[tuple] = []

    async def call(self, to: str, data: str) -> str:
        self.calls.append((to, data))
        if self.fail:
            raise ConnectionError("rpc down")
        if data.startswith(GET_ADDRESS_SELECTOR):
            # Deterministic stand-in for the factory's CREATE2 prediction
            return "0x" + "00" * 12 + keccak(hexstr=data)[-20:].hex()
        if data.startswith(GET_NONCE_SELECTOR):
            return "0x" + hex(self.nonce)[2:].rjust(64, "0")
        raise AssertionError(f"Unexpected eth_call to {to}: {data[:10]}")

    async def get_code(self, address: str) -> str:
        if self.fail:
            raise ConnectionError("rpc down")
        return self.code


class FakeWallet(WalletHandle):
    def __init__(
        self,
        signer: Optional[FakeSigner] = None,
        reader: Optional[FakeChainReader] = None,
        capable: bool = True,
        reported_network_id: Optional[int] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.signer = signer or FakeSigner()
        self.reader = reader or FakeChainReader()
        self.capable = capable
        self.reported_network_id = reported_network_id
        self.gate = gate

    def is_capable(self) -> bool:
        return self.capable

    async def get_chain_read_client(self, network) -> ChainReadClient:
        return self.reader

    async def get_signing_client(self, network) -> SigningClient:
        if self.gate is not None:
            await self.gate.wait()
        return self.signer


def make_gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.entry_point = ENTRY_POINT_V07
    gateway.policy_id = "sp_test_policy"
    gateway.estimate_fees = AsyncMock(
        return_value=FeeEstimate(max_fee_per_gas=3_000_000_000, max_priority_fee_per_gas=1_000_000_000)
    )
    gateway.sponsor = AsyncMock(side_effect=lambda op: op.with_sponsorship(SPONSOR_RESULT))
    gateway.submit = AsyncMock(return_value=USER_OP_HASH)
    gateway.wait_for_receipt = AsyncMock(
        return_value=UserOpReceipt(
            user_op_hash=USER_OP_HASH,
            success=True,
            transaction_hash=TX_HASH,
            block_number=42,
            gas_used=120_000,
        )
    )
    return gateway


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def gateway() -> MagicMock:
    return make_gateway()
