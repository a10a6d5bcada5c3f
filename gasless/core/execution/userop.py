"""
ERC-4337 v0.7 UserOperation models and helpers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from eth_abi import encode
from eth_utils import decode_hex, keccak, to_checksum_address

from ..entrypoint import ENTRY_POINT_V07, EntryPointVersion


def _to_hex(value: int) -> str:
    return hex(value)


def _parse_hex(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


def _pack_uint128_pair(high: int, low: int) -> bytes:
    return high.to_bytes(16, "big") + low.to_bytes(16, "big")


@dataclass
class UserOperation:
    """
    ERC-4337 v0.7 UserOperation payload in its unpacked RPC form.

    Values should be supplied in raw units (wei / gas units) and are encoded
    as hex for RPC calls.
    """
    sender: str
    nonce: int
    call_data: str
    factory: Optional[str] = None
    factory_data: Optional[str] = None
    call_gas_limit: int = 0
    verification_gas_limit: int = 0
    pre_verification_gas: int = 0
    max_fee_per_gas: int = 0
    max_priority_fee_per_gas: int = 0
    paymaster: Optional[str] = None
    paymaster_verification_gas_limit: int = 0
    paymaster_post_op_gas_limit: int = 0
    paymaster_data: str = "0x"
    signature: str = "0x"

    @property
    def init_code(self) -> bytes:
        if not self.factory:
            return b""
        return decode_hex(self.factory) + decode_hex(self.factory_data or "0x")

    @property
    def paymaster_and_data(self) -> bytes:
        if not self.paymaster:
            return b""
        return (
            decode_hex(self.paymaster)
            + self.paymaster_verification_gas_limit.to_bytes(16, "big")
            + self.paymaster_post_op_gas_limit.to_bytes(16, "big")
            + decode_hex(self.paymaster_data or "0x")
        )

    def to_rpc_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sender": self.sender,
            "nonce": _to_hex(self.nonce),
            "callData": self.call_data,
            "callGasLimit": _to_hex(self.call_gas_limit),
            "verificationGasLimit": _to_hex(self.verification_gas_limit),
            "preVerificationGas": _to_hex(self.pre_verification_gas),
            "maxFeePerGas": _to_hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": _to_hex(self.max_priority_fee_per_gas),
            "signature": self.signature,
        }
        if self.factory:
            payload["factory"] = self.factory
            payload["factoryData"] = self.factory_data or "0x"
        if self.paymaster:
            payload["paymaster"] = self.paymaster
            payload["paymasterVerificationGasLimit"] = _to_hex(self.paymaster_verification_gas_limit)
            payload["paymasterPostOpGasLimit"] = _to_hex(self.paymaster_post_op_gas_limit)
            payload["paymasterData"] = self.paymaster_data
        return payload

    def with_sponsorship(self, data: Dict[str, Any]) -> "UserOperation":
        """Return a copy carrying the paymaster fields and gas limits from a sponsor response."""
        return replace(
            self,
            paymaster=data.get("paymaster") or self.paymaster,
            paymaster_data=data.get("paymasterData") or self.paymaster_data,
            paymaster_verification_gas_limit=_parse_hex(data.get("paymasterVerificationGasLimit"))
            or self.paymaster_verification_gas_limit,
            paymaster_post_op_gas_limit=_parse_hex(data.get("paymasterPostOpGasLimit"))
            or self.paymaster_post_op_gas_limit,
            call_gas_limit=_parse_hex(data.get("callGasLimit")) or self.call_gas_limit,
            verification_gas_limit=_parse_hex(data.get("verificationGasLimit"))
            or self.verification_gas_limit,
            pre_verification_gas=_parse_hex(data.get("preVerificationGas"))
            or self.pre_verification_gas,
        )

    def hash(self, chain_id: int, entry_point: EntryPointVersion = ENTRY_POINT_V07) -> bytes:
        """Compute the v0.7 user operation hash the account signs."""
        packed = encode(
            ["address", "uint256", "bytes32", "bytes32", "bytes32", "uint256", "bytes32", "bytes32"],
            [
                to_checksum_address(self.sender),
                self.nonce,
                keccak(self.init_code),
                keccak(decode_hex(self.call_data)),
                _pack_uint128_pair(self.verification_gas_limit, self.call_gas_limit),
                self.pre_verification_gas,
                _pack_uint128_pair(self.max_priority_fee_per_gas, self.max_fee_per_gas),
                keccak(self.paymaster_and_data),
            ],
        )
        return keccak(
            encode(
                ["bytes32", "address", "uint256"],
                [keccak(packed), to_checksum_address(entry_point.address), chain_id],
            )
        )


@dataclass(frozen=True)
class FeeEstimate:
    max_fee_per_gas: int
    max_priority_fee_per_gas: int

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "FeeEstimate":
        return cls(
            max_fee_per_gas=int(data["maxFeePerGas"], 16),
            max_priority_fee_per_gas=int(data["maxPriorityFeePerGas"], 16),
        )


@dataclass(frozen=True)
class UserOpReceipt:
    user_op_hash: str
    success: bool
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    actual_gas_cost: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def from_rpc(cls, user_op_hash: str, data: Dict[str, Any]) -> "UserOpReceipt":
        """
        Parse an ``eth_getUserOperationReceipt`` result.

        Raises:
            ValueError: If the payload is missing the fields a receipt needs.
        """
        if not isinstance(data, dict):
            raise ValueError("Receipt payload must be an object")

        receipt = data.get("receipt")
        if not isinstance(receipt, dict) or not receipt.get("transactionHash"):
            raise ValueError("Receipt payload is missing the transaction receipt")

        success = data.get("success")
        if not isinstance(success, bool):
            status = receipt.get("status")
            if status is None:
                raise ValueError("Receipt payload has no success flag")
            success = status == "0x1"

        try:
            return cls(
                user_op_hash=data.get("userOpHash") or user_op_hash,
                success=success,
                transaction_hash=receipt["transactionHash"],
                block_number=_parse_hex(receipt.get("blockNumber")),
                gas_used=_parse_hex(data.get("actualGasUsed") or receipt.get("gasUsed")),
                actual_gas_cost=_parse_hex(data.get("actualGasCost")),
                reason=data.get("reason") or None,
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Receipt payload has malformed numeric fields: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userOpHash": self.user_op_hash,
            "success": self.success,
            "transactionHash": self.transaction_hash,
            "blockNumber": self.block_number,
            "gasUsed": self.gas_used,
            "actualGasCost": self.actual_gas_cost,
        }
