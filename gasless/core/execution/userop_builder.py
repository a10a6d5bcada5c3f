"""
Calldata builders for Kernel v3 accounts and the v0.7 EntryPoint.
"""

from __future__ import annotations

from typing import Optional

from eth_abi import encode
from eth_utils import decode_hex, keccak, to_checksum_address

from ..entrypoint import KERNEL_V3_1, KernelVersion

KERNEL_EXECUTE_SIGNATURE = "execute(bytes32,bytes)"
KERNEL_INITIALIZE_SIGNATURE = "initialize(bytes21,address,bytes,bytes,bytes[])"

# Single call, default exec type, no selector/context
SINGLE_CALL_MODE = 0

# Kernel v3 validation type prefix for a plain validator module
VALIDATION_TYPE_VALIDATOR = b"\x01"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def _encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError("Value must be non-negative")
    if value >= 2**256:
        raise ValueError("Value does not fit in uint256")
    return hex(value)[2:].rjust(64, "0")


def _encode_address(address: str) -> str:
    addr = _strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    return addr.rjust(64, "0")


def _encode_bytes(data: str) -> str:
    hex_data = _strip_0x(data)
    if len(hex_data) % 2 != 0:
        raise ValueError("Byte data must have an even-length hex string")
    data_len = len(hex_data) // 2
    padded_len = ((data_len + 31) // 32) * 32
    padding = "0" * ((padded_len - data_len) * 2)
    return _encode_uint(data_len) + hex_data + padding


def _selector_from_signature(signature: str) -> str:
    selector = keccak(text=signature)[:4].hex()
    return f"0x{selector}"


def decode_uint_word(result: str) -> int:
    """Decode the first 32-byte word of an eth_call result."""
    hex_data = _strip_0x(result)
    if len(hex_data) < 64:
        raise ValueError(f"Call result too short for uint256: {result!r}")
    return int(hex_data[:64], 16)


def decode_address_word(result: str) -> str:
    """Decode the first 32-byte word of an eth_call result as an address."""
    hex_data = _strip_0x(result)
    if len(hex_data) < 64:
        raise ValueError(f"Call result too short for address: {result!r}")
    word = hex_data[:64]
    if int(word[:24], 16) != 0:
        raise ValueError(f"Call result is not an address: {result!r}")
    return to_checksum_address("0x" + word[24:])


def build_execute_call_data(
    to_address: str,
    value_wei: int,
    data: str,
    *,
    signature: Optional[str] = None,
) -> str:
    """
    Build calldata for Kernel v3 execute(bytes32,bytes) with a single call.

    The execution payload is abi.encodePacked(target, value, callData).
    """
    selector = _selector_from_signature(signature or KERNEL_EXECUTE_SIGNATURE)
    execution = (
        _strip_0x(to_address).lower().rjust(40, "0")
        + _encode_uint(value_wei)
        + _strip_0x(data)
    )
    head = (
        _encode_uint(SINGLE_CALL_MODE)
        + _encode_uint(64)  # offset to bytes data
    )
    tail = _encode_bytes(execution)
    return selector + head + tail


def build_entrypoint_get_nonce_call(sender: str, key: int = 0) -> str:
    """
    Build calldata for EntryPoint.getNonce(address,uint192).
    """
    selector = _selector_from_signature("getNonce(address,uint192)")
    head = _encode_address(sender) + _encode_uint(key)
    return selector + head


def kernel_nonce_key(validator: str, key: int = 0) -> int:
    """
    Nonce key selecting the root validator of a Kernel v3 account.

    Layout (24 bytes): mode (1) | validation type (1) | validator (20) | key (2).
    Mode and type 0x00 mean "default mode, root validator".
    """
    if not 0 <= key < 2 ** 16:
        raise ValueError("Kernel nonce key must fit in 2 bytes")
    raw = b"\x00" + b"\x00" + decode_hex(validator) + key.to_bytes(2, "big")
    return int.from_bytes(raw, "big")


def build_kernel_initialize_data(
    owner: str,
    kernel: KernelVersion = KERNEL_V3_1,
) -> str:
    """
    Build Kernel.initialize calldata rooting the account on the ECDSA validator.
    """
    root_validator = VALIDATION_TYPE_VALIDATOR + decode_hex(kernel.ecdsa_validator)
    encoded = encode(
        ["bytes21", "address", "bytes", "bytes", "bytes[]"],
        [
            root_validator,
            ZERO_ADDRESS,
            decode_hex(owner),
            b"",
            [],
        ],
    )
    return _selector_from_signature(KERNEL_INITIALIZE_SIGNATURE) + encoded.hex()


def account_salt(index: int) -> bytes:
    return index.to_bytes(32, "big")


def build_factory_get_address_call(init_data: str, index: int = 0) -> str:
    """
    Build calldata for KernelFactory.getAddress(bytes,bytes32).
    """
    encoded = encode(["bytes", "bytes32"], [decode_hex(init_data), account_salt(index)])
    return _selector_from_signature("getAddress(bytes,bytes32)") + encoded.hex()


def build_meta_factory_deploy_data(
    init_data: str,
    index: int = 0,
    kernel: KernelVersion = KERNEL_V3_1,
) -> str:
    """
    Build factoryData for FactoryStaker.deployWithFactory(address,bytes,bytes32).
    """
    encoded = encode(
        ["address", "bytes", "bytes32"],
        [to_checksum_address(kernel.factory), decode_hex(init_data), account_salt(index)],
    )
    return _selector_from_signature("deployWithFactory(address,bytes,bytes32)") + encoded.hex()
