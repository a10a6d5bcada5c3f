"""
ERC-4337 entry point and Kernel account constants.

Derivation, hashing and submission all read from here so the entry point
version used to derive an account is the one used to submit for it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EntryPointVersion:
    address: str
    version: str


@dataclass(frozen=True)
class KernelVersion:
    version: str
    factory: str
    meta_factory: str
    ecdsa_validator: str


ENTRY_POINT_V07 = EntryPointVersion(
    address="0x0000000071727De22E5E9d8BAf0edAc6f37da032",
    version="0.7",
)

KERNEL_V3_1 = KernelVersion(
    version="0.3.1",
    factory="0xaac5D4240AF87249B3f71BC8E4A2cae074A3E419",
    meta_factory="0xd703aaE79538628d27099B8c4f621bE4CCd142d5",
    ecdsa_validator="0x845ADb2C711129d4f3966735eD98a9F09fC4cE57",
)

# Signature accepted by the ECDSA validator during sponsorship simulation
DUMMY_ECDSA_SIGNATURE = "0x" + "f" * 31 + "0" * 33 + "7" + "a" * 63 + "1c"
