"""
Smart account derivation.

Derives the counterfactual Kernel v3.1 account owned by a connected wallet.
The address depends only on the owner, the account index, the Kernel/entry
point versions and the (deterministically deployed) factory, so the same
wallet always maps to the same account on a given network.
"""

from __future__ import annotations

import logging
from typing import Optional

from eth_utils import is_address, to_checksum_address

from ..entrypoint import ENTRY_POINT_V07, KERNEL_V3_1, EntryPointVersion, KernelVersion
from ..errors import DerivationFailed, GaslessError, WalletIncapable
from ..execution.userop_builder import (
    build_factory_get_address_call,
    build_kernel_initialize_data,
    build_meta_factory_deploy_data,
    decode_address_word,
)
from ..networks import NetworkDescriptor
from .handle import ChainReadClient, SigningClient, WalletHandle
from .models import SmartAccount


logger = logging.getLogger(__name__)


class AccountDeriver:
    """
    Derives Kernel smart accounts for connected wallets.

    No retries: any fault is reported to the caller, who decides whether to
    try again.
    """

    def __init__(
        self,
        entry_point: EntryPointVersion = ENTRY_POINT_V07,
        kernel: KernelVersion = KERNEL_V3_1,
        index: int = 0,
    ) -> None:
        self.entry_point = entry_point
        self.kernel = kernel
        self.index = index

    async def derive(self, wallet: WalletHandle, network: NetworkDescriptor) -> SmartAccount:
        """
        Derive the smart account for ``wallet`` on ``network``.

        Raises:
            WalletIncapable: If the wallet cannot sign for the network
            DerivationFailed: If reading the factory or account state fails
        """
        signer = await self._get_signer(wallet, network)
        owner = signer.address
        if not owner or not is_address(owner):
            raise WalletIncapable(f"Wallet signer reported an invalid address: {owner!r}")
        owner = to_checksum_address(owner)

        try:
            reader = await wallet.get_chain_read_client(network)
        except GaslessError:
            raise
        except Exception as exc:
            raise DerivationFailed(f"Could not obtain chain client for {network.name}: {exc}") from exc

        init_data = build_kernel_initialize_data(owner, self.kernel)
        address = await self._predict_address(reader, init_data, network)
        is_deployed = await self._is_deployed(reader, address, network)

        account = SmartAccount(
            address=address,
            owner=owner,
            signer=signer,
            factory=None if is_deployed else to_checksum_address(self.kernel.meta_factory),
            factory_data=None if is_deployed else build_meta_factory_deploy_data(
                init_data, self.index, self.kernel
            ),
            is_deployed=is_deployed,
            validator=to_checksum_address(self.kernel.ecdsa_validator),
            entry_point=self.entry_point,
        )
        logger.info(
            f"Derived Kernel {self.kernel.version} account {address} for owner {owner} "
            f"on {network.name} (deployed={is_deployed})"
        )
        return account

    async def _get_signer(self, wallet: WalletHandle, network: NetworkDescriptor) -> SigningClient:
        if wallet is None or not wallet.is_capable():
            raise WalletIncapable("Wallet does not expose a compatible signing client")
        try:
            signer = await wallet.get_signing_client(network)
        except Exception as exc:
            raise WalletIncapable(
                f"Wallet could not provide a signing client for {network.name}: {exc}"
            ) from exc
        if signer is None:
            raise WalletIncapable(f"Wallet has no signing client for {network.name}")
        return signer

    async def _predict_address(
        self,
        reader: ChainReadClient,
        init_data: str,
        network: NetworkDescriptor,
    ) -> str:
        call_data = build_factory_get_address_call(init_data, self.index)
        try:
            result = await reader.call(to_checksum_address(self.kernel.factory), call_data)
            return decode_address_word(result)
        except Exception as exc:
            raise DerivationFailed(
                f"Kernel factory address lookup failed on {network.name}: {exc}"
            ) from exc

    async def _is_deployed(
        self,
        reader: ChainReadClient,
        address: str,
        network: NetworkDescriptor,
    ) -> bool:
        try:
            code: Optional[str] = await reader.get_code(address)
        except Exception as exc:
            raise DerivationFailed(f"Could not read account code on {network.name}: {exc}") from exc
        return bool(code) and code not in ("0x", "0x0")
