"""
Interfaces the wallet collaborator must provide.

The core never owns a wallet. It holds a reference to a ``WalletHandle``
supplied by the connection layer and asks it for clients scoped to a network.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..networks import NetworkDescriptor


class ChainReadClient(ABC):
    """Read-only access to chain state."""

    @abstractmethod
    async def call(self, to: str, data: str) -> str:
        """Execute eth_call against the latest block and return the hex result"""
        pass

    @abstractmethod
    async def get_code(self, address: str) -> str:
        """Return deployed bytecode at address ("0x" when none)"""
        pass


class SigningClient(ABC):
    """Signing capability of the wallet that controls the smart account."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Owner EOA address"""
        pass

    @abstractmethod
    async def sign_message(self, message: bytes) -> str:
        """EIP-191 personal_sign over raw bytes, returning a 65-byte hex signature"""
        pass


class WalletHandle(ABC):
    """A connected wallet as exposed by the connection layer."""

    # Chain the wallet reports being connected to, when known
    reported_network_id: Optional[int] = None

    @abstractmethod
    def is_capable(self) -> bool:
        """Check the wallet exposes a compatible (EVM) signing client"""
        pass

    @abstractmethod
    async def get_chain_read_client(self, network: "NetworkDescriptor") -> ChainReadClient:
        pass

    @abstractmethod
    async def get_signing_client(self, network: "NetworkDescriptor") -> SigningClient:
        pass
