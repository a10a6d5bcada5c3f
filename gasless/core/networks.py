"""
Supported network registry.

The supported set is fixed at build time. Lookups are pure and never touch
the network.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import UnsupportedNetwork


@dataclass(frozen=True)
class NetworkDescriptor:
    """Chain metadata for a supported network."""
    id: int
    name: str
    url_template: str = "{base_url}/{network_id}/rpc?apikey={api_key}"
    native_symbol: str = "ETH"
    is_testnet: bool = True
    explorer_url: Optional[str] = None

    def sponsor_url(self, base_url: str, api_key: str) -> str:
        """Render the bundler/paymaster endpoint for this network."""
        return self.url_template.format(
            base_url=base_url.rstrip("/"),
            network_id=self.id,
            api_key=api_key,
        )

    def explorer_tx_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"


ETHEREUM_SEPOLIA = NetworkDescriptor(
    id=11155111,
    name="Ethereum Sepolia",
    explorer_url="https://sepolia.etherscan.io",
)

BASE_SEPOLIA = NetworkDescriptor(
    id=84532,
    name="Base Sepolia",
    explorer_url="https://sepolia.basescan.org",
)

POLYGON_AMOY = NetworkDescriptor(
    id=80002,
    name="Polygon Amoy",
    native_symbol="POL",
    explorer_url="https://amoy.polygonscan.com",
)

# Presentation order
SUPPORTED_NETWORKS: List[NetworkDescriptor] = [
    ETHEREUM_SEPOLIA,
    BASE_SEPOLIA,
    POLYGON_AMOY,
]

_NETWORKS_BY_ID: Dict[int, NetworkDescriptor] = {
    network.id: network for network in SUPPORTED_NETWORKS
}


def resolve(network_id: int) -> NetworkDescriptor:
    """
    Resolve a chain id to its descriptor.

    Raises:
        UnsupportedNetwork: If the id is not in the supported set.
    """
    # bool is an int subclass; True must not resolve to chain 1
    if isinstance(network_id, bool) or not isinstance(network_id, int):
        raise UnsupportedNetwork(f"Network id must be an integer, got {network_id!r}")

    network = _NETWORKS_BY_ID.get(network_id)
    if network is None:
        raise UnsupportedNetwork(f"Network {network_id} is not supported")
    return network


def list_supported() -> List[NetworkDescriptor]:
    return list(SUPPORTED_NETWORKS)


def is_supported(network_id: int) -> bool:
    try:
        resolve(network_id)
    except UnsupportedNetwork:
        return False
    return True
