"""
Smart account models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..entrypoint import ENTRY_POINT_V07, EntryPointVersion
from .handle import SigningClient


@dataclass(frozen=True)
class SmartAccount:
    """Counterfactual Kernel account controlled by a signing wallet."""
    address: str
    owner: str
    signer: SigningClient = field(repr=False, compare=False)
    factory: Optional[str] = None
    factory_data: Optional[str] = None
    is_deployed: bool = False
    validator: Optional[str] = None
    entry_point: EntryPointVersion = ENTRY_POINT_V07

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "isDeployed": self.is_deployed,
            "entryPoint": self.entry_point.address,
            "entryPointVersion": self.entry_point.version,
        }
