"""
Session models.

A Session only exists once every part of it has been built; it is never
mutated and is dropped whole when the wallet or network changes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict
import secrets

from ..networks import NetworkDescriptor
from ..wallet.handle import ChainReadClient
from ..wallet.models import SmartAccount

if TYPE_CHECKING:
    from ...providers.sponsor import SponsorGatewayClient


class SessionStatus(str, Enum):
    """Session manager lifecycle state."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Session:
    network: NetworkDescriptor
    chain_reader: ChainReadClient = field(repr=False)
    smart_account: SmartAccount
    sponsor_client: "SponsorGatewayClient" = field(repr=False)
    session_id: str = field(default_factory=lambda: f"sess_{secrets.token_hex(8)}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "networkId": self.network.id,
            "networkName": self.network.name,
            "smartAccount": self.smart_account.to_dict(),
            "sponsorshipPolicyId": self.sponsor_client.policy_id,
            "createdAt": self.created_at.isoformat(),
        }
