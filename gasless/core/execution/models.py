"""
Transaction intent and outcome models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Union

from eth_utils import is_hex_address, to_checksum_address, to_wei

from ..errors import GaslessError, InvalidIntent
from .userop import UserOpReceipt

UINT256_MAX = 2**256 - 1


class SubmitterState(str, Enum):
    """Transaction submitter lifecycle state."""
    IDLE = "idle"
    SUBMITTING = "submitting"              # Sponsoring, signing, sending
    AWAITING_RECEIPT = "awaiting_receipt"  # Bundler accepted, waiting for inclusion
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_busy(self) -> bool:
        return self in {SubmitterState.SUBMITTING, SubmitterState.AWAITING_RECEIPT}


class OutcomeStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class TransactionIntent:
    """A single call the smart account should make."""
    recipient: str
    value: int = 0          # Wei
    data: bytes = b""

    @classmethod
    def from_ether(
        cls,
        recipient: str,
        amount_ether: Union[str, Decimal],
        data: bytes = b"",
    ) -> "TransactionIntent":
        """Build an intent from a decimal ether amount (e.g. "0.0001")."""
        try:
            value = to_wei(Decimal(str(amount_ether)), "ether")
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidIntent(f"Invalid ether amount: {amount_ether!r}") from exc
        return cls(recipient=recipient, value=value, data=data)

    def validate(self) -> "TransactionIntent":
        """
        Return a normalized copy (checksummed recipient).

        Raises:
            InvalidIntent: On an empty/malformed recipient, out-of-range value or non-bytes data
        """
        if not isinstance(self.recipient, str) or not self.recipient.strip():
            raise InvalidIntent("Recipient address is required")
        recipient = self.recipient.strip()
        if not is_hex_address(recipient):
            raise InvalidIntent(f"Recipient is not a valid address: {recipient}")
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidIntent(f"Value must be an integer amount of wei, got {self.value!r}")
        if self.value < 0:
            raise InvalidIntent("Value must be non-negative")
        if self.value > UINT256_MAX:
            raise InvalidIntent("Value does not fit in uint256")
        if not isinstance(self.data, (bytes, bytearray)):
            raise InvalidIntent("Call data must be bytes")
        return TransactionIntent(
            recipient=to_checksum_address(recipient),
            value=self.value,
            data=bytes(self.data),
        )

    @property
    def data_hex(self) -> str:
        return "0x" + bytes(self.data).hex()


@dataclass
class TransactionOutcome:
    """Result of one sponsored send, filled in as the send progresses."""
    status: OutcomeStatus = OutcomeStatus.PENDING
    operation_hash: Optional[str] = None
    receipt: Optional[UserOpReceipt] = None
    error: Optional[GaslessError] = None

    # Timing
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    submitted_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def error_detail(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def is_final(self) -> bool:
        return self.status in {OutcomeStatus.CONFIRMED, OutcomeStatus.FAILED}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "operationHash": self.operation_hash,
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "error": self.error.to_dict() if self.error else None,
        }
