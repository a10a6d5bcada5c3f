"""
Error taxonomy for the session and transaction lifecycle.

Every failure the core reports is one of these types. ``retryable`` tells the
caller whether pressing the same action again can succeed without changing
anything else; the core itself never retries.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GaslessError(Exception):
    """Base exception for all lifecycle errors."""

    code: str = "gasless_error"
    retryable: bool = False

    def __init__(self, message: str, *, rpc_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.rpc_code = rpc_code

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.rpc_code is not None:
            payload["rpcCode"] = self.rpc_code
        return payload


class UnsupportedNetwork(GaslessError):
    """Network id is not in the supported set."""
    code = "unsupported_network"


class WalletIncapable(GaslessError):
    """Wallet cannot produce a signing client for the target network."""
    code = "wallet_incapable"


class DerivationFailed(GaslessError):
    """Smart account derivation hit an RPC fault."""
    code = "derivation_failed"
    retryable = True


class SponsorUnavailable(GaslessError):
    """Bundler/paymaster service is unreachable or failed transiently."""
    code = "sponsor_unavailable"
    retryable = True


class SponsorshipDenied(GaslessError):
    """Sponsorship policy rejected the operation."""
    code = "sponsorship_denied"


class OperationRejected(GaslessError):
    """Bundler rejected the operation during validation."""
    code = "operation_rejected"


class AlreadyInitializing(GaslessError):
    code = "already_initializing"


class SessionNotReady(GaslessError):
    code = "session_not_ready"


class InvalidIntent(GaslessError):
    code = "invalid_intent"


class SendInProgress(GaslessError):
    code = "send_in_progress"


class SigningFailed(GaslessError):
    """Owner wallet failed to sign the user operation."""
    code = "signing_failed"
    retryable = True


class ReceiptInvalid(GaslessError):
    """Receipt payload could not be parsed."""
    code = "receipt_invalid"


class OperationReverted(GaslessError):
    """Operation was included on-chain but execution failed."""
    code = "operation_reverted"
