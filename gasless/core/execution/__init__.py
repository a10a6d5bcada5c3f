"""
Transaction Execution Layer

Models and encoders for sponsored ERC-4337 sends:
- TransactionIntent / TransactionOutcome: what to send and how it went
- UserOperation: v0.7 operation, RPC encoding and hashing
- userop_builder: Kernel and EntryPoint calldata

The state machine driving a send lives in
``gasless.core.execution.submitter``.

Usage:
    from gasless.core.execution.submitter import TransactionSubmitter

    submitter = TransactionSubmitter(session_manager)
    outcome = await submitter.send(
        session_manager.require_session(),
        TransactionIntent.from_ether("0x...", "0.0001"),
    )
"""

from .models import (
    OutcomeStatus,
    SubmitterState,
    TransactionIntent,
    TransactionOutcome,
)
from .userop import FeeEstimate, UserOperation, UserOpReceipt

__all__ = [
    "OutcomeStatus",
    "SubmitterState",
    "TransactionIntent",
    "TransactionOutcome",
    "FeeEstimate",
    "UserOperation",
    "UserOpReceipt",
]
