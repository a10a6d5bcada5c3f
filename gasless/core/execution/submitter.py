"""
Sponsored transaction submitter.

Drives one send from intent to receipt:

    idle -> submitting -> awaiting_receipt -> confirmed
            submitting -> failed
                          awaiting_receipt -> failed

Exactly one send may be in flight at a time. Terminal states are re-armed
by the next send; failed sends are never retried here.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

import structlog

from ..entrypoint import DUMMY_ECDSA_SIGNATURE
from ..errors import (
    DerivationFailed,
    GaslessError,
    OperationReverted,
    SendInProgress,
    SessionNotReady,
    SigningFailed,
)
from .models import (
    OutcomeStatus,
    SubmitterState,
    TransactionIntent,
    TransactionOutcome,
)
from .userop import UserOperation
from .userop_builder import (
    build_entrypoint_get_nonce_call,
    build_execute_call_data,
    decode_uint_word,
    kernel_nonce_key,
)

if TYPE_CHECKING:
    from ..session.manager import SessionManager
    from ..session.models import Session


logger = logging.getLogger(__name__)
_slog = structlog.stdlib.get_logger("gasless.submitter")

StateListener = Callable[[SubmitterState, TransactionOutcome], None]


class TransactionSubmitter:
    """
    Executes sponsored sends against a ready session.

    ``on_state_change`` is called synchronously on every transition with the
    new state and the outcome of the send in progress.
    """

    def __init__(
        self,
        session_manager: "SessionManager",
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self.session_manager = session_manager
        self.on_state_change = on_state_change
        self._state = SubmitterState.IDLE
        self._outcome: Optional[TransactionOutcome] = None

    @property
    def state(self) -> SubmitterState:
        return self._state

    @property
    def outcome(self) -> Optional[TransactionOutcome]:
        """Outcome of the current or most recent send."""
        return self._outcome

    async def send(
        self,
        session: Optional["Session"],
        intent: TransactionIntent,
    ) -> TransactionOutcome:
        """
        Send ``intent`` from the session's smart account.

        Guard failures raise before anything changes; failures after the
        send has started are reported on the returned outcome.

        Raises:
            SessionNotReady: If ``session`` is not the manager's ready session
            SendInProgress: If another send has not finished
            InvalidIntent: If the recipient/value/data are malformed
        """
        if not self.session_manager.is_current(session):
            raise SessionNotReady(
                f"Session manager is {self.session_manager.status.value}; initialize first"
            )
        if self._state.is_busy:
            raise SendInProgress(f"A send is already {self._state.value}")

        intent = intent.validate()

        outcome = TransactionOutcome()
        self._outcome = outcome
        log = _slog.bind(
            session_id=session.session_id,
            chain_id=session.network.id,
            sender=session.smart_account.address,
        )
        self._transition(SubmitterState.SUBMITTING, outcome)
        log.info("send_started", recipient=intent.recipient, value=intent.value)

        try:
            user_op_hash = await self._submit(session, intent)
        except Exception as exc:
            return self._fail(outcome, exc, log)

        outcome.operation_hash = user_op_hash
        outcome.submitted_at = datetime.now(timezone.utc)
        log = log.bind(user_op_hash=user_op_hash)
        self._transition(SubmitterState.AWAITING_RECEIPT, outcome)
        log.info("user_op_submitted")

        try:
            receipt = await session.sponsor_client.wait_for_receipt(user_op_hash)
            if not receipt.success:
                raise OperationReverted(
                    f"Operation reverted in transaction {receipt.transaction_hash}"
                    + (f": {receipt.reason}" if receipt.reason else "")
                )
        except Exception as exc:
            return self._fail(outcome, exc, log)

        outcome.receipt = receipt
        outcome.status = OutcomeStatus.CONFIRMED
        outcome.finished_at = datetime.now(timezone.utc)
        self._transition(SubmitterState.CONFIRMED, outcome)
        log.info(
            "user_op_confirmed",
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
        )
        return outcome

    async def _submit(self, session: "Session", intent: TransactionIntent) -> str:
        account = session.smart_account
        gateway = session.sponsor_client
        if gateway.entry_point != account.entry_point:
            raise GaslessError(
                f"Account derived for entry point {account.entry_point.version} "
                f"cannot be submitted to {gateway.entry_point.version}"
            )

        nonce = await self._read_nonce(session)
        fees = await gateway.estimate_fees(session.network)

        include_factory = nonce == 0 and not account.is_deployed
        user_op = UserOperation(
            sender=account.address,
            nonce=nonce,
            call_data=build_execute_call_data(intent.recipient, intent.value, intent.data_hex),
            factory=account.factory if include_factory else None,
            factory_data=account.factory_data if include_factory else None,
            max_fee_per_gas=fees.max_fee_per_gas,
            max_priority_fee_per_gas=fees.max_priority_fee_per_gas,
            signature=DUMMY_ECDSA_SIGNATURE,
        )

        user_op = await gateway.sponsor(user_op)

        user_op_hash = user_op.hash(session.network.id, account.entry_point)
        try:
            signature = await account.signer.sign_message(user_op_hash)
        except Exception as exc:
            raise SigningFailed(f"Wallet failed to sign the operation: {exc}") from exc

        return await gateway.submit(replace(user_op, signature=signature))

    async def _read_nonce(self, session: "Session") -> int:
        account = session.smart_account
        call_data = build_entrypoint_get_nonce_call(
            account.address,
            kernel_nonce_key(account.validator) if account.validator else 0,
        )
        try:
            result = await session.chain_reader.call(account.entry_point.address, call_data)
            return decode_uint_word(result)
        except Exception as exc:
            raise DerivationFailed(f"Could not read account nonce: {exc}") from exc

    def _fail(self, outcome: TransactionOutcome, exc: Exception, log) -> TransactionOutcome:
        if isinstance(exc, GaslessError):
            error = exc
        else:
            error = GaslessError(f"Unexpected send failure: {exc}")
            error.__cause__ = exc
        outcome.error = error
        outcome.status = OutcomeStatus.FAILED
        outcome.finished_at = datetime.now(timezone.utc)
        self._transition(SubmitterState.FAILED, outcome)
        log.warning(
            "send_failed",
            error_code=error.code,
            error=error.message,
            retryable=error.retryable,
            exc_info=not isinstance(exc, GaslessError),
        )
        return outcome

    def _transition(self, state: SubmitterState, outcome: TransactionOutcome) -> None:
        logger.debug(f"Submitter {self._state.value} -> {state.value}")
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(state, outcome)
