"""
ERC-4337 bundler/paymaster gateway (Pimlico-compatible JSON-RPC).

One client is bound to one network and one sponsorship policy. Calls are
never retried here; failures are classified so callers can tell a transient
outage (``SponsorUnavailable``) from a policy rejection
(``SponsorshipDenied``).
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Dict, Optional

import httpx

from .base import JsonRpcError, JsonRpcProvider
from ..config import settings
from ..core.entrypoint import ENTRY_POINT_V07, EntryPointVersion
from ..core.errors import (
    GaslessError,
    OperationRejected,
    ReceiptInvalid,
    SponsorshipDenied,
    SponsorUnavailable,
    UnsupportedNetwork,
)
from ..core.execution.userop import FeeEstimate, UserOperation, UserOpReceipt
from ..core.networks import NetworkDescriptor


logger = logging.getLogger(__name__)

_USER_OP_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")

# ERC-7769 bundler error codes
PAYMASTER_REJECTED = -32501
THROTTLED = -32504
_VALIDATION_CODES = range(-32507, -32499)
_POLICY_MARKERS = ("sponsorship", "policy", "not sponsored", "denied")

FEE_TIERS = ("slow", "standard", "fast")


def classify_rpc_error(error: JsonRpcError) -> GaslessError:
    """Map a bundler JSON-RPC error to the lifecycle error taxonomy."""
    message = error.message.lower()
    if error.code == PAYMASTER_REJECTED or any(marker in message for marker in _POLICY_MARKERS):
        return SponsorshipDenied(error.message, rpc_code=error.code)
    if error.code == THROTTLED:
        return SponsorUnavailable(error.message, rpc_code=error.code)
    if error.code is not None and (error.code in _VALIDATION_CODES or error.code == -32602):
        return OperationRejected(error.message, rpc_code=error.code)
    return SponsorUnavailable(error.message, rpc_code=error.code)


def classify_http_error(exc: httpx.HTTPError) -> GaslessError:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in (401, 403):
            return SponsorshipDenied(f"Sponsor service refused access (HTTP {status})", rpc_code=status)
        if status == 429 or status >= 500:
            return SponsorUnavailable(f"Sponsor service responded with HTTP {status}", rpc_code=status)
        return OperationRejected(f"Sponsor service responded with HTTP {status}", rpc_code=status)
    return SponsorUnavailable(f"Sponsor service unreachable: {exc}")


class SponsorGatewayClient(JsonRpcProvider):
    name = "sponsor"

    def __init__(
        self,
        network: NetworkDescriptor,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        policy_id: Optional[str] = None,
        entry_point: EntryPointVersion = ENTRY_POINT_V07,
        fee_tier: Optional[str] = None,
        poll_interval_s: Optional[float] = None,
        receipt_timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.network = network
        self._api_key = api_key if api_key is not None else settings.sponsor_api_key
        self._policy_id = policy_id if policy_id is not None else settings.sponsorship_policy_id
        self.entry_point = entry_point
        self.fee_tier = (fee_tier or settings.fee_tier).lower()
        if self.fee_tier not in FEE_TIERS:
            raise ValueError(f"Unknown fee tier {self.fee_tier!r}; expected one of {FEE_TIERS}")
        self.poll_interval_s = poll_interval_s or settings.receipt_poll_interval_seconds
        self.receipt_timeout_s = receipt_timeout_s or settings.receipt_timeout_seconds
        self.timeout_s = settings.request_timeout_seconds
        super().__init__(
            network.sponsor_url(base_url or settings.sponsor_base_url, self._api_key),
            client,
        )

    @property
    def policy_id(self) -> str:
        return self._policy_id

    async def ready(self) -> bool:
        return bool(self._api_key) and bool(self._policy_id)

    async def _call(self, method: str, params: list[Any]) -> Any:
        try:
            return await self._rpc_call(method, params)
        except JsonRpcError as exc:
            error = classify_rpc_error(exc)
        except httpx.HTTPError as exc:
            error = classify_http_error(exc)
        except ValueError as exc:
            error = SponsorUnavailable(f"Sponsor service returned a malformed response: {exc}")
        logger.warning(f"{method} failed on {self.network.name}: {error.code}: {error.message}")
        raise error

    async def estimate_fees(self, network: Optional[NetworkDescriptor] = None) -> FeeEstimate:
        """Gas prices for the configured tier, as quoted by the bundler."""
        if network is not None and network.id != self.network.id:
            raise UnsupportedNetwork(
                f"Gateway is bound to {self.network.name}, cannot estimate fees for {network.name}"
            )
        result = await self._call("pimlico_getUserOperationGasPrice", [])
        try:
            return FeeEstimate.from_rpc(result[self.fee_tier])
        except (KeyError, TypeError, ValueError) as exc:
            raise SponsorUnavailable(f"Invalid gas price response: {result!r}") from exc

    async def sponsor(self, user_op: UserOperation) -> UserOperation:
        """Attach paymaster data under the configured sponsorship policy."""
        if not await self.ready():
            raise SponsorUnavailable("Sponsor gateway is missing its API key or policy id")

        result = await self._call(
            "pm_sponsorUserOperation",
            [
                user_op.to_rpc_dict(),
                self.entry_point.address,
                {"sponsorshipPolicyId": self._policy_id},
            ],
        )
        if not isinstance(result, dict) or not result.get("paymaster"):
            raise SponsorUnavailable("Invalid paymaster response for pm_sponsorUserOperation")
        try:
            return user_op.with_sponsorship(result)
        except (TypeError, ValueError) as exc:
            raise SponsorUnavailable(f"Invalid paymaster gas fields: {exc}") from exc

    async def submit(self, user_op: UserOperation) -> str:
        """Send a signed operation to the bundler and return its hash."""
        result = await self._call(
            "eth_sendUserOperation",
            [user_op.to_rpc_dict(), self.entry_point.address],
        )
        if not isinstance(result, str) or not _USER_OP_HASH_RE.match(result):
            raise SponsorUnavailable("Invalid bundler response for eth_sendUserOperation")
        logger.info(f"User operation {result} accepted by bundler on {self.network.name}")
        return result

    async def get_receipt(self, user_op_hash: str) -> Optional[UserOpReceipt]:
        result = await self._call("eth_getUserOperationReceipt", [user_op_hash])
        if not result:
            return None
        try:
            return UserOpReceipt.from_rpc(user_op_hash, result)
        except ValueError as exc:
            raise ReceiptInvalid(str(exc)) from exc

    async def wait_for_receipt(self, user_op_hash: str) -> UserOpReceipt:
        """
        Poll until the operation is included.

        Raises:
            SponsorUnavailable: If no receipt shows up before the gateway timeout
            ReceiptInvalid: If the bundler returns a malformed receipt
        """
        deadline = time.monotonic() + self.receipt_timeout_s
        while True:
            receipt = await self.get_receipt(user_op_hash)
            if receipt is not None:
                return receipt
            if time.monotonic() >= deadline:
                raise SponsorUnavailable(
                    f"Timed out after {self.receipt_timeout_s:.0f}s waiting for receipt of {user_op_hash}"
                )
            await asyncio.sleep(self.poll_interval_s)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": "Sponsor API key or policy not configured"}
        return await super().health_check()
