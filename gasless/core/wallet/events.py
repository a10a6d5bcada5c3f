"""
Wallet change notifications.

The connection layer publishes ``WalletEvent`` messages on an asyncio queue
whenever the active wallet or its network changes. ``WalletEventRelay``
turns each message into exactly one ``SessionManager.reset()`` so a ready
session never keeps pointing at a stale wallet or network.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..session.manager import SessionManager


logger = logging.getLogger(__name__)


class WalletEventKind(str, Enum):
    WALLET_CHANGED = "walletChanged"
    WALLET_NETWORK_CHANGED = "walletNetworkChanged"


@dataclass(frozen=True)
class WalletEvent:
    kind: WalletEventKind
    network_id: Optional[int] = None
    address: Optional[str] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class WalletEventRelay:
    """Translates queued wallet events into session resets."""

    def __init__(
        self,
        manager: "SessionManager",
        queue: "Optional[asyncio.Queue[Optional[WalletEvent]]]" = None,
    ) -> None:
        self.manager = manager
        self.queue: "asyncio.Queue[Optional[WalletEvent]]" = queue or asyncio.Queue()

    def publish(self, event: WalletEvent) -> None:
        self.queue.put_nowait(event)

    def handle(self, event: WalletEvent) -> None:
        logger.info(
            f"Wallet event {event.kind.value} "
            f"(network={event.network_id}, address={event.address}); resetting session"
        )
        self.manager.reset()

    def drain(self) -> int:
        """Handle every event already queued without waiting. Returns the number handled."""
        handled = 0
        while True:
            try:
                event = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                return handled
            self.queue.task_done()
            if event is None:
                return handled
            self.handle(event)
            handled += 1

    async def run(self) -> None:
        """Consume events until a ``None`` sentinel is received."""
        while True:
            event = await self.queue.get()
            self.queue.task_done()
            if event is None:
                return
            self.handle(event)

    def stop(self) -> None:
        self.queue.put_nowait(None)
