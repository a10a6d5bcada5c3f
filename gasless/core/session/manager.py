"""
Session manager for sponsored smart account access.

Owns the initialization state machine:

    uninitialized -> initializing -> ready
                     initializing -> failed -> initializing

Only one initialization may run at a time; a second call while one is in
flight is rejected, not queued. ``reset()`` must be called by the connection
layer whenever the wallet or its network changes.
"""

import logging
from typing import Callable, Optional

from ...config import settings
from ..errors import (
    AlreadyInitializing,
    DerivationFailed,
    GaslessError,
    SessionNotReady,
    SponsorUnavailable,
)
from ..networks import NetworkDescriptor, resolve
from ..wallet.derivation import AccountDeriver
from ..wallet.handle import WalletHandle
from ...providers.sponsor import SponsorGatewayClient
from .models import Session, SessionStatus


logger = logging.getLogger(__name__)

GatewayFactory = Callable[[NetworkDescriptor], SponsorGatewayClient]


class SessionManager:
    """
    Turns a connected wallet into a ready Session bound to one network.

    A failed initialization keeps the originating error in ``last_error``
    and never exposes a partially built Session.
    """

    def __init__(
        self,
        deriver: Optional[AccountDeriver] = None,
        gateway_factory: Optional[GatewayFactory] = None,
    ) -> None:
        self.deriver = deriver or AccountDeriver(index=settings.account_index)
        self.gateway_factory: GatewayFactory = gateway_factory or SponsorGatewayClient
        self._status = SessionStatus.UNINITIALIZED
        self._session: Optional[Session] = None
        self._last_error: Optional[GaslessError] = None
        # Bumped on every initialize/reset; stale initializations compare against it
        self._generation = 0

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def session(self) -> Optional[Session]:
        return self._session if self._status == SessionStatus.READY else None

    @property
    def last_error(self) -> Optional[GaslessError]:
        return self._last_error

    def is_current(self, session: Optional[Session]) -> bool:
        return session is not None and self.session is session

    def require_session(self) -> Session:
        session = self.session
        if session is None:
            raise SessionNotReady(f"Session is {self._status.value}, not ready")
        return session

    async def initialize(
        self,
        wallet: WalletHandle,
        network_id: Optional[int] = None,
    ) -> Session:
        """
        Build a ready session for ``wallet`` on ``network_id``.

        Args:
            wallet: Connected wallet handle from the connection layer
            network_id: Chain id the user selected (default: settings.default_network_id)

        Returns:
            The ready Session

        Raises:
            AlreadyInitializing: If another initialization is in flight
            SessionNotReady: If reset() was called before this one finished
            UnsupportedNetwork, WalletIncapable, DerivationFailed, SponsorUnavailable:
                when a step fails (the manager is left in ``failed``)
        """
        if self._status == SessionStatus.INITIALIZING:
            raise AlreadyInitializing("Session initialization is already in progress")

        if self._status == SessionStatus.READY:
            logger.info("Re-initializing a ready session; discarding the previous one")
            self.reset()

        self._generation += 1
        generation = self._generation
        self._status = SessionStatus.INITIALIZING
        self._session = None
        self._last_error = None

        try:
            session = await self._build_session(wallet, network_id)
        except Exception as exc:
            if generation != self._generation:
                raise SessionNotReady("Session was reset during initialization") from exc
            error = exc if isinstance(exc, GaslessError) else DerivationFailed(
                f"Unexpected initialization failure: {exc}"
            )
            self._status = SessionStatus.FAILED
            self._last_error = error
            logger.warning(f"Session initialization failed: {error.code}: {error.message}")
            if error is exc:
                raise
            raise error from exc

        if generation != self._generation:
            logger.info(f"Discarding session {session.session_id}; reset during initialization")
            raise SessionNotReady("Session was reset during initialization")

        self._session = session
        self._status = SessionStatus.READY
        logger.info(
            f"Session {session.session_id} ready on {session.network.name} "
            f"for account {session.smart_account.address}"
        )
        return session

    def reset(self) -> None:
        """Drop the current session from any state."""
        self._generation += 1
        previous = self._session
        self._session = None
        self._last_error = None
        self._status = SessionStatus.UNINITIALIZED
        if previous is not None:
            # In-flight sends keep their own reference; the sponsor client is left open for them
            logger.info(f"Session {previous.session_id} reset")

    async def _build_session(
        self,
        wallet: WalletHandle,
        network_id: Optional[int],
    ) -> Session:
        network = resolve(self._select_network_id(wallet, network_id))

        smart_account = await self.deriver.derive(wallet, network)

        try:
            chain_reader = await wallet.get_chain_read_client(network)
        except Exception as exc:
            raise DerivationFailed(
                f"Could not obtain chain client for {network.name}: {exc}"
            ) from exc

        try:
            sponsor_client = self.gateway_factory(network)
        except GaslessError:
            raise
        except Exception as exc:
            raise SponsorUnavailable(f"Could not configure sponsor client: {exc}") from exc

        return Session(
            network=network,
            chain_reader=chain_reader,
            smart_account=smart_account,
            sponsor_client=sponsor_client,
        )

    @staticmethod
    def _select_network_id(wallet: WalletHandle, network_id: Optional[int]) -> int:
        requested = network_id if network_id is not None else settings.default_network_id
        reported = getattr(wallet, "reported_network_id", None)
        if reported is None:
            return requested
        if reported != requested:
            # Wallet-reported network is authoritative once connected
            logger.warning(
                f"Wallet reports network {reported} but {requested} was selected; using {reported}"
            )
        return reported
