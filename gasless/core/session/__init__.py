"""
Session Module

- SessionManager: wallet + network -> ready Session state machine
- Session / SessionStatus: the ready session and manager lifecycle states

Usage:
    from gasless.core.session import SessionManager

    manager = SessionManager()
    session = await manager.initialize(wallet, network_id=84532)

    # On walletChanged / walletNetworkChanged
    manager.reset()
"""

from .models import Session, SessionStatus
from .manager import SessionManager

__all__ = [
    "Session",
    "SessionStatus",
    "SessionManager",
]
