"""
Wallet Module

Interfaces the connection layer implements, smart account derivation, and
wallet change notifications:
- WalletHandle / SigningClient / ChainReadClient: collaborator contracts
- AccountDeriver: derive the counterfactual Kernel account for a wallet
- WalletEventRelay: turn wallet change events into session resets
"""

from .handle import ChainReadClient, SigningClient, WalletHandle
from .models import SmartAccount
from .derivation import AccountDeriver
from .events import WalletEvent, WalletEventKind, WalletEventRelay

__all__ = [
    "ChainReadClient",
    "SigningClient",
    "WalletHandle",
    "SmartAccount",
    "AccountDeriver",
    "WalletEvent",
    "WalletEventKind",
    "WalletEventRelay",
]
