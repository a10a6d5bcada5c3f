"""Sponsored ERC-4337 smart account sessions and transactions."""

__version__ = "0.1.0"
