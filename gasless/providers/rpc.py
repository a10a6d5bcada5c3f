"""
Plain JSON-RPC chain reader.

Connection layers that do not ship their own read client can hand this to
the core as the ``ChainReadClient`` for a network.
"""

from __future__ import annotations

from typing import Optional

import httpx

from ..core.wallet.handle import ChainReadClient
from .base import JsonRpcProvider


class JsonRpcChainReader(JsonRpcProvider, ChainReadClient):
    name = "chain_reader"
    timeout_s = 15

    def __init__(self, rpc_url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        super().__init__(rpc_url, client)

    async def call(self, to: str, data: str) -> str:
        result = await self._rpc_call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise ValueError("Invalid response for eth_call")
        return result

    async def get_code(self, address: str) -> str:
        result = await self._rpc_call("eth_getCode", [address, "latest"])
        if not isinstance(result, str):
            raise ValueError("Invalid response for eth_getCode")
        return result
