from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class JsonRpcError(Exception):
    """JSON-RPC error object returned by a remote endpoint."""

    def __init__(self, code: Optional[int], message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    @classmethod
    def from_payload(cls, error: Any) -> "JsonRpcError":
        if not isinstance(error, dict):
            return cls(None, str(error))
        code = error.get("code")
        return cls(
            code if isinstance(code, int) else None,
            str(error.get("message") or "JSON-RPC error"),
            error.get("data"),
        )


class JsonRpcProvider(Provider):
    """Provider speaking JSON-RPC 2.0 over HTTP POST."""

    def __init__(self, rpc_url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.rpc_url = rpc_url
        self._client = client
        self._request_id = 0

    async def ready(self) -> bool:
        return bool(self.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": f"{self.name} not configured"}

        try:
            result = await self._rpc_call("eth_chainId", [])
            return {"status": "healthy", "chainId": result}
        except Exception as exc:
            return {"status": "error", "reason": str(exc)}

    async def _rpc_call(self, method: str, params: list[Any]) -> Any:
        """
        Raises:
            httpx.HTTPError: On transport failures and non-2xx responses
            JsonRpcError: When the response carries an error object
        """
        if not self._client or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)

        self._request_id += 1
        response = await self._client.post(
            self.rpc_url,
            json={"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params},
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON-RPC response object, got {type(payload).__name__}")
        if payload.get("error"):
            raise JsonRpcError.from_payload(payload["error"])
        return payload.get("result")

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
