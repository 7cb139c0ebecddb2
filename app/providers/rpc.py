"""
Read-only JSON-RPC provider.

Used by the payment verifier (transaction + receipt lookup) and by the
balance endpoint, which goes through the public WalletConnect RPC gateway
for whichever chain the client asks about.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..config import settings
from ..services.evm import parse_quantity
from .base import ChainReader

WALLETCONNECT_RPC_BASE = "https://rpc.walletconnect.com/v1/"


class RpcError(Exception):
    """JSON-RPC error response or malformed result."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


def walletconnect_rpc_url(chain_ref: str, project_id: Optional[str] = None) -> str:
    query = urlencode({"chainId": chain_ref, "projectId": project_id or settings.wc_project_id})
    return f"{WALLETCONNECT_RPC_BASE}?{query}"


class JsonRpcClient(ChainReader):
    name = "rpc"
    timeout_s = 20

    def __init__(self, rpc_url: Optional[str] = None, *, timeout_s: Optional[float] = None) -> None:
        self.rpc_url = rpc_url if rpc_url is not None else settings.rpc_url
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self._client: Optional[httpx.AsyncClient] = None

    async def ready(self) -> bool:
        return bool(self.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": "RPC url not configured"}
        try:
            result = await self._rpc_call("eth_chainId", [])
            return {"status": "healthy", "chainId": parse_quantity(result)}
        except (httpx.HTTPError, RpcError) as exc:
            return {"status": "error", "reason": str(exc)}

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        result = await self._rpc_call("eth_getTransactionByHash", [tx_hash])
        return result or None

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        result = await self._rpc_call("eth_getTransactionReceipt", [tx_hash])
        return result or None

    async def get_balance(self, address: str, block: str = "latest") -> int:
        result = await self._rpc_call("eth_getBalance", [address, block])
        balance = parse_quantity(result)
        if balance is None:
            raise RpcError(f"Invalid eth_getBalance result: {result!r}")
        return balance

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _rpc_call(self, method: str, params: list[Any]) -> Any:
        if not self.rpc_url:
            raise RpcError("RPC url not configured")
        if not self._client or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)

        response = await self._client.post(
            self.rpc_url,
            json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
        )
        response.raise_for_status()
        payload = response.json()
        if "error" in payload and payload["error"]:
            error = payload["error"]
            if isinstance(error, dict):
                raise RpcError(str(error.get("message") or error), error.get("code"))
            raise RpcError(str(error))
        return payload.get("result")
