"""
Wallet protocol client backed by a sign-client bridge process.

The WalletConnect sign client only ships as a JavaScript SDK, so the
protocol side runs in a small companion process and this client talks
to it over HTTP and a WebSocket:

    POST /connect              {optionalNamespaces, projectId, relayUrl, metadata}
                               -> {uri, approvalId}
    GET  /approvals/{id}       long poll; 200 {topic, namespaces},
                               202/204 still waiting, 410 rejected
    POST /request              {topic, chainId, request: {method, params}}
                               -> {result} | {error: {code, message}}
    WS   /events               {event, topic, params: {namespaces}}
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import websockets
from websockets.exceptions import ConnectionClosed

from app.config import settings
from app.core.errors import ConnectError, WalletRequestFailed
from app.core.pairing.models import NotificationKind, WalletNotification

from .base import ConnectResult, WalletProtocolClient

logger = logging.getLogger(__name__)

_EVENT_KINDS = {kind.value: kind for kind in NotificationKind}


def events_url(base_url: str) -> str:
    """``http(s)://host/`` -> ``ws(s)://host/events``."""
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return f"{base}/events"


def parse_event(raw: Any) -> Optional[WalletNotification]:
    """Bridge event frame -> notification; None for anything we don't handle."""
    if not isinstance(raw, dict):
        return None
    kind = _EVENT_KINDS.get(raw.get("event"))
    topic = raw.get("topic")
    if kind is None or not isinstance(topic, str) or not topic:
        return None
    params = raw.get("params") if isinstance(raw.get("params"), dict) else {}
    namespace: Dict[str, Any] = {}
    namespaces = params.get("namespaces")
    if isinstance(namespaces, dict) and isinstance(namespaces.get("eip155"), dict):
        namespace = namespaces["eip155"]
    return WalletNotification(kind=kind, topic=topic, namespace=namespace)


class WalletBridgeClient(WalletProtocolClient):
    """HTTP/WebSocket client for the sign-client bridge."""

    name = "wallet_bridge"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        project_id: Optional[str] = None,
        relay_url: Optional[str] = None,
        timeout_s: float = 20,
        poll_interval_s: float = 1.0,
    ) -> None:
        self.base_url = (base_url or settings.wallet_bridge_url).rstrip("/")
        self.project_id = project_id if project_id is not None else settings.wc_project_id
        self.relay_url = relay_url if relay_url is not None else settings.relay_url
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self.metadata = {
            "name": settings.wc_app_name,
            "description": settings.wc_app_description,
            "url": settings.wc_app_url,
            "icons": [settings.wc_app_icon] if settings.wc_app_icon else [],
        }

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
        }

    async def connect(self, optional_namespaces: Dict[str, Any]) -> ConnectResult:
        if not self.project_id:
            raise ConnectError("WalletConnect project id is not configured")

        payload = {
            "optionalNamespaces": optional_namespaces,
            "projectId": self.project_id,
            "metadata": self.metadata,
        }
        if self.relay_url:
            payload["relayUrl"] = self.relay_url

        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_s) as client:
            response = await client.post("/connect", json=payload, headers=self._headers())
            response.raise_for_status()
            data = response.json()

        approval_id = data.get("approvalId")
        if not approval_id:
            raise ConnectError("Wallet bridge returned no approval handle")
        return ConnectResult(uri=data.get("uri"), approval=self._wait_for_approval(str(approval_id)))

    async def _wait_for_approval(self, approval_id: str) -> Dict[str, Any]:
        # the bridge holds each poll open; None read timeout lets it decide
        timeout = httpx.Timeout(self.timeout_s, read=None)
        async with httpx.AsyncClient(base_url=self.base_url, timeout=timeout) as client:
            while True:
                response = await client.get(f"/approvals/{approval_id}", headers=self._headers())
                if response.status_code == 200:
                    return response.json()
                if response.status_code in (202, 204):
                    await asyncio.sleep(self.poll_interval_s)
                    continue
                if response.status_code == 410:
                    reason = _error_message(response) or "Pairing rejected by wallet"
                    raise WalletRequestFailed(reason, {"approvalId": approval_id})
                response.raise_for_status()
                raise WalletRequestFailed(
                    f"Unexpected approval status {response.status_code}",
                    {"approvalId": approval_id},
                )

    async def request(self, topic: str, chain_id: str, method: str, params: List[Any]) -> Any:
        payload = {
            "topic": topic,
            "chainId": chain_id,
            "request": {"method": method, "params": params},
        }
        # the wallet user may take a while; the caller bounds the wait
        timeout = httpx.Timeout(self.timeout_s, read=None)
        async with httpx.AsyncClient(base_url=self.base_url, timeout=timeout) as client:
            response = await client.post("/request", json=payload, headers=self._headers())
            if response.status_code >= 500:
                response.raise_for_status()
            data = response.json()

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            details: Dict[str, Any] = {"method": method}
            if isinstance(error, dict) and "code" in error:
                details["walletCode"] = error["code"]
            raise WalletRequestFailed(message or f"Wallet rejected {method}", details)
        if not isinstance(data, dict) or "result" not in data:
            raise WalletRequestFailed(f"Malformed bridge response for {method}", {"method": method})
        return data["result"]

    async def notifications(self) -> AsyncIterator[WalletNotification]:
        url = events_url(self.base_url)
        retry_delay = 1
        max_retry_delay = 60

        while True:
            try:
                async with websockets.connect(url) as ws:
                    retry_delay = 1
                    logger.info("Connected to wallet bridge events at %s", url)
                    async for message in ws:
                        try:
                            notification = parse_event(json.loads(message))
                        except json.JSONDecodeError:
                            logger.warning("Invalid JSON from wallet bridge: %s", str(message)[:100])
                            continue
                        if notification is not None:
                            yield notification
            except ConnectionClosed as e:
                logger.warning("Wallet bridge event stream closed: %s", e)
            except OSError as e:
                logger.error("Wallet bridge event stream error: %s", e)

            logger.info("Reconnecting to wallet bridge events in %ss...", retry_delay)
            await asyncio.sleep(retry_delay)
            retry_delay = min(retry_delay * 2, max_retry_delay)

    async def health_check(self) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=5) as client:
                response = await client.get("/healthz")
                response.raise_for_status()
            return {"status": "healthy"}
        except httpx.HTTPError as e:
            return {"status": "unhealthy", "error": str(e)}


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            return error.get("message")
        if isinstance(error, str):
            return error
    return None
