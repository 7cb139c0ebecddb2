"""
Pairing API

Wallet login handshake for the game client:
- create a pairing and get the connection URI
- poll its status until the wallet approves
- switch the wallet's network and relay allow-listed requests

The ``/wc-*`` paths are the routes older game builds still call.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..core.errors import WalletBridgeError
from ..core.pairing import SessionLifecycleManager
from ..types.pairing import (
    PairingResponse,
    PairingStatusResponse,
    SwitchNetworkRequest,
    SwitchNetworkResponse,
    WalletRequest,
    WalletRequestResponse,
)
from .deps import get_pairing_manager, http_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pairing"])


def _split_chains(*values: Optional[str]) -> List[str]:
    chains: List[str] = []
    for value in values:
        if value:
            chains.extend(part.strip() for part in value.split(",") if part.strip())
    return chains


def _iso(timestamp: float) -> str:
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.get("/pairing", response_model=PairingResponse)
@router.get("/wc-uri", response_model=PairingResponse, include_in_schema=False)
async def create_pairing(
    preferred_chain: Optional[str] = Query(None, alias="preferredChain", description="Chain ref(s), comma separated"),
    chain: Optional[str] = Query(None, description="Single chain ref (legacy)"),
    manager: SessionLifecycleManager = Depends(get_pairing_manager),
) -> PairingResponse:
    try:
        ticket = await manager.create_pairing(_split_chains(preferred_chain, chain))
    except WalletBridgeError as exc:
        raise http_error(exc) from exc

    return PairingResponse(
        id=ticket.id,
        uri=ticket.uri,
        expires_at=_iso(ticket.expires_at),
        chain_ref=ticket.chain_ref,
    )


@router.get("/pairing/status", response_model=PairingStatusResponse, response_model_exclude_none=True)
@router.get(
    "/wc-status",
    response_model=PairingStatusResponse,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def pairing_status(
    id: Optional[str] = Query(None, description="Pairing id"),
    manager: SessionLifecycleManager = Depends(get_pairing_manager),
) -> PairingStatusResponse:
    result = manager.get_status(id)
    return PairingStatusResponse.model_validate(result.to_payload())


@router.post("/pairing/switch", response_model=SwitchNetworkResponse)
@router.post("/wc-switch", response_model=SwitchNetworkResponse, include_in_schema=False)
async def switch_network(
    body: SwitchNetworkRequest,
    manager: SessionLifecycleManager = Depends(get_pairing_manager),
) -> SwitchNetworkResponse:
    try:
        session = await manager.switch_network(body.topic, body.chain_ref.strip())
    except WalletBridgeError as exc:
        raise http_error(exc) from exc

    return SwitchNetworkResponse(
        selected_chain_ref=session.active.chain_ref,
        chain_id=session.active.chain_id,
    )


@router.post("/pairing/request", response_model=WalletRequestResponse)
@router.post("/wc-request", response_model=WalletRequestResponse, include_in_schema=False)
async def wallet_request(
    body: WalletRequest,
    manager: SessionLifecycleManager = Depends(get_pairing_manager),
) -> WalletRequestResponse:
    try:
        result = await manager.dispatch_request(body.topic, body.method, body.params, body.chain_ref)
    except WalletBridgeError as exc:
        logger.warning("Wallet request %s on %s failed: %s", body.method, body.topic, exc)
        raise http_error(exc) from exc

    return WalletRequestResponse(result=result)
