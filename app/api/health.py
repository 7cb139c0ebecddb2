from fastapi import APIRouter, Request
from typing import Dict, Any

from ..config import settings

router = APIRouter()


@router.get("/healthz")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint that reports wallet bridge and signer configuration"""

    state = request.app.state
    manager = getattr(state, "pairing_manager", None)
    dispatcher = getattr(state, "billing_dispatcher", None)

    bridge_status: Dict[str, Any] = {"status": "disabled"}
    if manager is not None:
        bridge_status = await manager.client.health_check()

    contracts = dispatcher.contracts if dispatcher is not None else None
    bound = contracts.bound_contracts() if contracts is not None and hasattr(contracts, "bound_contracts") else {}

    healthy = manager is not None and bridge_status.get("status") == "healthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "walletBridge": bridge_status,
        "hasProjectId": settings.has_wc_project_id,
        "pairings": len(manager.store) if manager is not None else 0,
        "signer": contracts.signer_address if contracts is not None else None,
        "contracts": bound,
        "treasury": dispatcher.treasury_address if dispatcher is not None else None,
    }
