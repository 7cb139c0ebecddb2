"""Request-scoped accessors for the services wired up in ``app.main``."""

import hmac
from typing import Any, Callable, Optional

from fastapi import Header, HTTPException, Request

from ..config import settings
from ..core.billing import BillingDispatcher
from ..core.errors import NotConfigured, WalletBridgeError
from ..core.pairing import SessionLifecycleManager
from ..providers.rpc import JsonRpcClient, walletconnect_rpc_url


def http_error(exc: WalletBridgeError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


def get_pairing_manager(request: Request) -> SessionLifecycleManager:
    manager = getattr(request.app.state, "pairing_manager", None)
    if manager is None:
        raise http_error(NotConfigured("Pairing service is not running"))
    return manager


def get_billing_dispatcher(request: Request) -> BillingDispatcher:
    dispatcher = getattr(request.app.state, "billing_dispatcher", None)
    if dispatcher is None:
        raise http_error(NotConfigured("Billing service is not running"))
    return dispatcher


def default_balance_reader(chain_ref: str) -> JsonRpcClient:
    return JsonRpcClient(walletconnect_rpc_url(chain_ref))


def get_balance_reader_factory(request: Request) -> Callable[[str], Any]:
    return getattr(request.app.state, "balance_reader_factory", None) or default_balance_reader


async def require_admin_token(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Guard for direct game writes when ``game_admin_token`` is configured."""
    expected = settings.game_admin_token
    if not expected:
        return
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(
            status_code=401,
            detail={"error": "unauthorized", "message": "Missing or invalid admin token"},
        )
