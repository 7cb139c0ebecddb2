import logging
from typing import Any, Callable

import httpx
from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..core.chains import parse_chain_ref
from ..core.errors import InvalidInput, NotConfigured
from ..providers.rpc import RpcError
from ..services.address import is_valid_evm_address
from ..services.evm import NATIVE_DECIMALS, format_units, to_hex_quantity
from ..types.pairing import BalanceRequest, BalanceResponse
from .deps import get_balance_reader_factory, http_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rpc"])


@router.post("/rpc-balance", response_model=BalanceResponse)
async def rpc_balance(
    body: BalanceRequest,
    reader_factory: Callable[[str], Any] = Depends(get_balance_reader_factory),
) -> BalanceResponse:
    """Native balance of ``address`` on ``chainRef`` via the WalletConnect RPC gateway."""
    chain_ref = body.chain_ref.strip()
    if parse_chain_ref(chain_ref) is None:
        raise http_error(InvalidInput("Invalid chainRef", {"chainRef": body.chain_ref}))
    if not is_valid_evm_address(body.address):
        raise http_error(InvalidInput("Invalid address", {"address": body.address}))
    if not settings.has_wc_project_id:
        raise http_error(NotConfigured("WalletConnect project id is not configured"))

    reader = reader_factory(chain_ref)
    try:
        balance = await reader.get_balance(body.address)
    except (RpcError, httpx.HTTPError) as exc:
        logger.warning("Balance lookup on %s failed: %s", chain_ref, exc)
        raise HTTPException(
            status_code=502,
            detail={"error": "rpc_error", "message": str(exc) or "RPC error"},
        ) from exc
    finally:
        await reader.close()

    return BalanceResponse(
        balance_wei=to_hex_quantity(balance),
        balance_ether=format_units(balance, NATIVE_DECIMALS),
    )
