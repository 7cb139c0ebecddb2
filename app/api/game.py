"""
Direct game operations.

Server-initiated on-chain effects without a player payment (rewards,
cash-outs, parcel management). They share the billing dispatcher's
validation, parcel ownership check and confirmation wait.
"""

import logging

from fastapi import APIRouter, Depends

from ..core.billing import BillingDispatcher, ContractKind, Operation
from ..core.errors import WalletBridgeError
from ..types.billing import GameActionRequest, GameHealthResponse, GameTxResponse
from .deps import get_billing_dispatcher, http_error, require_admin_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/game", tags=["game"])


async def _execute(
    dispatcher: BillingDispatcher,
    kind: ContractKind,
    operation: Operation,
    body: GameActionRequest,
) -> GameTxResponse:
    try:
        tx_hash = await dispatcher.execute(kind, operation, body.player_address, body.details())
    except WalletBridgeError as exc:
        logger.warning("Game %s %s for %s failed: %s", kind.value, operation.value, body.player_address, exc)
        raise http_error(exc) from exc
    return GameTxResponse(tx_hash=tx_hash)


@router.get("/health", response_model=GameHealthResponse)
async def game_health(dispatcher: BillingDispatcher = Depends(get_billing_dispatcher)) -> GameHealthResponse:
    contracts = dispatcher.contracts
    if contracts is None:
        return GameHealthResponse()
    return GameHealthResponse(
        game_server_address=contracts.signer_address,
        has_game_currency=contracts.is_bound(ContractKind.CURRENCY),
        has_resource_nft=contracts.is_bound(ContractKind.RESOURCE),
        has_land_nft=contracts.is_bound(ContractKind.LAND),
        has_parcel_state=contracts.is_bound(ContractKind.PARCEL),
    )


@router.post("/currency/mint", response_model=GameTxResponse, dependencies=[Depends(require_admin_token)])
async def currency_mint(body: GameActionRequest, dispatcher: BillingDispatcher = Depends(get_billing_dispatcher)):
    return await _execute(dispatcher, ContractKind.CURRENCY, Operation.MINT, body)


@router.post("/currency/burn", response_model=GameTxResponse, dependencies=[Depends(require_admin_token)])
async def currency_burn(body: GameActionRequest, dispatcher: BillingDispatcher = Depends(get_billing_dispatcher)):
    return await _execute(dispatcher, ContractKind.CURRENCY, Operation.BURN, body)


@router.post("/resource/mint", response_model=GameTxResponse, dependencies=[Depends(require_admin_token)])
async def resource_mint(body: GameActionRequest, dispatcher: BillingDispatcher = Depends(get_billing_dispatcher)):
    return await _execute(dispatcher, ContractKind.RESOURCE, Operation.MINT, body)


@router.post("/resource/burn", response_model=GameTxResponse, dependencies=[Depends(require_admin_token)])
async def resource_burn(body: GameActionRequest, dispatcher: BillingDispatcher = Depends(get_billing_dispatcher)):
    return await _execute(dispatcher, ContractKind.RESOURCE, Operation.BURN, body)


@router.post("/land/mint", response_model=GameTxResponse, dependencies=[Depends(require_admin_token)])
async def land_mint(body: GameActionRequest, dispatcher: BillingDispatcher = Depends(get_billing_dispatcher)):
    return await _execute(dispatcher, ContractKind.LAND, Operation.MINT, body)


@router.post(
    "/parcel/activate-building",
    response_model=GameTxResponse,
    dependencies=[Depends(require_admin_token)],
)
async def parcel_activate_building(
    body: GameActionRequest,
    dispatcher: BillingDispatcher = Depends(get_billing_dispatcher),
):
    return await _execute(dispatcher, ContractKind.PARCEL, Operation.ACTIVATE, body)


@router.post(
    "/parcel/set-building-active",
    response_model=GameTxResponse,
    dependencies=[Depends(require_admin_token)],
)
async def parcel_set_building_active(
    body: GameActionRequest,
    dispatcher: BillingDispatcher = Depends(get_billing_dispatcher),
):
    return await _execute(dispatcher, ContractKind.PARCEL, Operation.TOGGLE, body)
