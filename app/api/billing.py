from fastapi import APIRouter, Depends, Query

from ..core.billing import BillingDispatcher
from ..core.errors import WalletBridgeError
from ..types.billing import CompleteRequest, CompleteResponse, QuoteResponse
from .deps import get_billing_dispatcher, http_error

router = APIRouter(prefix="/billing", tags=["billing"])


@router.get("/quote", response_model=QuoteResponse)
async def quote(
    action_type: str = Query(..., alias="actionType"),
    dispatcher: BillingDispatcher = Depends(get_billing_dispatcher),
) -> QuoteResponse:
    try:
        result = dispatcher.quote(action_type)
    except WalletBridgeError as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(result.to_payload())


@router.post("/complete", response_model=CompleteResponse)
async def complete(
    body: CompleteRequest,
    dispatcher: BillingDispatcher = Depends(get_billing_dispatcher),
) -> CompleteResponse:
    """Verify the payment and perform the paid on-chain action once."""
    try:
        result = await dispatcher.complete(
            body.action_type,
            body.tx_hash,
            body.player_address,
            body.details,
        )
    except WalletBridgeError as exc:
        raise http_error(exc) from exc
    return CompleteResponse.model_validate(result.to_payload())
