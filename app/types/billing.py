from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class QuoteResponse(BaseModel):
    action_type: str = Field(alias="actionType")
    price_wei: str = Field(alias="priceWei", description="Price in wei as a hex quantity")
    price_native: str = Field(alias="priceNative", description="Price in native units, e.g. 0.0001")
    treasury: str = Field(description="Address the payment must be sent to")

    class Config:
        populate_by_name = True


class CompleteRequest(BaseModel):
    action_type: str = Field(alias="actionType", min_length=1)
    tx_hash: str = Field(alias="txHash", description="Payment transaction hash")
    player_address: str = Field(alias="playerAddress", description="Address that paid")
    details: Optional[Dict[str, Any]] = Field(None, description="Per-action parameters")

    class Config:
        populate_by_name = True


class CompleteResponse(BaseModel):
    ok: bool = True
    action_type: str = Field(alias="actionType")
    payment_tx_hash: str = Field(alias="paymentTxHash")
    onchain_tx_hash: str = Field(alias="onchainTxHash")

    class Config:
        populate_by_name = True


class GameActionRequest(BaseModel):
    """Body of the direct /game endpoints; which fields apply depends on the route."""

    player_address: str = Field(alias="playerAddress")
    amount: Any = None
    resource_id: Any = Field(None, alias="resourceId")
    token_id: Any = Field(None, alias="tokenId")
    land_id: Any = Field(None, alias="landId")
    building_type: Any = Field(None, alias="buildingType")
    active: Any = None

    class Config:
        populate_by_name = True

    def details(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"player_address"})


class GameTxResponse(BaseModel):
    ok: bool = True
    tx_hash: str = Field(alias="txHash")

    class Config:
        populate_by_name = True


class GameHealthResponse(BaseModel):
    ok: bool = True
    game_server_address: Optional[str] = Field(None, alias="gameServerAddress")
    has_game_currency: bool = Field(False, alias="hasGameCurrency")
    has_resource_nft: bool = Field(False, alias="hasResourceNFT")
    has_land_nft: bool = Field(False, alias="hasLandNFT")
    has_parcel_state: bool = Field(False, alias="hasParcelState")

    class Config:
        populate_by_name = True
