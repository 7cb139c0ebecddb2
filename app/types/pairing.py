from typing import Any, List, Optional

from pydantic import BaseModel, Field


class PairingResponse(BaseModel):
    id: str = Field(description="Pairing id to poll with")
    uri: str = Field(description="Connection URI for the wallet (QR / deep link)")
    expires_at: str = Field(alias="expiresAt", description="ISO-8601 expiry of the pairing")
    chain_ref: str = Field(alias="chainRef", description="Chain requested from the wallet")

    class Config:
        populate_by_name = True


class PairingStatusResponse(BaseModel):
    """Status of a pairing; session fields are present once approved."""

    status: str = Field(description="pending, approved, expired or not_found")
    topic: Optional[str] = Field(None, description="Session topic")
    address: Optional[str] = Field(None, description="Active account address")
    addresses: Optional[List[str]] = Field(None, description="All addresses the wallet shared")
    chains: Optional[List[str]] = Field(None, description="Connected chain refs")
    chain_id: Optional[int] = Field(None, alias="chainId", description="Active chain id")
    network_name: Optional[str] = Field(None, alias="networkName")
    selected_chain_ref: Optional[str] = Field(None, alias="selectedChainRef")

    class Config:
        populate_by_name = True


class SwitchNetworkRequest(BaseModel):
    topic: str = Field(min_length=1, description="Session topic")
    chain_ref: str = Field(alias="chainRef", min_length=1, description="Target chain, e.g. eip155:137")

    class Config:
        populate_by_name = True


class SwitchNetworkResponse(BaseModel):
    ok: bool = True
    selected_chain_ref: str = Field(alias="selectedChainRef")
    chain_id: int = Field(alias="chainId")

    class Config:
        populate_by_name = True


class WalletRequest(BaseModel):
    topic: str = Field(min_length=1, description="Session topic")
    method: str = Field(description="Allow-listed wallet method")
    params: Any = Field(None, description="JSON-RPC params array")
    chain_ref: Optional[str] = Field(None, alias="chainRef", description="Chain to address; defaults to the active one")

    class Config:
        populate_by_name = True


class WalletRequestResponse(BaseModel):
    ok: bool = True
    result: Any = None


class BalanceRequest(BaseModel):
    chain_ref: str = Field(alias="chainRef", min_length=1)
    address: str = Field(min_length=1)

    class Config:
        populate_by_name = True


class BalanceResponse(BaseModel):
    balance_wei: str = Field(alias="balanceWei", description="Hex quantity")
    balance_ether: str = Field(alias="balanceEther", description="Decimal native units")

    class Config:
        populate_by_name = True
