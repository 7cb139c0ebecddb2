from .pairing import (
    BalanceRequest,
    BalanceResponse,
    PairingResponse,
    PairingStatusResponse,
    SwitchNetworkRequest,
    SwitchNetworkResponse,
    WalletRequest,
    WalletRequestResponse,
)
from .billing import (
    CompleteRequest,
    CompleteResponse,
    GameActionRequest,
    GameHealthResponse,
    GameTxResponse,
    QuoteResponse,
)

__all__ = [
    "BalanceRequest",
    "BalanceResponse",
    "PairingResponse",
    "PairingStatusResponse",
    "SwitchNetworkRequest",
    "SwitchNetworkResponse",
    "WalletRequest",
    "WalletRequestResponse",
    "CompleteRequest",
    "CompleteResponse",
    "GameActionRequest",
    "GameHealthResponse",
    "GameTxResponse",
    "QuoteResponse",
]
