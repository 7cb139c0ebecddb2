"""
Error taxonomy for the pairing and billing flows.

Every error carries a stable machine ``code`` and the HTTP status the
routers surface it with. Payment errors keep the offending values in
``details`` so the game client can show what was expected.
"""

from typing import Any, Dict, Optional


class WalletBridgeError(Exception):
    """Base class for every error the core reports to callers."""

    code: str = "wallet_bridge_error"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.details}


# Pairing / session errors
class ConnectError(WalletBridgeError):
    """The wallet protocol did not produce a pairing URI."""
    code = "connect_error"
    status_code = 502


class SessionNotFound(WalletBridgeError):
    """No approved session exists for the given topic."""
    code = "session_not_found"
    status_code = 404


class RequestTimeout(WalletBridgeError):
    """A wallet round trip exceeded its time bound."""
    code = "request_timeout"
    status_code = 504


class AddressMismatch(WalletBridgeError):
    """The request names a sender other than the session's active address."""
    code = "address_mismatch"
    status_code = 403


class InvalidInput(WalletBridgeError):
    code = "invalid_input"
    status_code = 400


class MethodNotAllowed(InvalidInput):
    """Wallet method is outside the request allow-list."""
    code = "method_not_allowed"


class WalletRequestFailed(WalletBridgeError):
    """The wallet answered a request with an error (user rejection included)."""
    code = "wallet_request_failed"
    status_code = 502


# Billing errors
class UnknownAction(WalletBridgeError):
    code = "unknown_action"
    status_code = 400


class NotConfigured(WalletBridgeError):
    """Action has no price, or the contract it needs is not bound."""
    code = "not_configured"
    status_code = 503


class PaymentReused(WalletBridgeError):
    code = "payment_reused"
    status_code = 409


class NotOwner(WalletBridgeError):
    code = "not_owner"
    status_code = 403


class OnchainCallFailed(WalletBridgeError):
    code = "onchain_call_failed"
    status_code = 502


# Payment verification errors
class PaymentError(WalletBridgeError):
    """Base for failures of the payment transaction itself."""
    status_code = 400


class TxNotFound(PaymentError):
    code = "tx_not_found"
    status_code = 404


class TxPending(PaymentError):
    """Transaction is known but not mined yet; retrying later is expected."""
    code = "tx_pending"
    status_code = 409


class TxReverted(PaymentError):
    code = "tx_reverted"


class SenderMismatch(PaymentError):
    code = "sender_mismatch"


class RecipientMismatch(PaymentError):
    code = "recipient_mismatch"


class InsufficientValue(PaymentError):
    code = "insufficient_value"
    status_code = 402


__all__ = [
    "WalletBridgeError",
    "ConnectError",
    "SessionNotFound",
    "RequestTimeout",
    "AddressMismatch",
    "InvalidInput",
    "MethodNotAllowed",
    "WalletRequestFailed",
    "UnknownAction",
    "NotConfigured",
    "PaymentReused",
    "NotOwner",
    "OnchainCallFailed",
    "PaymentError",
    "TxNotFound",
    "TxPending",
    "TxReverted",
    "SenderMismatch",
    "RecipientMismatch",
    "InsufficientValue",
]
