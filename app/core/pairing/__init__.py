"""
Pairing Module

Wallet pairing lifecycle: create a pairing URI, track its approval,
reconcile the wallet's accounts into one active (chain, address) pair
and relay requests over the approved session.
"""

from .models import (
    ActiveAccount,
    ChainSource,
    NotificationKind,
    PairingAttempt,
    PairingStatus,
    PairingStatusResult,
    PairingTicket,
    ParsedAccount,
    WalletNotification,
    WalletSession,
)
from .reconciler import connected_chains, evm_namespace, parse_account, parse_accounts, reconcile
from .store import PairingStore
from .uri import clean_pairing_uri
from .manager import (
    ALLOWED_REQUEST_METHODS,
    NAMESPACE_METHODS,
    SessionLifecycleManager,
    build_session,
)

__all__ = [
    "ActiveAccount",
    "ChainSource",
    "NotificationKind",
    "PairingAttempt",
    "PairingStatus",
    "PairingStatusResult",
    "PairingTicket",
    "ParsedAccount",
    "WalletNotification",
    "WalletSession",
    "connected_chains",
    "evm_namespace",
    "parse_account",
    "parse_accounts",
    "reconcile",
    "PairingStore",
    "clean_pairing_uri",
    "ALLOWED_REQUEST_METHODS",
    "NAMESPACE_METHODS",
    "SessionLifecycleManager",
    "build_session",
]
