"""
Pairing and wallet session models.

A pairing attempt is created when the game client asks for a connection
URI and lives until it is swept, rejected, or disconnected. Once the
wallet approves, the attempt holds an immutable ``WalletSession``; every
later change (network switch, wallet notification) swaps in a new
session object so readers never see a half-updated one.
"""

import asyncio
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from app.core.chains import chain_name


class PairingStatus(str, Enum):
    """Status reported to the polling client."""
    PENDING = "pending"
    APPROVED = "approved"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


class ChainSource(str, Enum):
    """Who last set the session's active chain."""
    APPROVAL = "approval"
    OPTIMISTIC = "optimistic"   # after a successful switch request
    WALLET = "wallet"           # session_update notification


@dataclass(frozen=True)
class ParsedAccount:
    """One ``namespace:chainId:address`` entry from a wallet namespace."""
    namespace: str
    chain_id: int
    address: str

    @property
    def chain_ref(self) -> str:
        return f"{self.namespace}:{self.chain_id}"


@dataclass(frozen=True)
class ActiveAccount:
    """The (chain, address) pair the server treats as current."""
    chain_ref: str
    chain_id: int
    address: str
    all_addresses: Tuple[str, ...] = ()

    @property
    def network_name(self) -> str:
        return chain_name(self.chain_id) if self.chain_id else self.chain_ref


@dataclass(frozen=True)
class WalletSession:
    """An approved wallet connection."""
    topic: str
    accounts: Tuple[ParsedAccount, ...]
    chains: Tuple[str, ...]
    active: ActiveAccount
    version: int = 0
    source: ChainSource = ChainSource.APPROVAL

    @property
    def address(self) -> str:
        return self.active.address

    def with_active(self, active: ActiveAccount, source: ChainSource) -> "WalletSession":
        """Next version with ``active`` selected; its chain joins ``chains`` if missing."""
        chains = tuple(dict.fromkeys((*self.chains, active.chain_ref)))
        return replace(self, chains=chains, active=active, source=source, version=self.version + 1)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "address": self.active.address or None,
            "addresses": list(self.active.all_addresses),
            "chains": list(self.chains),
            "chainId": self.active.chain_id,
            "networkName": self.active.network_name,
            "selectedChainRef": self.active.chain_ref,
        }


@dataclass
class PairingAttempt:
    """A client-initiated handshake waiting for wallet approval."""
    id: str
    created_at: float
    preferred_chain_ref: str
    uri: str = ""
    session: Optional[WalletSession] = None
    approval_handle: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)

    @property
    def is_approved(self) -> bool:
        return self.session is not None


@dataclass(frozen=True)
class PairingTicket:
    """What the client gets back from ``create_pairing``."""
    id: str
    uri: str
    expires_at: float
    chain_ref: str


@dataclass(frozen=True)
class PairingStatusResult:
    status: PairingStatus
    session: Optional[WalletSession] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status.value}
        if self.session is not None:
            payload.update(self.session.to_payload())
        return payload


class NotificationKind(str, Enum):
    SESSION_UPDATE = "session_update"
    SESSION_DELETE = "session_delete"


@dataclass(frozen=True)
class WalletNotification:
    """Out-of-band event pushed by the wallet protocol for a session topic."""
    kind: NotificationKind
    topic: str
    namespace: Dict[str, Any] = field(default_factory=dict)
