from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional

from app.core.billing.actions import ContractKind
from app.core.pairing.models import WalletNotification


@dataclass
class ConnectResult:
    """Pairing URI plus the deferred wallet approval."""
    uri: Optional[str]
    approval: Awaitable[Dict[str, Any]]


class WalletProtocolClient(ABC):
    """Sign-client side of the wallet protocol"""

    name: str = "wallet"

    @abstractmethod
    async def connect(self, optional_namespaces: Dict[str, Any]) -> ConnectResult:
        """Start a pairing; ``approval`` resolves to ``{topic, namespaces}`` or raises"""
        pass

    @abstractmethod
    async def request(self, topic: str, chain_id: str, method: str, params: List[Any]) -> Any:
        """Send a JSON-RPC request to the wallet behind ``topic``"""
        pass

    @abstractmethod
    def notifications(self) -> AsyncIterator[WalletNotification]:
        """Session update/delete events for every session of this client"""
        pass

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "unknown"}

    async def close(self) -> None:
        return None


class ChainReader(ABC):
    """Read-only JSON-RPC access; results are the raw RPC objects"""

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        pass


class GameContracts(ABC):
    """
    State-changing calls on the four game contracts.

    Every write returns the hash of the transaction after it has been
    mined successfully, and raises otherwise.
    """

    signer_address: Optional[str] = None

    @abstractmethod
    def is_bound(self, kind: ContractKind) -> bool:
        pass

    @abstractmethod
    async def mint_currency(self, player: str, units: int) -> str:
        pass

    @abstractmethod
    async def burn_currency(self, player: str, units: int) -> str:
        pass

    @abstractmethod
    async def mint_resource(self, player: str, resource_id: int, amount: int) -> str:
        pass

    @abstractmethod
    async def burn_resource(self, player: str, resource_id: int, amount: int) -> str:
        pass

    @abstractmethod
    async def mint_land(self, player: str, token_id: int) -> str:
        pass

    @abstractmethod
    async def land_owner(self, land_id: int) -> str:
        pass

    @abstractmethod
    async def activate_building(self, land_id: int, player: str, building_type: int) -> str:
        pass

    @abstractmethod
    async def set_building_active(self, land_id: int, player: str, building_type: int, active: bool) -> str:
        pass
