"""
Billing dispatcher: quote a priced action, then turn a verified payment
into exactly one on-chain effect.

Flow seen from the game client:
    1. GET /billing/quote?actionType=RESOURCE_NFT_MINT -> price + treasury
    2. the player pays the treasury through the wallet session
    3. POST /billing/complete with the payment hash and action details

``complete`` is strictly ordered: validate, reject reused payments,
verify, check parcel ownership, claim the payment, dispatch, wait for
confirmation. The claim is atomic per payment hash, so concurrent
completions of one payment dispatch at most once. A failed dispatch
keeps the payment consumed; crediting it back is an operator task.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from app.core.errors import (
    InvalidInput,
    NotConfigured,
    NotOwner,
    OnchainCallFailed,
    PaymentReused,
    UnknownAction,
    WalletBridgeError,
)
from app.services.address import is_valid_evm_address, is_valid_tx_hash, same_address
from app.services.evm import NATIVE_DECIMALS, to_hex_quantity, to_token_units

from .actions import BillingAction, ContractKind, Operation
from .ledger import ConsumedPayments
from .verifier import PaymentVerifier

if TYPE_CHECKING:
    from app.providers.base import GameContracts

logger = logging.getLogger(__name__)

MAX_BUILDING_TYPE = 5

SUPPORTED_OPERATIONS = frozenset({
    (ContractKind.CURRENCY, Operation.MINT),
    (ContractKind.CURRENCY, Operation.BURN),
    (ContractKind.RESOURCE, Operation.MINT),
    (ContractKind.RESOURCE, Operation.BURN),
    (ContractKind.LAND, Operation.MINT),
    (ContractKind.PARCEL, Operation.ACTIVATE),
    (ContractKind.PARCEL, Operation.TOGGLE),
})


@dataclass(frozen=True)
class Quote:
    action_type: str
    price_wei: int
    price_native: str
    treasury_address: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "actionType": self.action_type,
            "priceWei": to_hex_quantity(self.price_wei),
            "priceNative": self.price_native,
            "treasury": self.treasury_address,
        }


@dataclass(frozen=True)
class ActionDetails:
    """Validated per-action parameters from the client's ``details`` object."""
    amount: Optional[int] = None
    resource_id: Optional[int] = None
    token_id: Optional[int] = None
    land_id: Optional[int] = None
    building_type: Optional[int] = None
    active: Optional[bool] = None


@dataclass(frozen=True)
class CompletionResult:
    action_type: str
    payment_tx_hash: str
    onchain_tx_hash: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "actionType": self.action_type,
            "paymentTxHash": self.payment_tx_hash,
            "onchainTxHash": self.onchain_tx_hash,
        }


def _integer(details: Mapping[str, Any], key: str, *, minimum: int = 1, maximum: Optional[int] = None) -> int:
    value = details.get(key)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidInput(f"Invalid {key}", {"field": key})
    if maximum is not None and value > maximum:
        raise InvalidInput(f"Invalid {key} (must be {minimum}..{maximum})", {"field": key})
    return value


def validate_details(kind: ContractKind, operation: Operation, details: Optional[Mapping[str, Any]]) -> ActionDetails:
    """Check the fields each contract call needs; raises ``InvalidInput``."""
    if (kind, operation) not in SUPPORTED_OPERATIONS:
        raise InvalidInput(f"Unsupported {kind.value} operation {operation.value}")
    details = details if isinstance(details, Mapping) else {}

    if kind is ContractKind.CURRENCY:
        return ActionDetails(amount=_integer(details, "amount"))
    if kind is ContractKind.RESOURCE:
        return ActionDetails(
            resource_id=_integer(details, "resourceId"),
            amount=_integer(details, "amount"),
        )
    if kind is ContractKind.LAND:
        return ActionDetails(token_id=_integer(details, "tokenId"))

    land_id = _integer(details, "landId")
    building_type = _integer(details, "buildingType", minimum=0, maximum=MAX_BUILDING_TYPE)
    active = None
    if operation is Operation.TOGGLE:
        active = details.get("active")
        if not isinstance(active, bool):
            raise InvalidInput("Invalid 'active' flag (must be boolean)", {"field": "active"})
    return ActionDetails(land_id=land_id, building_type=building_type, active=active)


class BillingDispatcher:
    """Prices actions and executes them once their payment checks out."""

    def __init__(
        self,
        actions: Mapping[str, BillingAction],
        verifier: PaymentVerifier,
        contracts: Optional["GameContracts"],
        treasury_address: str,
        ledger: Optional[ConsumedPayments] = None,
        currency_decimals: int = NATIVE_DECIMALS,
    ) -> None:
        self.actions = dict(actions)
        self.verifier = verifier
        self.contracts = contracts
        self.treasury_address = treasury_address or ""
        self.ledger = ledger or ConsumedPayments()
        self.currency_decimals = currency_decimals

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_action(self, action_type: str) -> BillingAction:
        action = self.actions.get((action_type or "").strip())
        if action is None:
            raise UnknownAction("Unknown actionType", {"actionType": action_type})
        if not action.is_configured:
            raise NotConfigured(
                f"Price for {action.action_type} is not configured",
                {"actionType": action.action_type},
            )
        return action

    def _require_treasury(self) -> str:
        if not is_valid_evm_address(self.treasury_address):
            raise NotConfigured("Billing treasury address is not configured")
        return self.treasury_address

    def _require_contracts(self, kind: ContractKind) -> "GameContracts":
        contracts = self.contracts
        needed = [kind] if kind is not ContractKind.PARCEL else [ContractKind.PARCEL, ContractKind.LAND]
        if contracts is None or not all(contracts.is_bound(k) for k in needed):
            raise NotConfigured(
                "Required contract not configured on server",
                {"contracts": [k.value for k in needed]},
            )
        return contracts

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def quote(self, action_type: str) -> Quote:
        action = self.get_action(action_type)
        return Quote(
            action_type=action.action_type,
            price_wei=action.price_wei,
            price_native=action.price_native,
            treasury_address=self._require_treasury(),
        )

    async def complete(
        self,
        action_type: str,
        tx_hash: str,
        player_address: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> CompletionResult:
        action = self.get_action(action_type)
        treasury = self._require_treasury()
        contracts = self._require_contracts(action.kind)

        if not is_valid_tx_hash(tx_hash):
            raise InvalidInput("Invalid txHash", {"field": "txHash"})
        if not is_valid_evm_address(player_address):
            raise InvalidInput("Invalid playerAddress", {"field": "playerAddress"})
        parsed = validate_details(action.kind, action.operation, details)

        if self.ledger.is_consumed(tx_hash):
            raise PaymentReused("Payment tx already used", {"txHash": tx_hash})

        try:
            await self.verifier.verify(
                tx_hash,
                expected_payer=player_address,
                expected_payee=treasury,
                min_value_wei=action.price_wei,
            )
        except WalletBridgeError:
            raise
        except Exception as exc:
            logger.error("Payment %s lookup failed: %s", tx_hash, exc)
            raise OnchainCallFailed(f"Could not verify payment {tx_hash}: {exc}", {"txHash": tx_hash}) from exc

        if action.kind is ContractKind.PARCEL:
            await self._require_owner(contracts, parsed.land_id, player_address)

        if not self.ledger.claim(tx_hash):
            raise PaymentReused("Payment tx already used", {"txHash": tx_hash})

        onchain_tx_hash = await self._dispatch(contracts, action.kind, action.operation, player_address, parsed)
        logger.info(
            "Billing action %s for %s completed: payment=%s onchain=%s",
            action.action_type, player_address, tx_hash, onchain_tx_hash,
        )
        return CompletionResult(
            action_type=action.action_type,
            payment_tx_hash=tx_hash,
            onchain_tx_hash=onchain_tx_hash,
        )

    async def execute(
        self,
        kind: ContractKind,
        operation: Operation,
        player_address: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Run an on-chain game operation without a payment (server-side calls)."""
        contracts = self._require_contracts(kind)
        if not is_valid_evm_address(player_address):
            raise InvalidInput("Invalid playerAddress", {"field": "playerAddress"})
        parsed = validate_details(kind, operation, details)
        if kind is ContractKind.PARCEL:
            await self._require_owner(contracts, parsed.land_id, player_address)
        return await self._dispatch(contracts, kind, operation, player_address, parsed)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _require_owner(self, contracts: "GameContracts", land_id: int, player_address: str) -> None:
        try:
            owner = await contracts.land_owner(land_id)
        except Exception as exc:
            raise OnchainCallFailed(f"Could not read owner of land {land_id}: {exc}") from exc
        if not same_address(owner, player_address):
            raise NotOwner("Player is not owner of landId", {"landId": land_id})

    async def _dispatch(
        self,
        contracts: "GameContracts",
        kind: ContractKind,
        operation: Operation,
        player: str,
        details: ActionDetails,
    ) -> str:
        try:
            if kind is ContractKind.CURRENCY and operation is Operation.MINT:
                return await contracts.mint_currency(player, to_token_units(details.amount, self.currency_decimals))
            if kind is ContractKind.CURRENCY and operation is Operation.BURN:
                return await contracts.burn_currency(player, to_token_units(details.amount, self.currency_decimals))
            if kind is ContractKind.RESOURCE and operation is Operation.MINT:
                return await contracts.mint_resource(player, details.resource_id, details.amount)
            if kind is ContractKind.RESOURCE and operation is Operation.BURN:
                return await contracts.burn_resource(player, details.resource_id, details.amount)
            if kind is ContractKind.LAND and operation is Operation.MINT:
                return await contracts.mint_land(player, details.token_id)
            if kind is ContractKind.PARCEL and operation is Operation.ACTIVATE:
                return await contracts.activate_building(details.land_id, player, details.building_type)
            if kind is ContractKind.PARCEL and operation is Operation.TOGGLE:
                return await contracts.set_building_active(
                    details.land_id, player, details.building_type, details.active
                )
        except WalletBridgeError:
            raise
        except Exception as exc:
            logger.error("On-chain %s %s for %s failed: %s", kind.value, operation.value, player, exc)
            raise OnchainCallFailed(f"On-chain {kind.value} {operation.value} failed: {exc}") from exc

        raise InvalidInput(f"Unsupported {kind.value} operation {operation.value}")
