"""
Server-signed calls on the four game contracts.

The game server holds one signing key. Every write is built, signed and
sent under a lock so concurrent billing completions never reuse a nonce,
then awaited until mined. A reverted receipt raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from eth_account import Account
from web3 import AsyncWeb3, Web3

from ..config import settings
from ..core.billing.actions import ContractKind
from ..services.address import checksum, is_valid_evm_address
from .base import GameContracts

logger = logging.getLogger(__name__)


# Minimal ABIs: only the functions the game server calls
GAME_CURRENCY_ABI = [
    {
        "type": "function",
        "name": "mintTo",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "burnFromAccount",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "account", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
]

RESOURCE_NFT_ABI = [
    {
        "type": "function",
        "name": "mintResource",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "id", "type": "uint256"},
            {"name": "amount", "type": "uint256"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "burnResource",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "id", "type": "uint256"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
]

LAND_NFT_ABI = [
    {
        "type": "function",
        "name": "mintLand",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "ownerOf",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
]

PARCEL_STATE_ABI = [
    {
        "type": "function",
        "name": "activateBuilding",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "landId", "type": "uint256"},
            {"name": "player", "type": "address"},
            {"name": "buildingType", "type": "uint8"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "setBuildingActive",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "landId", "type": "uint256"},
            {"name": "player", "type": "address"},
            {"name": "buildingType", "type": "uint8"},
            {"name": "active", "type": "bool"},
        ],
        "outputs": [],
    },
]

CONTRACT_ABIS = {
    ContractKind.CURRENCY: GAME_CURRENCY_ABI,
    ContractKind.RESOURCE: RESOURCE_NFT_ABI,
    ContractKind.LAND: LAND_NFT_ABI,
    ContractKind.PARCEL: PARCEL_STATE_ABI,
}

CONTRACT_NAMES = {
    ContractKind.CURRENCY: "GameCurrency",
    ContractKind.RESOURCE: "ResourceNFT",
    ContractKind.LAND: "LandNFT",
    ContractKind.PARCEL: "ParcelState",
}


class ContractCallError(Exception):
    """A game contract transaction could not be sent or was reverted."""


class Web3GameContracts(GameContracts):
    """Signs and submits game contract calls with the server key."""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        addresses: Mapping[ContractKind, str],
        *,
        receipt_timeout: float = 180,
    ) -> None:
        if not rpc_url or not private_key:
            raise ValueError("rpc_url and private_key are required for contract calls")
        key = private_key if private_key.startswith("0x") else f"0x{private_key}"
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.account = Account.from_key(key)
        self.signer_address = self.account.address
        self.receipt_timeout = receipt_timeout
        self._lock = asyncio.Lock()
        self._next_nonce: Optional[int] = None
        self._chain_id: Optional[int] = None
        self._contracts: Dict[ContractKind, Any] = {}

        for kind, address in addresses.items():
            name = CONTRACT_NAMES[kind]
            if not is_valid_evm_address(address):
                logger.warning("%s address is not set or invalid; its actions are disabled", name)
                continue
            self._contracts[kind] = self.w3.eth.contract(
                address=checksum(address),
                abi=CONTRACT_ABIS[kind],
            )
            logger.info("%s contract bound at %s", name, address)

    @classmethod
    def from_settings(cls) -> "Web3GameContracts":
        return cls(
            settings.rpc_url,
            settings.private_key,
            {
                ContractKind.CURRENCY: settings.game_currency_address,
                ContractKind.RESOURCE: settings.resource_nft_address,
                ContractKind.LAND: settings.land_nft_address,
                ContractKind.PARCEL: settings.parcel_state_address,
            },
            receipt_timeout=settings.receipt_timeout_seconds,
        )

    def is_bound(self, kind: ContractKind) -> bool:
        return kind in self._contracts

    def bound_contracts(self) -> Dict[str, bool]:
        return {CONTRACT_NAMES[kind]: kind in self._contracts for kind in ContractKind}

    def _contract(self, kind: ContractKind) -> Any:
        contract = self._contracts.get(kind)
        if contract is None:
            raise ContractCallError(f"{CONTRACT_NAMES[kind]} contract not configured")
        return contract

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def mint_currency(self, player: str, units: int) -> str:
        fn = self._contract(ContractKind.CURRENCY).functions.mintTo(checksum(player), units)
        return await self._transact(fn, "GameCurrency.mintTo")

    async def burn_currency(self, player: str, units: int) -> str:
        fn = self._contract(ContractKind.CURRENCY).functions.burnFromAccount(checksum(player), units)
        return await self._transact(fn, "GameCurrency.burnFromAccount")

    async def mint_resource(self, player: str, resource_id: int, amount: int) -> str:
        fn = self._contract(ContractKind.RESOURCE).functions.mintResource(checksum(player), resource_id, amount, b"")
        return await self._transact(fn, "ResourceNFT.mintResource")

    async def burn_resource(self, player: str, resource_id: int, amount: int) -> str:
        fn = self._contract(ContractKind.RESOURCE).functions.burnResource(checksum(player), resource_id, amount)
        return await self._transact(fn, "ResourceNFT.burnResource")

    async def mint_land(self, player: str, token_id: int) -> str:
        fn = self._contract(ContractKind.LAND).functions.mintLand(checksum(player), token_id)
        return await self._transact(fn, "LandNFT.mintLand")

    async def activate_building(self, land_id: int, player: str, building_type: int) -> str:
        fn = self._contract(ContractKind.PARCEL).functions.activateBuilding(land_id, checksum(player), building_type)
        return await self._transact(fn, "ParcelState.activateBuilding")

    async def set_building_active(self, land_id: int, player: str, building_type: int, active: bool) -> str:
        fn = self._contract(ContractKind.PARCEL).functions.setBuildingActive(
            land_id, checksum(player), building_type, active
        )
        return await self._transact(fn, "ParcelState.setBuildingActive")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def land_owner(self, land_id: int) -> str:
        return await self._contract(ContractKind.LAND).functions.ownerOf(land_id).call()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _transact(self, fn: Any, label: str) -> str:
        async with self._lock:
            if self._chain_id is None:
                self._chain_id = await self.w3.eth.chain_id
            pending = await self.w3.eth.get_transaction_count(self.account.address, "pending")
            nonce = pending if self._next_nonce is None else max(pending, self._next_nonce)
            try:
                tx = await fn.build_transaction(
                    {
                        "from": self.account.address,
                        "nonce": nonce,
                        "chainId": self._chain_id,
                    }
                )
                signed = self.account.sign_transaction(tx)
                tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            except Exception:
                self._next_nonce = None
                raise
            self._next_nonce = nonce + 1

        tx_hex = Web3.to_hex(tx_hash)
        logger.info("%s submitted: %s (nonce %d)", label, tx_hex, nonce)

        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt.get("status") != 1:
            logger.error("%s reverted: %s", label, tx_hex)
            raise ContractCallError(f"{label} reverted: {tx_hex}")

        logger.info("%s confirmed in block %s: %s", label, receipt.get("blockNumber"), tx_hex)
        return tx_hex
