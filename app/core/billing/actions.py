"""
Billing action table.

Each action type maps to a native-currency price and the on-chain
operation it pays for. Prices are read from settings once; a missing or
unparsable price loads as zero, which makes the action unquotable
rather than free.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Tuple

from app.services.evm import NATIVE_DECIMALS, format_units, parse_units

logger = logging.getLogger(__name__)


class ContractKind(str, Enum):
    """Which game contract an action targets."""
    CURRENCY = "CURRENCY"   # GameCurrency ERC-20
    RESOURCE = "RESOURCE"   # ResourceNFT ERC-1155 (resources and items)
    LAND = "LAND"           # LandNFT ERC-721
    PARCEL = "PARCEL"       # ParcelState


class Operation(str, Enum):
    MINT = "MINT"
    BURN = "BURN"
    ACTIVATE = "ACTIVATE"   # build / activate a building on a parcel
    TOGGLE = "TOGGLE"       # switch an existing building on or off


@dataclass(frozen=True)
class BillingAction:
    action_type: str
    kind: ContractKind
    operation: Operation
    price_wei: int
    price_key: str

    @property
    def is_configured(self) -> bool:
        return self.price_wei > 0

    @property
    def price_native(self) -> str:
        return format_units(self.price_wei, NATIVE_DECIMALS)


# action type -> (contract kind, operation, price setting suffix)
ACTION_DEFINITIONS: Dict[str, Tuple[ContractKind, Operation, str]] = {
    "ITEM_NFT_MINT": (ContractKind.RESOURCE, Operation.MINT, "item_nft"),
    "ITEM_NFT_BURN": (ContractKind.RESOURCE, Operation.BURN, "item_nft"),
    "RESOURCE_NFT_MINT": (ContractKind.RESOURCE, Operation.MINT, "resource_nft"),
    "RESOURCE_NFT_BURN": (ContractKind.RESOURCE, Operation.BURN, "resource_nft"),
    "CURRENCY_MINT": (ContractKind.CURRENCY, Operation.MINT, "currency"),
    "CURRENCY_BURN": (ContractKind.CURRENCY, Operation.BURN, "currency"),
    "LAND_NFT_MINT": (ContractKind.LAND, Operation.MINT, "land"),
    "PARCEL_ACTIVATE_BUILDING": (ContractKind.PARCEL, Operation.ACTIVATE, "parcelstate"),
    "PARCEL_SET_BUILDING_ACTIVE": (ContractKind.PARCEL, Operation.TOGGLE, "parcelstate"),
}


def parse_native_price(raw: str, name: str) -> int:
    """Native-unit decimal string -> wei; 0 (with a warning) when unusable."""
    raw = (raw or "").strip()
    if not raw:
        logger.warning("Billing price %s is not set; actions using it are disabled", name)
        return 0
    try:
        return parse_units(raw, NATIVE_DECIMALS)
    except ValueError:
        logger.warning("Could not parse billing price %s=%r; actions using it are disabled", name, raw)
        return 0


def load_actions(prices: Mapping[str, str]) -> Dict[str, BillingAction]:
    """Build the action table from ``{price_key: native decimal string}``."""
    parsed: Dict[str, int] = {}
    actions: Dict[str, BillingAction] = {}
    for action_type, (kind, operation, price_key) in ACTION_DEFINITIONS.items():
        if price_key not in parsed:
            parsed[price_key] = parse_native_price(prices.get(price_key, ""), f"price_native_{price_key}")
        actions[action_type] = BillingAction(
            action_type=action_type,
            kind=kind,
            operation=operation,
            price_wei=parsed[price_key],
            price_key=price_key,
        )
    return actions


def load_actions_from_settings(settings) -> Dict[str, BillingAction]:
    keys = {price_key for _, _, price_key in ACTION_DEFINITIONS.values()}
    return load_actions({key: settings.price_source(key) for key in keys})
