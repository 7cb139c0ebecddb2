"""Static registry of the EVM networks the login bridge offers to wallets."""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Optional

EIP155 = "eip155"

CHAIN_METADATA: Dict[int, Dict[str, Any]] = {
    1: {'name': 'Ethereum Mainnet'},
    56: {'name': 'BNB Chain'},
    97: {'name': 'BNB Testnet'},
    137: {'name': 'Polygon'},
    59144: {'name': 'Linea'},
    25: {'name': 'Cronos'},
    338: {'name': 'Cronos Testnet'},
    42161: {'name': 'Arbitrum One'},
    43114: {'name': 'Avalanche C-Chain'},
    8453: {'name': 'Base'},
}

SUPPORTED_CHAIN_IDS: FrozenSet[int] = frozenset(CHAIN_METADATA)
SUPPORTED_CHAIN_REFS: FrozenSet[str] = frozenset(f"{EIP155}:{cid}" for cid in CHAIN_METADATA)


def chain_ref(chain_id: int) -> str:
    """``137`` -> ``"eip155:137"``."""

    return f"{EIP155}:{chain_id}"


def parse_chain_ref(ref: Optional[str]) -> Optional[int]:
    """Return the numeric chain id of an ``eip155:<id>`` reference.

    Returns ``None`` for anything that is not a positive decimal id in the
    EVM namespace.
    """

    if not ref or not isinstance(ref, str):
        return None
    namespace, sep, raw_id = ref.strip().partition(":")
    if not sep or namespace != EIP155 or not raw_id.isdigit():
        return None
    chain_id = int(raw_id)
    return chain_id if chain_id > 0 else None


def is_supported_chain_ref(ref: Optional[str]) -> bool:
    return parse_chain_ref(ref) in SUPPORTED_CHAIN_IDS


def chain_name(chain_id: int) -> str:
    """Display name, or the raw chain reference for networks we do not list."""

    meta = CHAIN_METADATA.get(chain_id)
    return meta['name'] if meta else chain_ref(chain_id)


def to_hex_chain_id(chain_id: int) -> str:
    """Canonical hex id used by ``wallet_switchEthereumChain``."""

    return hex(chain_id)


__all__ = [
    'EIP155',
    'CHAIN_METADATA',
    'SUPPORTED_CHAIN_IDS',
    'SUPPORTED_CHAIN_REFS',
    'chain_ref',
    'parse_chain_ref',
    'is_supported_chain_ref',
    'chain_name',
    'to_hex_chain_id',
]
