"""Helpers for validating and comparing EVM addresses and transaction hashes."""

from __future__ import annotations

import re
from typing import Any, Optional

from eth_utils import is_address, to_checksum_address

_TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")


def is_valid_evm_address(address: Any) -> bool:
    """Hex address with a valid checksum when mixed-case (EIP-55)."""

    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    return bool(is_address(address))


def is_valid_tx_hash(tx_hash: Any) -> bool:
    return isinstance(tx_hash, str) and bool(_TX_HASH_RE.fullmatch(tx_hash))


def same_address(left: Optional[str], right: Optional[str]) -> bool:
    """Case-insensitive comparison; empty values never match."""

    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def checksum(address: str) -> str:
    return to_checksum_address(address)


__all__ = [
    "is_valid_evm_address",
    "is_valid_tx_hash",
    "same_address",
    "checksum",
]
