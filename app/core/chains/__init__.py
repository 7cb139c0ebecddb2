"""Supported networks and chain reference helpers."""

from .registry import (
    CHAIN_METADATA,
    SUPPORTED_CHAIN_REFS,
    chain_name,
    chain_ref,
    is_supported_chain_ref,
    parse_chain_ref,
    to_hex_chain_id,
)

__all__ = [
    "CHAIN_METADATA",
    "SUPPORTED_CHAIN_REFS",
    "chain_name",
    "chain_ref",
    "is_supported_chain_ref",
    "parse_chain_ref",
    "to_hex_chain_id",
]
