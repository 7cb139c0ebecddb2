"""Service layer helpers"""

from .address import checksum, is_valid_evm_address, is_valid_tx_hash, same_address
from .evm import NATIVE_DECIMALS, format_units, parse_quantity, parse_units, to_hex_quantity, to_token_units

__all__ = [
    "checksum",
    "is_valid_evm_address",
    "is_valid_tx_hash",
    "same_address",
    "NATIVE_DECIMALS",
    "format_units",
    "parse_quantity",
    "parse_units",
    "to_hex_quantity",
    "to_token_units",
]
