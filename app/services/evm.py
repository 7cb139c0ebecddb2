"""Unit and hex helpers for EVM quantities."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Any, Optional

NATIVE_DECIMALS = 18


def parse_quantity(value: Any) -> Optional[int]:
    """Decode a JSON-RPC quantity (``"0x1bc"``), decimal string or int.

    Returns ``None`` when the value is missing or not a number.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if not raw:
            return None
        try:
            if raw.startswith("0x"):
                return int(raw, 16) if len(raw) > 2 else 0
            return int(raw, 10)
        except ValueError:
            return None
    return None


def to_hex_quantity(value: int) -> str:
    return hex(value)


def parse_units(amount: str | Decimal | int, decimals: int = NATIVE_DECIMALS) -> int:
    """``"0.0001"`` -> ``100000000000000`` for 18 decimals; truncates extra precision.

    Raises ``ValueError`` for non-numeric or negative input.
    """

    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {amount!r}") from exc
    if not value.is_finite() or value < 0:
        raise ValueError(f"Amount must be a finite non-negative number: {amount!r}")
    scaled = value * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def format_units(value: int, decimals: int = NATIVE_DECIMALS) -> str:
    """Exact decimal rendering of a base-unit integer, without trailing zeros."""

    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10 ** decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"


def to_token_units(amount: int, decimals: int = NATIVE_DECIMALS) -> int:
    """Whole game tokens -> fixed-point contract units."""

    return int(amount) * 10 ** decimals


__all__ = [
    'NATIVE_DECIMALS',
    'parse_quantity',
    'to_hex_quantity',
    'parse_units',
    'format_units',
    'to_token_units',
]
