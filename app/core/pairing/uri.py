"""Shrink WalletConnect pairing URIs for QR codes and in-game display."""

from urllib.parse import parse_qs

DEFAULT_RELAY_PROTOCOL = "irn"


def clean_pairing_uri(raw: str) -> str:
    """Keep only ``relay-protocol`` and ``symKey`` in a ``wc:...@2?...`` URI.

    Anything not in that shape, or without a ``symKey``, is returned as is.
    """

    if not raw or not raw.startswith("wc:"):
        return raw
    left, sep, query = raw.partition("@2?")
    if not sep or not query:
        return raw

    params = parse_qs(query, keep_blank_values=True)
    sym_key = (params.get("symKey") or [""])[0]
    if not sym_key:
        return raw
    relay = (params.get("relay-protocol") or [""])[0] or DEFAULT_RELAY_PROTOCOL
    return f"{left}@2?relay-protocol={relay}&symKey={sym_key}"
