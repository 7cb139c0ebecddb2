import pytest

from app.core.chains import (
    SUPPORTED_CHAIN_REFS,
    chain_name,
    chain_ref,
    is_supported_chain_ref,
    parse_chain_ref,
    to_hex_chain_id,
)
from app.core.pairing.uri import clean_pairing_uri


def test_supported_chains():
    assert len(SUPPORTED_CHAIN_REFS) == 10
    for ref in ("eip155:1", "eip155:56", "eip155:97", "eip155:137", "eip155:59144",
                "eip155:25", "eip155:338", "eip155:42161", "eip155:43114", "eip155:8453"):
        assert is_supported_chain_ref(ref)
    assert not is_supported_chain_ref("eip155:10")


@pytest.mark.parametrize(
    "ref, expected",
    [
        ("eip155:137", 137),
        (" eip155:1 ", 1),
        ("eip155:0", None),
        ("eip155:-1", None),
        ("eip155:0x89", None),
        ("solana:1", None),
        ("137", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_chain_ref(ref, expected):
    assert parse_chain_ref(ref) == expected


def test_chain_names_and_hex_ids():
    assert chain_name(43114) == "Avalanche C-Chain"
    assert chain_name(10) == "eip155:10"
    assert to_hex_chain_id(137) == "0x89"
    assert chain_ref(8453) == "eip155:8453"


def test_clean_uri_keeps_relay_and_sym_key():
    raw = "wc:abc123@2?expiryTimestamp=1700000000&relay-protocol=irn&symKey=deadbeef&methods=x"

    assert clean_pairing_uri(raw) == "wc:abc123@2?relay-protocol=irn&symKey=deadbeef"


def test_clean_uri_defaults_relay_protocol():
    assert clean_pairing_uri("wc:abc@2?symKey=k") == "wc:abc@2?relay-protocol=irn&symKey=k"


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "https://example.com",
        "wc:abc@2?relay-protocol=irn",
        "wc:abc@1?symKey=k",
    ],
)
def test_clean_uri_leaves_other_shapes_alone(raw):
    assert clean_pairing_uri(raw) == raw
