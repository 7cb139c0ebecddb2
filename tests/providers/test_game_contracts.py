"""
Tests for the server-signed game contract writer with a stubbed chain.
"""

import pytest
from unittest.mock import AsyncMock

from eth_account import Account

from app.core.billing import ContractKind
from app.providers.contracts import ContractCallError, Web3GameContracts

KEY = "0x" + "11" * 32
LAND = "0x8617E340B3D01FA5F11F306F4090FD50E238070D"
PLAYER = "0x52908400098527886e0f7030069857d2e4169ee7"
PLAYER_CHECKSUM = "0x52908400098527886E0F7030069857D2E4169EE7"


class StubEth:
    def __init__(self, status=1):
        self.status = status
        self.sent = []

    @property
    def chain_id(self):
        async def _chain_id():
            return 1
        return _chain_id()

    async def get_transaction_count(self, address, block):
        return 5

    async def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return bytes.fromhex("ab" * 32)

    async def wait_for_transaction_receipt(self, tx_hash, timeout):
        return {"status": self.status, "blockNumber": 10}


class StubWeb3:
    def __init__(self, eth):
        self.eth = eth


class StubFunction:
    def __init__(self):
        self.build_transaction = AsyncMock(side_effect=self._build)

    @staticmethod
    async def _build(params):
        return {
            "to": LAND,
            "value": 0,
            "gas": 100_000,
            "maxFeePerGas": 2_000_000_000,
            "maxPriorityFeePerGas": 1_000_000_000,
            "data": "0x",
            **params,
        }


def _contracts(**addresses):
    mapping = {
        ContractKind.CURRENCY: "",
        ContractKind.RESOURCE: "not-an-address",
        ContractKind.LAND: LAND,
        ContractKind.PARCEL: "",
    }
    mapping.update(addresses)
    return Web3GameContracts("http://127.0.0.1:8545", KEY, mapping, receipt_timeout=5)


def test_binds_only_valid_addresses():
    contracts = _contracts()

    assert contracts.signer_address == Account.from_key(KEY).address
    assert contracts.is_bound(ContractKind.LAND)
    assert not contracts.is_bound(ContractKind.RESOURCE)
    assert contracts.bound_contracts() == {
        "GameCurrency": False,
        "ResourceNFT": False,
        "LandNFT": True,
        "ParcelState": False,
    }


def test_private_key_without_prefix():
    contracts = Web3GameContracts("http://127.0.0.1:8545", "11" * 32, {})

    assert contracts.signer_address == Account.from_key(KEY).address


def test_requires_rpc_and_key():
    with pytest.raises(ValueError):
        Web3GameContracts("", KEY, {})


@pytest.mark.asyncio
async def test_mint_land_builds_checksummed_call():
    contracts = _contracts()
    contracts._transact = AsyncMock(return_value="0x" + "cd" * 32)

    tx_hash = await contracts.mint_land(PLAYER, 7)

    fn, label = contracts._transact.await_args.args
    assert tx_hash == "0x" + "cd" * 32
    assert label == "LandNFT.mintLand"
    assert fn.fn_name == "mintLand"
    assert tuple(fn.args) == (PLAYER_CHECKSUM, 7)


@pytest.mark.asyncio
async def test_unbound_contract_raises():
    with pytest.raises(ContractCallError):
        await _contracts().mint_currency(PLAYER, 10)


@pytest.mark.asyncio
async def test_transact_signs_sends_and_tracks_nonce():
    eth = StubEth()
    contracts = _contracts()
    contracts.w3 = StubWeb3(eth)

    first_fn, second_fn = StubFunction(), StubFunction()
    first = await contracts._transact(first_fn, "LandNFT.mintLand")
    await contracts._transact(second_fn, "LandNFT.mintLand")

    assert first == "0x" + "ab" * 32
    assert len(eth.sent) == 2
    assert first_fn.build_transaction.await_args.args[0]["nonce"] == 5
    assert second_fn.build_transaction.await_args.args[0]["nonce"] == 6
    assert first_fn.build_transaction.await_args.args[0]["chainId"] == 1


@pytest.mark.asyncio
async def test_reverted_receipt_raises():
    contracts = _contracts()
    contracts.w3 = StubWeb3(StubEth(status=0))

    with pytest.raises(ContractCallError, match="reverted"):
        await contracts._transact(StubFunction(), "LandNFT.mintLand")
