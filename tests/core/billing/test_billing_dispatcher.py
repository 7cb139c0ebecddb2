"""
Tests for quoting and completing paid game actions.
"""

import asyncio
import httpx
import pytest
from unittest.mock import AsyncMock

from app.core.billing import (
    BillingDispatcher,
    ConsumedPayments,
    ContractKind,
    Operation,
    PaymentVerifier,
    load_actions,
    validate_details,
)
from app.core.errors import (
    InvalidInput,
    NotConfigured,
    NotOwner,
    OnchainCallFailed,
    PaymentReused,
    RecipientMismatch,
    TxPending,
    UnknownAction,
)
from app.providers.rpc import RpcError

PLAYER = "0x52908400098527886E0F7030069857D2E4169EE7"
TREASURY = "0x8617E340B3D01FA5F11F306F4090FD50E238070D"
STRANGER = "0xde709f2102306220921060314715629080e2fb77"
TX_HASH = "0x" + "ab" * 32
ONCHAIN_HASH = "0x" + "cd" * 32

PRICES = {
    "item_nft": "0.0001",
    "resource_nft": "0.0002",
    "currency": "0.0003",
    "land": "0.0005",
    "parcelstate": "0.0004",
}


class FakeReader:
    """Chain reader returning one mined payment per hash."""

    def __init__(self, to=TREASURY, value=10**18, sender=PLAYER, receipt=True):
        self.to = to
        self.value = value
        self.sender = sender
        self.receipt = receipt

    async def get_transaction(self, tx_hash):
        await asyncio.sleep(0)
        return {"hash": tx_hash, "from": self.sender, "to": self.to, "value": hex(self.value)}

    async def get_transaction_receipt(self, tx_hash):
        await asyncio.sleep(0)
        return {"status": "0x1", "blockNumber": "0x1"} if self.receipt else None


class FakeContracts:
    signer_address = TREASURY

    def __init__(self, owner=PLAYER, bound=tuple(ContractKind)):
        self.bound = set(bound)
        self.owner = owner
        self.mint_currency = AsyncMock(return_value=ONCHAIN_HASH)
        self.burn_currency = AsyncMock(return_value=ONCHAIN_HASH)
        self.mint_resource = AsyncMock(return_value=ONCHAIN_HASH)
        self.burn_resource = AsyncMock(return_value=ONCHAIN_HASH)
        self.mint_land = AsyncMock(return_value=ONCHAIN_HASH)
        self.activate_building = AsyncMock(return_value=ONCHAIN_HASH)
        self.set_building_active = AsyncMock(return_value=ONCHAIN_HASH)
        self.land_owner = AsyncMock(side_effect=lambda _land_id: self.owner)

    def is_bound(self, kind):
        return kind in self.bound

    def writes(self):
        return [
            self.mint_currency, self.burn_currency, self.mint_resource, self.burn_resource,
            self.mint_land, self.activate_building, self.set_building_active,
        ]


def make_dispatcher(reader=None, contracts=None, prices=None, treasury=TREASURY):
    return BillingDispatcher(
        actions=load_actions(PRICES if prices is None else prices),
        verifier=PaymentVerifier(reader or FakeReader()),
        contracts=contracts if contracts is not None else FakeContracts(),
        treasury_address=treasury,
        ledger=ConsumedPayments(),
    )


# ---------------------------------------------------------------------------
# Quote
# ---------------------------------------------------------------------------


def test_quote_resource_mint():
    quote = make_dispatcher().quote("RESOURCE_NFT_MINT")

    assert quote.price_wei == 2 * 10**14
    assert quote.to_payload() == {
        "actionType": "RESOURCE_NFT_MINT",
        "priceWei": hex(2 * 10**14),
        "priceNative": "0.0002",
        "treasury": TREASURY,
    }


def test_quote_unknown_action():
    with pytest.raises(UnknownAction):
        make_dispatcher().quote("FREE_LUNCH")


@pytest.mark.parametrize("price", ["", "0", "not-a-number", "-1"])
def test_zero_or_invalid_price_is_not_configured(price):
    dispatcher = make_dispatcher(prices={**PRICES, "land": price})

    with pytest.raises(NotConfigured):
        dispatcher.quote("LAND_NFT_MINT")


def test_quote_without_treasury_is_not_configured():
    with pytest.raises(NotConfigured):
        make_dispatcher(treasury="").quote("LAND_NFT_MINT")


# ---------------------------------------------------------------------------
# Complete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_land_mint_calls_contract_and_consumes_payment():
    contracts = FakeContracts()
    dispatcher = make_dispatcher(contracts=contracts)

    result = await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})

    contracts.mint_land.assert_awaited_once_with(PLAYER, 7)
    assert result.to_payload() == {
        "ok": True,
        "actionType": "LAND_NFT_MINT",
        "paymentTxHash": TX_HASH,
        "onchainTxHash": ONCHAIN_HASH,
    }

    with pytest.raises(PaymentReused):
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 8})
    assert contracts.mint_land.await_count == 1


@pytest.mark.asyncio
async def test_reuse_is_case_insensitive_on_hash():
    dispatcher = make_dispatcher()
    await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})

    with pytest.raises(PaymentReused):
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH.upper().replace("0X", "0x"), PLAYER, {"tokenId": 7})


@pytest.mark.asyncio
async def test_concurrent_completions_dispatch_once():
    contracts = FakeContracts()
    dispatcher = make_dispatcher(contracts=contracts)

    results = await asyncio.gather(
        dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7}),
        dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7}),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], PaymentReused)
    assert contracts.mint_land.await_count == 1


@pytest.mark.asyncio
async def test_payment_to_wrong_recipient():
    dispatcher = make_dispatcher(reader=FakeReader(to=STRANGER))
    assert dispatcher.quote("RESOURCE_NFT_MINT").price_wei > 0

    with pytest.raises(RecipientMismatch):
        await dispatcher.complete("RESOURCE_NFT_MINT", TX_HASH, PLAYER, {"resourceId": 1, "amount": 1})
    assert not dispatcher.ledger.is_consumed(TX_HASH)


@pytest.mark.asyncio
async def test_pending_payment_can_be_retried_once_mined():
    reader = FakeReader(receipt=False)
    dispatcher = make_dispatcher(reader=reader)

    with pytest.raises(TxPending):
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})

    reader.receipt = True
    result = await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})
    assert result.onchain_tx_hash == ONCHAIN_HASH


@pytest.mark.asyncio
async def test_parcel_toggle_not_owner_makes_no_call():
    contracts = FakeContracts(owner=STRANGER)
    dispatcher = make_dispatcher(contracts=contracts)

    with pytest.raises(NotOwner):
        await dispatcher.complete(
            "PARCEL_SET_BUILDING_ACTIVE",
            TX_HASH,
            PLAYER,
            {"landId": 3, "buildingType": 2, "active": True},
        )

    for write in contracts.writes():
        write.assert_not_awaited()
    assert not dispatcher.ledger.is_consumed(TX_HASH)


@pytest.mark.asyncio
async def test_parcel_owner_check_is_case_insensitive():
    contracts = FakeContracts(owner=PLAYER.lower())
    dispatcher = make_dispatcher(contracts=contracts)

    await dispatcher.complete("PARCEL_ACTIVATE_BUILDING", TX_HASH, PLAYER, {"landId": 3, "buildingType": 0})

    contracts.activate_building.assert_awaited_once_with(3, PLAYER, 0)


@pytest.mark.asyncio
async def test_currency_amount_is_scaled_to_token_units():
    contracts = FakeContracts()
    dispatcher = make_dispatcher(contracts=contracts)

    await dispatcher.complete("CURRENCY_MINT", TX_HASH, PLAYER, {"amount": 10})

    contracts.mint_currency.assert_awaited_once_with(PLAYER, 10 * 10**18)


@pytest.mark.asyncio
async def test_item_actions_use_resource_contract():
    contracts = FakeContracts()
    dispatcher = make_dispatcher(contracts=contracts)

    await dispatcher.complete("ITEM_NFT_BURN", TX_HASH, PLAYER, {"resourceId": 4, "amount": 2})

    contracts.burn_resource.assert_awaited_once_with(PLAYER, 4, 2)


@pytest.mark.asyncio
async def test_failed_contract_call_keeps_payment_consumed():
    contracts = FakeContracts()
    contracts.mint_land.side_effect = RuntimeError("execution reverted")
    dispatcher = make_dispatcher(contracts=contracts)

    with pytest.raises(OnchainCallFailed):
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})

    assert dispatcher.ledger.is_consumed(TX_HASH)
    with pytest.raises(PaymentReused):
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})


class FailingReader(FakeReader):
    def __init__(self, error):
        super().__init__()
        self.error = error

    async def get_transaction(self, tx_hash):
        raise self.error


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("connection refused"),
        RpcError("header not found", -32000),
    ],
)
async def test_rpc_failure_during_verification_leaves_payment_unconsumed(error):
    contracts = FakeContracts()
    dispatcher = make_dispatcher(reader=FailingReader(error), contracts=contracts)

    with pytest.raises(OnchainCallFailed) as exc_info:
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})

    assert exc_info.value.details == {"txHash": TX_HASH}
    assert not dispatcher.ledger.is_consumed(TX_HASH)
    contracts.mint_land.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "tx_hash, player",
    [
        ("0x1234", PLAYER),
        ("ab" * 32, PLAYER),
        (TX_HASH, "0x1234"),
        (TX_HASH, "not-an-address"),
    ],
)
async def test_invalid_hash_or_player(tx_hash, player):
    with pytest.raises(InvalidInput):
        await make_dispatcher().complete("LAND_NFT_MINT", tx_hash, player, {"tokenId": 7})


@pytest.mark.asyncio
async def test_missing_contract_is_not_configured():
    dispatcher = make_dispatcher(contracts=FakeContracts(bound=[ContractKind.CURRENCY]))

    with pytest.raises(NotConfigured):
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 7})


@pytest.mark.asyncio
async def test_invalid_details_leave_payment_unconsumed():
    dispatcher = make_dispatcher()

    with pytest.raises(InvalidInput):
        await dispatcher.complete("LAND_NFT_MINT", TX_HASH, PLAYER, {"tokenId": 0})

    assert not dispatcher.ledger.is_consumed(TX_HASH)


# ---------------------------------------------------------------------------
# Details validation and direct execution
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "kind, operation, details",
    [
        (ContractKind.CURRENCY, Operation.MINT, {"amount": -1}),
        (ContractKind.CURRENCY, Operation.MINT, {"amount": "5"}),
        (ContractKind.CURRENCY, Operation.MINT, {"amount": True}),
        (ContractKind.RESOURCE, Operation.MINT, {"resourceId": 1}),
        (ContractKind.LAND, Operation.MINT, {}),
        (ContractKind.PARCEL, Operation.ACTIVATE, {"landId": 1, "buildingType": 6}),
        (ContractKind.PARCEL, Operation.TOGGLE, {"landId": 1, "buildingType": 1, "active": "yes"}),
        (ContractKind.LAND, Operation.BURN, {"tokenId": 1}),
    ],
)
def test_validate_details_rejects(kind, operation, details):
    with pytest.raises(InvalidInput):
        validate_details(kind, operation, details)


def test_validate_details_accepts_integral_floats():
    details = validate_details(ContractKind.RESOURCE, Operation.MINT, {"resourceId": 2.0, "amount": 3})

    assert details.resource_id == 2
    assert details.amount == 3


@pytest.mark.asyncio
async def test_execute_runs_without_payment():
    contracts = FakeContracts()
    dispatcher = make_dispatcher(contracts=contracts)

    tx_hash = await dispatcher.execute(
        ContractKind.PARCEL, Operation.TOGGLE, PLAYER, {"landId": 9, "buildingType": 5, "active": False}
    )

    assert tx_hash == ONCHAIN_HASH
    contracts.set_building_active.assert_awaited_once_with(9, PLAYER, 5, False)
    assert len(dispatcher.ledger) == 0
