"""
Router tests for the pairing endpoints and their legacy /wc-* aliases.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.core.errors import AddressMismatch, ConnectError, MethodNotAllowed, RequestTimeout, SessionNotFound
from app.core.pairing import (
    ActiveAccount,
    PairingStatus,
    PairingStatusResult,
    PairingTicket,
    WalletSession,
)
from app.main import create_app

ADDR = "0x52908400098527886E0F7030069857D2E4169EE7"


def _session(chain_ref="eip155:1", chain_id=1):
    return WalletSession(
        topic="topic-1",
        accounts=(),
        chains=("eip155:1", "eip155:137"),
        active=ActiveAccount(chain_ref=chain_ref, chain_id=chain_id, address=ADDR, all_addresses=(ADDR,)),
    )


@pytest.fixture
def manager():
    manager = MagicMock()
    manager.create_pairing = AsyncMock(
        return_value=PairingTicket(id="p-1", uri="wc:abc@2?relay-protocol=irn&symKey=k", expires_at=0.0, chain_ref="eip155:137")
    )
    manager.get_status = MagicMock(return_value=PairingStatusResult(PairingStatus.PENDING))
    manager.switch_network = AsyncMock(return_value=_session("eip155:137", 137))
    manager.dispatch_request = AsyncMock(return_value="0xsigned")
    return manager


@pytest.fixture
def client(manager):
    return TestClient(create_app(pairing_manager=manager))


def test_create_pairing(client, manager):
    response = client.get("/pairing", params={"preferredChain": "eip155:137"})

    assert response.status_code == 200
    assert response.json() == {
        "id": "p-1",
        "uri": "wc:abc@2?relay-protocol=irn&symKey=k",
        "expiresAt": "1970-01-01T00:00:00.000Z",
        "chainRef": "eip155:137",
    }
    manager.create_pairing.assert_awaited_once_with(["eip155:137"])


def test_legacy_wc_uri_alias(client, manager):
    response = client.get("/wc-uri", params={"chain": "eip155:56"})

    assert response.status_code == 200
    manager.create_pairing.assert_awaited_once_with(["eip155:56"])


def test_create_pairing_connect_error_is_502(client, manager):
    manager.create_pairing.side_effect = ConnectError("bridge down")

    response = client.get("/pairing")

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "connect_error"


def test_status_pending_has_no_session_fields(client, manager):
    response = client.get("/pairing/status", params={"id": "p-1"})

    assert response.status_code == 200
    assert response.json() == {"status": "pending"}
    manager.get_status.assert_called_once_with("p-1")


def test_status_approved_flattens_session(client, manager):
    manager.get_status.return_value = PairingStatusResult(PairingStatus.APPROVED, _session())

    response = client.get("/wc-status", params={"id": "p-1"})

    assert response.json() == {
        "status": "approved",
        "topic": "topic-1",
        "address": ADDR,
        "addresses": [ADDR],
        "chains": ["eip155:1", "eip155:137"],
        "chainId": 1,
        "networkName": "Ethereum Mainnet",
        "selectedChainRef": "eip155:1",
    }


def test_status_without_id_is_not_found(client, manager):
    manager.get_status.return_value = PairingStatusResult(PairingStatus.NOT_FOUND)

    response = client.get("/pairing/status")

    assert response.json() == {"status": "not_found"}


def test_switch_network(client, manager):
    response = client.post("/pairing/switch", json={"topic": "topic-1", "chainRef": "eip155:137"})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "selectedChainRef": "eip155:137", "chainId": 137}
    manager.switch_network.assert_awaited_once_with("topic-1", "eip155:137")


def test_switch_unknown_session_is_404(client, manager):
    manager.switch_network.side_effect = SessionNotFound("Session not found or not approved")

    response = client.post("/wc-switch", json={"topic": "nope", "chainRef": "eip155:137"})

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "session_not_found"


def test_switch_requires_fields(client):
    assert client.post("/pairing/switch", json={"topic": "topic-1"}).status_code == 422


def test_wallet_request(client, manager):
    response = client.post(
        "/pairing/request",
        json={"topic": "topic-1", "method": "personal_sign", "params": ["0x00", ADDR]},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True, "result": "0xsigned"}
    manager.dispatch_request.assert_awaited_once_with("topic-1", "personal_sign", ["0x00", ADDR], None)


@pytest.mark.parametrize(
    "error, status",
    [
        (AddressMismatch("Transaction 'from' must match session address"), 403),
        (MethodNotAllowed("Method not allowed or invalid"), 400),
        (RequestTimeout("Wallet request timed out"), 504),
    ],
)
def test_wallet_request_errors(client, manager, error, status):
    manager.dispatch_request.side_effect = error

    response = client.post(
        "/wc-request",
        json={"topic": "topic-1", "method": "eth_sendTransaction", "params": [{}], "chainRef": "eip155:1"},
    )

    assert response.status_code == status
    assert response.json()["detail"]["error"] == error.code


def test_missing_service_is_503():
    client = TestClient(create_app(billing_dispatcher=MagicMock()))

    response = client.get("/pairing/status", params={"id": "x"})

    assert response.status_code == 503
