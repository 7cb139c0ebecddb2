"""
Tests for the in-memory pairing table and its TTL sweep.
"""

import pytest

from app.core.pairing.models import ActiveAccount, PairingAttempt, WalletSession
from app.core.pairing.store import PairingStore


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _session(topic: str = "topic-1") -> WalletSession:
    return WalletSession(
        topic=topic,
        accounts=(),
        chains=("eip155:1",),
        active=ActiveAccount(chain_ref="eip155:1", chain_id=1, address="0xabc"),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return PairingStore(ttl_seconds=600, clock=clock)


def _attempt(store, attempt_id="p1"):
    attempt = PairingAttempt(id=attempt_id, created_at=store.now(), preferred_chain_ref="eip155:1")
    store.put(attempt_id, attempt)
    return attempt


def test_put_get_delete(store):
    attempt = _attempt(store)

    assert store.get("p1") is attempt
    assert "p1" in store
    assert len(store) == 1
    assert store.delete("p1") is attempt
    assert store.get("p1") is None
    assert store.delete("p1") is None


def test_put_rejects_duplicate_id(store):
    _attempt(store)

    with pytest.raises(KeyError):
        _attempt(store)


def test_expiry_boundary(store, clock):
    attempt = _attempt(store)

    clock.advance(600)
    assert store.is_expired(attempt) is False
    clock.advance(0.001)
    assert store.is_expired(attempt) is True
    assert store.expires_at(attempt) == attempt.created_at + 600


def test_assign_session_only_once(store):
    _attempt(store)

    assert store.assign_session("p1", _session("first")) is True
    assert store.assign_session("p1", _session("second")) is False
    assert store.get("p1").session.topic == "first"


def test_assign_session_to_missing_attempt(store):
    assert store.assign_session("missing", _session()) is False


def test_replace_session_requires_approved_attempt(store):
    _attempt(store)

    assert store.replace_session("p1", _session()) is False
    store.assign_session("p1", _session("t"))
    newer = _session("t")
    assert store.replace_session("p1", newer) is True
    assert store.get("p1").session is newer


def test_find_by_topic_only_matches_approved(store):
    _attempt(store, "p1")
    _attempt(store, "p2")
    store.assign_session("p2", _session("topic-2"))

    assert store.find_by_topic("topic-2").id == "p2"
    assert store.find_by_topic("topic-1") is None


def test_sweep_removes_stale_attempts_and_notifies(store, clock):
    evicted = []
    store.add_eviction_listener(evicted.append)

    _attempt(store, "old")
    store.assign_session("old", _session("old-topic"))
    clock.advance(300)
    _attempt(store, "young")
    clock.advance(301)

    removed = store.sweep()

    assert [a.id for a in removed] == ["old"]
    assert [a.id for a in evicted] == ["old"]
    assert "old" not in store
    assert "young" in store


def test_sweep_survives_failing_listener(store, clock):
    def broken(_attempt):
        raise RuntimeError("boom")

    store.add_eviction_listener(broken)
    _attempt(store)
    clock.advance(601)

    assert len(store.sweep()) == 1
    assert len(store) == 0


@pytest.mark.asyncio
async def test_sweeper_task_start_and_stop(store):
    store.start_sweeper(interval_seconds=3600)
    store.start_sweeper(interval_seconds=3600)

    await store.stop_sweeper()
    await store.stop_sweeper()
