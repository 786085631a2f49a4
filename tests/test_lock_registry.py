"""LockRegistry 테스트."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from cmis_gateway import LockRegistry
from cmis_gateway.exceptions import NotLocked, UpstreamError, ValidationError
from cmis_gateway.lock_registry import LOCK_TABLE_KEY, MAX_TTL_MINUTES
from cmis_gateway.models import ReleaseStatus


def _persisted(store) -> dict:
    blob = store.get(LOCK_TABLE_KEY)
    return json.loads(blob) if blob else {}


def test_acquire_then_is_locked(registry: LockRegistry):
    lock = registry.acquire("doc-1", "sysA")

    assert registry.is_locked("doc-1")
    locks = registry.get_lock("doc-1")
    assert [l.holder_id for l in locks] == ["sysA"]
    assert lock.ttl_minutes == 30
    assert (lock.expires_at - lock.acquired_at).total_seconds() == 30 * 60


def test_acquire_twice_keeps_single_entry(registry: LockRegistry, clock):
    first = registry.acquire("doc-1", "sysA", ttl_minutes=10)
    clock.advance(minutes=5)
    second = registry.acquire("doc-1", "sysA", ttl_minutes=60)

    locks = registry.get_lock("doc-1")
    assert len(locks) == 1
    assert locks[0].ttl_minutes == 60
    assert second.expires_at > first.expires_at


def test_multiple_holders_share_document(registry: LockRegistry):
    registry.acquire("doc-1", "sysA")
    registry.acquire("doc-1", "sysB")
    assert {l.holder_id for l in registry.get_lock("doc-1")} == {"sysA", "sysB"}

    assert registry.release("doc-1", "sysA") == ReleaseStatus.UNLOCKED

    remaining = registry.get_lock("doc-1")
    assert [l.holder_id for l in remaining] == ["sysB"]
    assert registry.is_locked("doc-1")


def test_release_last_holder_removes_document(registry: LockRegistry, store):
    registry.acquire("doc-1", "sysA")
    registry.release("doc-1", "sysA")

    assert not registry.is_locked("doc-1")
    assert registry.get_lock("doc-1") == []
    assert "doc-1" not in _persisted(store)


def test_release_unknown_holder_is_not_locked(registry: LockRegistry):
    registry.acquire("doc-1", "sysA")

    assert registry.release("doc-1", "sysB") == ReleaseStatus.NOT_LOCKED
    assert registry.release("doc-2", "sysA") == ReleaseStatus.NOT_LOCKED
    assert registry.is_locked("doc-1")


def test_zero_ttl_lock_expires(registry: LockRegistry, clock, store):
    registry.acquire("doc-1", "sysA", ttl_minutes=0)
    clock.advance(seconds=1)

    assert not registry.is_locked("doc-1")
    assert registry.get_lock("doc-1") == []
    assert _persisted(store) == {}


def test_expired_holder_dropped_while_others_remain(registry: LockRegistry, clock, store):
    registry.acquire("doc-1", "sysA", ttl_minutes=5)
    registry.acquire("doc-1", "sysB", ttl_minutes=60)
    clock.advance(minutes=10)

    assert [l.holder_id for l in registry.get_lock("doc-1")] == ["sysB"]
    assert list(_persisted(store)["doc-1"]) == ["sysB"]


def test_renew_extends_from_current_time(registry: LockRegistry, clock):
    registry.acquire("doc-1", "sysA", ttl_minutes=10)
    clock.advance(minutes=8)

    lock = registry.renew("doc-1", "sysA", ttl_minutes=20)

    assert (lock.expires_at - clock.now).total_seconds() == 20 * 60
    assert lock.ttl_minutes == 20
    clock.advance(minutes=15)
    assert registry.is_locked("doc-1")


def test_renew_only_touches_given_holder(registry: LockRegistry, clock):
    registry.acquire("doc-1", "sysA", ttl_minutes=10)
    registry.acquire("doc-1", "sysB", ttl_minutes=10)

    registry.renew("doc-1", "sysB", ttl_minutes=120)
    clock.advance(minutes=30)

    assert [l.holder_id for l in registry.get_lock("doc-1")] == ["sysB"]


def test_renew_without_lock_raises(registry: LockRegistry, clock):
    with pytest.raises(NotLocked):
        registry.renew("doc-1", "sysA")

    registry.acquire("doc-1", "sysA", ttl_minutes=1)
    clock.advance(minutes=2)
    with pytest.raises(NotLocked):
        registry.renew("doc-1", "sysA")


def test_force_release_removes_every_holder(registry: LockRegistry, clock, store):
    registry.acquire("doc-1", "sysA", ttl_minutes=1)
    registry.acquire("doc-1", "sysB", ttl_minutes=60)
    registry.acquire("doc-2", "sysA")
    clock.advance(minutes=5)

    result = registry.force_release("doc-1", "admin")

    assert result.unlocked_by == "admin"
    assert {l.holder_id for l in result.previous_locks} == {"sysA", "sysB"}
    assert not registry.is_locked("doc-1")
    assert registry.is_locked("doc-2")
    assert "doc-1" not in _persisted(store)


def test_force_release_unlocked_document(registry: LockRegistry):
    result = registry.force_release("doc-1", "admin")
    assert result.previous_locks == []


def test_stats(registry: LockRegistry, clock):
    registry.acquire("doc-1", "sysA", ttl_minutes=30)
    registry.acquire("doc-1", "sysB", ttl_minutes=120)
    registry.acquire("doc-2", "sysA", ttl_minutes=240)

    stats = registry.stats()

    assert stats.total_locked_documents == 2
    assert stats.per_holder_count == {"sysA": 2, "sysB": 1}
    assert [(l.document_id, l.holder_id) for l in stats.expiring_soon] == [("doc-1", "sysA")]


def test_snapshot_table_matches_stats(registry: LockRegistry, clock):
    registry.acquire("doc-1", "sysA", ttl_minutes=5)
    registry.acquire("doc-1", "sysB", ttl_minutes=120)
    registry.acquire("doc-2", "sysA", ttl_minutes=5)
    clock.advance(minutes=10)

    locks, stats = registry.snapshot()

    assert {doc: [l.holder_id for l in held] for doc, held in locks.items()} == {"doc-1": ["sysB"]}
    assert stats.total_locked_documents == len(locks)
    assert stats.per_holder_count == {"sysB": 1}


def test_table_survives_restart(store, clock):
    LockRegistry(store, clock=clock).acquire("doc-1", "sysA", ttl_minutes=45)

    reloaded = LockRegistry(store, clock=clock)

    locks = reloaded.get_lock("doc-1")
    assert len(locks) == 1
    assert locks[0].holder_id == "sysA"
    assert locks[0].ttl_minutes == 45


def test_persisted_record_format(registry: LockRegistry, store):
    registry.acquire("doc-1", "sysA", ttl_minutes=15)

    record = _persisted(store)["doc-1"]["sysA"]
    assert record["documentId"] == "doc-1"
    assert record["systemId"] == "sysA"
    assert record["timeoutMinutes"] == 15
    assert {"lockedAt", "expiresAt"} <= set(record)


def test_absent_store_is_empty_table(memory_store, clock):
    registry = LockRegistry(memory_store, clock=clock)
    assert registry.active_locks() == {}


def test_corrupt_store_raises(memory_store, clock):
    store = memory_store
    store.blobs[LOCK_TABLE_KEY] = "{not json"

    with pytest.raises(UpstreamError):
        LockRegistry(store, clock=clock)


def test_legacy_timestamps_are_read_as_utc(memory_store, clock):
    store = memory_store
    store.blobs[LOCK_TABLE_KEY] = json.dumps(
        {
            "doc-1": {
                "sysA": {
                    "documentId": "doc-1",
                    "systemId": "sysA",
                    "lockedAt": "2024-05-01 08:50:00",
                    "expiresAt": "2024-05-01 09:20:00",
                    "timeoutMinutes": 30,
                }
            }
        }
    )

    assert LockRegistry(store, clock=clock).is_locked("doc-1")


def test_store_failure_leaves_state_unchanged(memory_store, clock):
    store = memory_store
    registry = LockRegistry(store, clock=clock)
    registry.acquire("doc-1", "sysA")
    snapshot = store.blobs[LOCK_TABLE_KEY]

    def broken_put(key: str, blob: str) -> None:
        raise OSError("disk full")

    store.put = broken_put

    with pytest.raises(UpstreamError):
        registry.acquire("doc-1", "sysB")
    with pytest.raises(UpstreamError):
        registry.release("doc-1", "sysA")

    assert [l.holder_id for l in registry.get_lock("doc-1")] == ["sysA"]
    assert store.blobs[LOCK_TABLE_KEY] == snapshot


def test_reads_do_not_write_without_changes(memory_store, clock):
    store = memory_store
    registry = LockRegistry(store, clock=clock)
    registry.acquire("doc-1", "sysA")
    writes = store.writes

    registry.is_locked("doc-1")
    registry.get_lock("doc-1")
    registry.stats()

    assert store.writes == writes


@pytest.mark.parametrize(
    "document_id, holder_id",
    [("", "sysA"), ("doc-1", ""), (None, "sysA"), ("doc-1", "   ")],
)
def test_validation_before_state_change(registry: LockRegistry, store, document_id, holder_id):
    with pytest.raises(ValidationError):
        registry.acquire(document_id, holder_id)
    assert store.get(LOCK_TABLE_KEY) is None


def test_negative_ttl_rejected(registry: LockRegistry):
    with pytest.raises(ValidationError):
        registry.acquire("doc-1", "sysA", ttl_minutes=-1)


@pytest.mark.parametrize("ttl_minutes", [MAX_TTL_MINUTES + 1, 10**10])
def test_oversized_ttl_rejected(registry: LockRegistry, store, ttl_minutes):
    with pytest.raises(ValidationError):
        registry.acquire("doc-1", "sysA", ttl_minutes=ttl_minutes)
    assert store.get(LOCK_TABLE_KEY) is None


def test_oversized_ttl_rejected_on_renew(registry: LockRegistry):
    registry.acquire("doc-1", "sysA", ttl_minutes=10)

    with pytest.raises(ValidationError):
        registry.renew("doc-1", "sysA", ttl_minutes=10**10)
    assert registry.get_lock("doc-1")[0].ttl_minutes == 10


def test_max_ttl_accepted(registry: LockRegistry, clock):
    lock = registry.acquire("doc-1", "sysA", ttl_minutes=MAX_TTL_MINUTES)

    assert lock.expires_at - clock() == timedelta(minutes=MAX_TTL_MINUTES)


def test_concurrent_acquire_loses_no_holder(registry: LockRegistry, store):
    holders = [f"sys{i}" for i in range(32)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda holder: registry.acquire("doc-1", holder), holders))

    assert {l.holder_id for l in registry.get_lock("doc-1")} == set(holders)
    assert set(_persisted(store)["doc-1"]) == set(holders)
