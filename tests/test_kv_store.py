import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from quiz_engine.errors import TransientStorageError
from quiz_engine.models.db import KeyValueCounter, KeyValueEntry
from quiz_engine.services.kv_store import MemoryKeyValueStore, SqlKeyValueStore


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, sql_store):
    return memory_store if request.param == "memory" else sql_store


def test_set_get_delete(store) -> None:
    assert store.get("missing") is None
    store.set("k", "v1")
    assert store.get("k") == "v1"
    store.set("k", "v2")
    assert store.get("k") == "v2"
    assert store.delete("k") is True
    assert store.delete("k") is False
    assert store.get("k") is None


def test_set_if_absent_is_first_writer_wins(store) -> None:
    assert store.set_if_absent("token", "first") is True
    assert store.set_if_absent("token", "second") is False
    assert store.get("token") == "first"


def test_counters_and_values_are_separate(store) -> None:
    store.set("shared", "text")
    assert store.incr("shared") == 1
    assert store.incr("shared", 4) == 5
    assert store.get("shared") == "text"


def test_hash_counters(store) -> None:
    assert store.hgetall("stats") == {}
    store.hincrby("stats", "attempts", 1)
    store.hincrby("stats", "attempts", 2)
    store.hincrby("stats", "correct", 1)
    assert store.hgetall("stats") == {"attempts": 3, "correct": 1}


def test_concurrent_incr_loses_nothing(store) -> None:
    def _worker() -> None:
        for _ in range(25):
            store.incr("counter")

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert store.incr("counter", 0) == 200


def test_concurrent_set_if_absent_has_one_winner(store) -> None:
    wins = []
    barrier = threading.Barrier(8)

    def _worker(index: int) -> None:
        barrier.wait()
        if store.set_if_absent("claim", str(index)):
            wins.append(index)

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(wins) == 1
    assert store.get("claim") == str(wins[0])


def test_memory_store_expiry(clock) -> None:
    store = MemoryKeyValueStore(clock=clock)
    store.set("k", "v", ttl_seconds=10)
    assert store.incr("c", ttl_seconds=10) == 1
    clock.advance(5)
    assert store.get("k") == "v"
    assert store.set_if_absent("k", "other", ttl_seconds=10) is False

    clock.advance(6)
    assert store.get("k") is None
    assert store.incr("c") == 1
    assert store.set_if_absent("k", "other") is True


def test_hincrby_many_applies_batch(store) -> None:
    store.hincrby("stats", "attempts", 1)
    store.hincrby_many(
        [
            ("stats", "attempts", 1),
            ("stats", "completions", 1),
            ("stats:histogram", "90-100", 1),
            ("stats", "attempts", 1),
        ]
    )
    assert store.hgetall("stats") == {"attempts": 3, "completions": 1}
    assert store.hgetall("stats:histogram") == {"90-100": 1}


def test_sql_hincrby_many_is_all_or_nothing(
    monkeypatch: pytest.MonkeyPatch, sql_store: SqlKeyValueStore
) -> None:
    original = sql_store._bump
    calls = []

    def _flaky_bump(db, key, field, amount, ttl_seconds):
        calls.append(field)
        if len(calls) == 3:
            raise OperationalError("UPDATE kv_counters", {}, Exception("database is locked"))
        return original(db, key, field, amount, ttl_seconds)

    monkeypatch.setattr(sql_store, "_bump", _flaky_bump)
    batch = [("stats", "attempts", 1), ("stats", "completions", 1), ("stats", "correct", 1)]
    with pytest.raises(TransientStorageError):
        sql_store.hincrby_many(batch)
    assert sql_store.hgetall("stats") == {}

    sql_store.hincrby_many(batch)
    assert sql_store.hgetall("stats") == {"attempts": 1, "completions": 1, "correct": 1}


def test_memory_store_purge_expired(clock) -> None:
    store = MemoryKeyValueStore(clock=clock)
    store.set("short", "v", ttl_seconds=10)
    store.set("forever", "v")
    store.incr("window", ttl_seconds=10)
    store.incr("long-window", ttl_seconds=100)
    store.hincrby("stats", "attempts")
    assert store.purge_expired() == 0

    clock.advance(11)
    assert store.purge_expired() == 2
    assert set(store._values) == {"forever"}
    assert set(store._counters) == {"long-window"}
    assert store.hgetall("stats") == {"attempts": 1}


def test_sql_store_expiry_and_purge(sql_store: SqlKeyValueStore, sql_session_factory) -> None:
    past = datetime.now(timezone.utc) - timedelta(seconds=5)
    with sql_session_factory() as db:
        db.add(KeyValueEntry(key="old", value="v", expires_at=past))
        db.add(KeyValueEntry(key="gone", value="v", expires_at=past))
        db.add(KeyValueCounter(key="count", field="", value=7, expires_at=past))
        db.commit()

    assert sql_store.get("old") is None
    assert sql_store.set_if_absent("gone", "new", ttl_seconds=60) is True
    assert sql_store.get("gone") == "new"
    assert sql_store.incr("count") == 1

    with sql_session_factory() as db:
        db.add(KeyValueEntry(key="stale", value="v", expires_at=past))
        db.commit()
    sql_store.set("fresh", "v", ttl_seconds=60)
    assert sql_store.purge_expired() == 1
    assert sql_store.get("fresh") == "v"


def test_sql_store_maps_operational_errors() -> None:
    class BrokenSession:
        def get(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        def rollback(self) -> None:
            pass

        def close(self) -> None:
            pass

    store = SqlKeyValueStore(session_factory=BrokenSession)
    with pytest.raises(TransientStorageError) as excinfo:
        store.get("k")
    assert excinfo.value.status_code == 503
