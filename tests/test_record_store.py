# FILE: tests/test_record_store.py

import os
import threading
import time

import pytest
from daily_quiz.errors import ConflictRetryExhausted, StoreUnavailable
from daily_quiz.services.record_store import InMemoryRecordStore, JsonFileRecordStore


@pytest.fixture(params=["file", "memory"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryRecordStore()
    return JsonFileRecordStore(str(tmp_path / "records"), max_retries=500, retry_backoff_ms=1)


def test_create_if_absent_keeps_first_writer(store):
    first, created = store.create_if_absent("schedule", "2025-03-01", {"question_id": "a"})
    second, created_again = store.create_if_absent("schedule", "2025-03-01", {"question_id": "b"})

    assert created and not created_again
    assert first == second == {"question_id": "a"}
    assert store.get("schedule", "2025-03-01") == {"question_id": "a"}


def test_update_creates_and_mutates(store):
    assert store.update("counters", "c", lambda current: {"n": 1}) == {"n": 1}
    assert store.update("counters", "c", lambda current: {"n": current["n"] + 1}) == {"n": 2}
    assert store.get("counters", "c") == {"n": 2}


def test_update_returning_none_leaves_record(store):
    assert store.update("counters", "missing", lambda current: None) is None
    store.create_if_absent("counters", "c", {"n": 5})

    assert store.update("counters", "c", lambda current: None) == {"n": 5}


def test_mutator_gets_private_copy(store):
    store.create_if_absent("docs", "d", {"items": [1]})

    def mutate(current):
        current["items"].append(2)
        return None

    store.update("docs", "d", mutate)
    assert store.get("docs", "d") == {"items": [1]}


def test_items_lists_keys(store):
    store.create_if_absent("schedule", "2025-03-02", {"v": 2})
    store.create_if_absent("schedule", "2025-03-01", {"v": 1})

    assert sorted(key for key, _ in store.items("schedule")) == ["2025-03-01", "2025-03-02"]
    assert store.items("empty") == []


def test_concurrent_updates_lose_nothing(store):
    def worker():
        for _ in range(10):
            store.update("counters", "shared", lambda c: {"n": (c or {"n": 0})["n"] + 1})

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.get("counters", "shared") == {"n": 40}


def test_retries_exhausted_when_writers_keep_winning(tmp_path):
    base = str(tmp_path / "records")
    store = JsonFileRecordStore(base, max_retries=2, retry_backoff_ms=1)
    rival = JsonFileRecordStore(base)
    store.create_if_absent("counters", "c", {"n": 0})

    def mutate(current):
        rival.update("counters", "c", lambda c: {"n": c["n"] + 1})
        return {"n": -1}

    with pytest.raises(ConflictRetryExhausted) as exc_info:
        store.update("counters", "c", mutate)

    assert exc_info.value.retryable
    assert store.get("counters", "c") == {"n": 2}


def test_stale_lock_is_broken(tmp_path):
    store = JsonFileRecordStore(str(tmp_path / "records"), retry_backoff_ms=1, lock_timeout_seconds=5)
    store.create_if_absent("counters", "c", {"n": 0})

    lock_path = store._path("counters", "c").with_suffix(".lock")
    lock_path.write_text("12345")
    old = time.time() - 60
    os.utime(lock_path, (old, old))

    assert store.update("counters", "c", lambda c: {"n": c["n"] + 1}) == {"n": 1}
    assert not lock_path.exists()


def test_held_lock_blocks_writers(tmp_path):
    store = JsonFileRecordStore(str(tmp_path / "records"), max_retries=2, retry_backoff_ms=1)
    store.create_if_absent("counters", "c", {"n": 0})
    store._path("counters", "c").with_suffix(".lock").write_text("12345")

    with pytest.raises(ConflictRetryExhausted):
        store.update("counters", "c", lambda c: {"n": 1})
    assert store.get("counters", "c") == {"n": 0}


def test_corrupt_record_is_store_unavailable(tmp_path):
    store = JsonFileRecordStore(str(tmp_path / "records"))
    store._path("progress", "player:p1").write_text("{broken", encoding="utf-8")

    with pytest.raises(StoreUnavailable):
        store.get("progress", "player:p1")
