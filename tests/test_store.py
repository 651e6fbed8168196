"""Tests for the filesystem-backed Record Store."""

import json
import os
import threading
from datetime import timedelta

import pytest

from proofguard.codes import Slot
from proofguard.errors import DuplicateRecordError, EmptyStoreError, NotFoundError
from proofguard.kernel.store import BASELINE_POINTER, HISTORY_INDEX, RecordStore

from conftest import START


def test_put_and_get_history(store, make_record):
    record = make_record()
    store.put(record)
    assert store.get(record.record_id) == record
    assert store.exists(record.record_id)
    assert store.list(Slot.HISTORY) == [record.record_id]


def test_put_duplicate_id_rejected(store, make_record):
    record = make_record()
    store.put(record)
    with pytest.raises(DuplicateRecordError):
        store.put(record)
    assert store.list() == [record.record_id]


def test_records_are_not_overwritten(store, make_record):
    record = make_record(proof_hash="abc123", created=START)
    impostor = make_record(proof_hash="def456", created=START)
    assert record.record_id == impostor.record_id
    store.put(record)
    with pytest.raises(DuplicateRecordError):
        store.put(impostor)
    assert store.get(record.record_id).proof_hash == "abc123"


def test_concurrent_writers_same_id_one_winner(tmp_path, make_record):
    record = make_record()
    results = []
    barrier = threading.Barrier(8)

    def writer():
        # separate store instances share only the filesystem
        local = RecordStore(tmp_path / "store")
        barrier.wait()
        try:
            local.put(record)
            results.append("ok")
        except DuplicateRecordError:
            results.append("dup")

    threads = [threading.Thread(target=writer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("dup") == 7
    assert RecordStore(tmp_path / "store").get(record.record_id) == record


def test_concurrent_writers_distinct_ids(store, make_record):
    records = [make_record() for _ in range(16)]
    threads = [threading.Thread(target=store.put, args=(r,)) for r in records]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(store.list()) == sorted(r.record_id for r in records)


def test_get_missing_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.get("nope-20261019T120000000000Z")


@pytest.mark.parametrize("record_id", ["../escape", "", ".hidden", "a/b"])
def test_get_rejects_unsafe_ids(store, record_id):
    with pytest.raises(NotFoundError):
        store.get(record_id)
    assert store.exists(record_id) is False


def test_latest_on_empty_store_raises(store):
    with pytest.raises(EmptyStoreError):
        store.latest()
    with pytest.raises(EmptyStoreError):
        store.baseline()
    with pytest.raises(EmptyStoreError):
        store.latest(Slot.BASELINE)


def test_latest_orders_by_timestamp_not_insertion(store, make_record):
    newer = make_record(created=START + timedelta(hours=1))
    older = make_record(created=START)
    store.put(newer)
    store.put(older)
    assert store.latest() == newer


def test_latest_breaks_timestamp_ties_by_insertion(store, make_record):
    first = make_record(label="a", created=START)
    second = make_record(label="b", created=START)
    store.put(first)
    store.put(second)
    assert store.latest() == second


def test_baseline_put_swaps_pointer_and_keeps_history(store, make_record):
    old = make_record(proof_hash="abc123")
    new = make_record(proof_hash="abc123")
    store.put(old, Slot.BASELINE)
    store.put(new, "baseline")

    assert store.baseline() == new
    assert store.list(Slot.BASELINE) == [new.record_id]
    assert store.list(Slot.HISTORY) == [old.record_id, new.record_id]
    assert store.get(old.record_id) == old
    pointer = json.loads((store.root / BASELINE_POINTER).read_text(encoding="utf-8"))
    assert pointer == {"record_id": new.record_id}


def test_baseline_put_same_record_twice_rejected(store, make_record):
    record = make_record()
    store.put(record, Slot.BASELINE)
    with pytest.raises(DuplicateRecordError):
        store.put(record, Slot.BASELINE)


def test_baseline_put_of_history_record_does_not_duplicate_index(store, make_record):
    record = make_record()
    store.put(record)
    store.put(record, Slot.BASELINE)
    assert store.list() == [record.record_id]
    assert store.baseline() == record


def test_promote_existing_record(store, make_record):
    baseline = make_record()
    candidate = make_record()
    store.put(baseline, Slot.BASELINE)
    store.put(candidate)
    assert store.promote(candidate.record_id) == candidate
    assert store.baseline() == candidate


def test_promote_missing_record(store):
    with pytest.raises(NotFoundError):
        store.promote("missing-20261019T120000000000Z")


def test_list_and_get_are_idempotent(store, make_record):
    for _ in range(5):
        store.put(make_record())
    first = {record_id: store.get(record_id) for record_id in store.list()}
    second = {record_id: store.get(record_id) for record_id in store.list()}
    assert first == second
    assert len(first) == 5


def test_list_ignores_blank_index_lines(store, make_record):
    record = make_record()
    store.put(record)
    with open(store.root / HISTORY_INDEX, "a", encoding="utf-8") as f:
        f.write("\n\n")
    assert store.list() == [record.record_id]


def test_store_reopens_existing_root(tmp_path, make_record):
    record = make_record()
    RecordStore(tmp_path / "store").put(record, Slot.BASELINE)
    reopened = RecordStore(tmp_path / "store")
    assert reopened.baseline() == record


def test_no_temp_files_left_behind(store, make_record):
    store.put(make_record())
    store.put(make_record(), Slot.BASELINE)
    leftovers = [p.name for p in store.root.rglob(".tmp-*")]
    assert leftovers == []


def test_prune_deletes_old_history(store, make_record):
    old = make_record(created=START)
    recent = make_record(created=START + timedelta(days=10))
    store.put(old)
    store.put(recent)

    deleted = store.prune(timedelta(days=5), now=START + timedelta(days=11))

    assert deleted == [old.record_id]
    assert store.list() == [recent.record_id]
    assert not store.exists(old.record_id)


def test_prune_keeps_baseline_by_default(store, make_record):
    baseline = make_record(created=START)
    store.put(baseline, Slot.BASELINE)
    assert store.prune(timedelta(days=1), now=START + timedelta(days=30)) == []
    assert store.baseline() == baseline


def test_prune_can_remove_baseline(store, make_record):
    baseline = make_record(created=START)
    store.put(baseline, Slot.BASELINE)
    deleted = store.prune(timedelta(days=1), now=START + timedelta(days=30), keep_baseline=False)
    assert deleted == [baseline.record_id]
    assert store.list(Slot.BASELINE) == []
    with pytest.raises(EmptyStoreError):
        store.baseline()


def test_invalid_slot_rejected(store, make_record):
    with pytest.raises(ValueError):
        store.put(make_record(), "candidates")


@pytest.mark.skipif(os.name == "nt", reason="flock is unavailable on Windows")
def test_writers_on_separate_handles_are_serialized(store, make_record):
    other = RecordStore(store.root)
    record = make_record()

    with store._exclusive():
        writer = threading.Thread(target=other.put, args=(record,))
        writer.start()
        writer.join(timeout=0.2)
        assert writer.is_alive()
        assert store.list() == []

    writer.join(timeout=5)
    assert not writer.is_alive()
    assert store.list() == [record.record_id]


@pytest.mark.skipif(os.name == "nt", reason="flock is unavailable on Windows")
def test_prune_does_not_lose_concurrent_appends(store, make_record):
    old = [make_record(created=START - timedelta(days=30, seconds=i)) for i in range(20)]
    for record in old:
        store.put(record)
    fresh = [make_record(label="candidate") for _ in range(20)]

    # a second handle stands in for another process appending to the same root
    appender = RecordStore(store.root)
    threads = [threading.Thread(target=appender.put, args=(record,)) for record in fresh]
    for thread in threads:
        thread.start()
    deleted = store.prune(timedelta(days=7), now=START)
    for thread in threads:
        thread.join()

    assert sorted(deleted) == sorted(record.record_id for record in old)
    assert sorted(store.list()) == sorted(record.record_id for record in fresh)
