# tests/test_persistence.py

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from taskboard.storage.kv_store import MemoryStorage, StorageQuotaExceeded
from taskboard.tasks.task_codec import encode_tasks
from taskboard.tasks.task_models import Quadrant, UpdateTaskPatch
from taskboard.tasks.task_store import STORAGE_KEY, TaskStore

from fakes import BrokenStorage, RecordingStorage, make_payload


def test_persist_to_storage_writes_serialized_list(store: TaskStore, storage: RecordingStorage) -> None:
    store.add_task(make_payload("Persist Me"))

    assert store.persist_to_storage() is True

    stored = storage.get(STORAGE_KEY)
    assert stored is not None
    parsed = json.loads(stored)
    assert len(parsed) == 1
    assert parsed[0]["title"] == "Persist Me"
    assert parsed[0]["order"] == 0
    assert "dueDate" not in parsed[0]


@pytest.mark.asyncio
async def test_hydrate_restores_persisted_tasks(storage: RecordingStorage) -> None:
    writer = TaskStore(storage)
    writer.add_task(make_payload("Persist Me"))
    writer.persist_to_storage()
    writer.reset()

    reader = TaskStore(storage)
    await reader.hydrate()

    tasks = reader.get_all_tasks()
    assert [t.title for t in tasks] == ["Persist Me"]
    assert tasks[0].order == 0
    assert reader.initialized is True


@pytest.mark.asyncio
async def test_hydrate_round_trips_full_tasks(storage: RecordingStorage) -> None:
    writer = TaskStore(storage)
    for i, quadrant in enumerate(Quadrant):
        writer.add_task(make_payload(f"Task {i}", quadrant))
    writer.reorder_tasks(writer.get_all_tasks()[3].id, 0)
    writer.persist_to_storage()

    reader = TaskStore(storage)
    await reader.hydrate()

    assert reader.get_all_tasks() == writer.get_all_tasks()


@pytest.mark.asyncio
async def test_hydrate_on_empty_storage(store: TaskStore) -> None:
    assert store.initialized is False
    await store.hydrate()
    assert store.get_all_tasks() == []
    assert store.initialized is True


@pytest.mark.asyncio
async def test_hydrate_sorts_by_order(storage: RecordingStorage) -> None:
    source = TaskStore(MemoryStorage())
    a = source.add_task(make_payload("A"))
    b = source.add_task(make_payload("B"))
    storage.inner.set(STORAGE_KEY, encode_tasks([b, a]))

    store = TaskStore(storage)
    await store.hydrate()

    assert [t.title for t in store.get_all_tasks()] == ["A", "B"]


@pytest.mark.asyncio
async def test_hydrate_reindexes_gapped_orders(storage: RecordingStorage) -> None:
    source = TaskStore(MemoryStorage())
    tasks = [source.add_task(make_payload(f"T{i}")) for i in range(3)]
    raw = json.loads(encode_tasks(tasks))
    for item, order in zip(raw, (0, 5, 9)):
        item["order"] = order
    storage.inner.set(STORAGE_KEY, json.dumps(raw))

    store = TaskStore(storage)
    await store.hydrate()

    assert [t.order for t in store.get_all_tasks()] == [0, 1, 2]
    assert [t.title for t in store.get_all_tasks()] == ["T0", "T1", "T2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{not json", '{"tasks": []}', '[{"id": "x"}]'])
async def test_hydrate_malformed_data_is_treated_as_empty(
    storage: RecordingStorage, raw: str, caplog: pytest.LogCaptureFixture
) -> None:
    storage.inner.set(STORAGE_KEY, raw)
    store = TaskStore(storage)

    with caplog.at_level(logging.ERROR, logger="taskboard.tasks.task_store"):
        await store.hydrate()

    assert store.get_all_tasks() == []
    assert store.initialized is True
    assert "Failed to hydrate" in caplog.text


@pytest.mark.asyncio
async def test_hydrate_with_broken_storage_is_treated_as_empty() -> None:
    store = TaskStore(BrokenStorage())
    await store.hydrate()
    assert store.get_all_tasks() == []
    assert store.initialized is True


@pytest.mark.asyncio
async def test_initialized_stays_true_until_reset(storage: RecordingStorage) -> None:
    store = TaskStore(storage)
    await store.hydrate()
    store.add_task(make_payload("A"))
    store.clear_storage()
    assert store.initialized is True

    store.reset()
    assert store.initialized is False
    assert store.count_tasks() == 0


def test_persist_failure_is_logged_and_keeps_memory(caplog: pytest.LogCaptureFixture) -> None:
    store = TaskStore(BrokenStorage())

    with caplog.at_level(logging.ERROR, logger="taskboard.tasks.task_store"):
        # No running loop here, so the write happens right away and fails.
        task = store.add_task(make_payload("Survives"))

    assert store.get_all_tasks() == [task]
    assert store.persist_to_storage() is False
    assert "Failed to persist" in caplog.text


def test_persist_quota_exceeded_is_swallowed() -> None:
    storage = MemoryStorage(quota_bytes=64)
    store = TaskStore(storage)

    store.add_task(make_payload("A task whose serialized form is far larger than sixty-four bytes"))

    assert store.count_tasks() == 1
    assert storage.get(STORAGE_KEY) is None
    with pytest.raises(StorageQuotaExceeded):
        storage.set(STORAGE_KEY, "x" * 65)


def test_clear_storage(store: TaskStore, storage: RecordingStorage) -> None:
    store.add_task(make_payload("To Clear"))
    store.persist_to_storage()

    store.clear_storage()

    assert store.get_all_tasks() == []
    assert storage.get(STORAGE_KEY) is None
    assert store.initialized is True


def test_clear_storage_with_broken_backend_still_resets_memory() -> None:
    store = TaskStore(BrokenStorage())
    store.add_task(make_payload("Gone"))

    store.clear_storage()

    assert store.get_all_tasks() == []
    assert store.initialized is True


@pytest.mark.asyncio
async def test_rapid_mutations_are_debounced_into_one_write() -> None:
    storage = RecordingStorage()
    store = TaskStore(storage, persist_delay=0.5)

    store.add_task(make_payload("Task 1"))
    await asyncio.sleep(0.05)
    store.add_task(make_payload("Task 2"))

    assert storage.writes == []
    assert store.persist_pending is True

    await asyncio.sleep(0.6)

    assert len(storage.writes) == 1
    assert store.persist_pending is False
    written = json.loads(storage.writes[0][1])
    assert [t["title"] for t in written] == ["Task 1", "Task 2"]


@pytest.mark.asyncio
async def test_persist_reads_state_at_fire_time(storage: RecordingStorage) -> None:
    store = TaskStore(storage, persist_delay=0.05)
    task = store.add_task(make_payload("Temp"))

    # Each mutation re-arms the timer; the single write carries the final state.
    store.delete_task(task.id)
    store.add_task(make_payload("Final"))

    await asyncio.sleep(0.15)

    assert len(storage.writes) == 1
    assert [t["title"] for t in json.loads(storage.writes[0][1])] == ["Final"]


@pytest.mark.asyncio
async def test_unknown_id_mutations_do_not_schedule(storage: RecordingStorage) -> None:
    store = TaskStore(storage, persist_delay=0.05)

    assert store.update_task("nope", UpdateTaskPatch(title="x")) is None
    store.delete_task("nope")
    store.reorder_tasks("nope", 0)

    assert store.persist_pending is False
    await asyncio.sleep(0.1)
    assert storage.writes == []


@pytest.mark.asyncio
async def test_flush_writes_pending_changes_now(storage: RecordingStorage) -> None:
    store = TaskStore(storage, persist_delay=10.0)
    store.add_task(make_payload("Flush Me"))
    assert storage.writes == []

    assert store.flush() is True
    assert len(storage.writes) == 1
    assert store.persist_pending is False
    assert store.flush() is False


@pytest.mark.asyncio
async def test_clear_storage_cancels_pending_write(storage: RecordingStorage) -> None:
    store = TaskStore(storage, persist_delay=0.05)
    store.add_task(make_payload("Never written"))

    store.clear_storage()
    await asyncio.sleep(0.1)

    assert storage.writes == []
    assert storage.removes == [STORAGE_KEY]


@pytest.mark.asyncio
async def test_close_flushes(storage: RecordingStorage) -> None:
    store = TaskStore(storage, persist_delay=10.0)
    store.add_task(make_payload("On close"))

    store.close()

    assert [t["title"] for t in json.loads(storage.get(STORAGE_KEY) or "[]")] == ["On close"]


def test_without_event_loop_every_mutation_writes_through(storage: RecordingStorage) -> None:
    store = TaskStore(storage, persist_delay=10.0)

    first = store.add_task(make_payload("One"))
    store.add_task(make_payload("Two"))
    store.reorder_tasks(first.id, 1)

    assert len(storage.writes) == 3
    assert store.persist_pending is False
    assert [t["title"] for t in json.loads(storage.writes[-1][1])] == ["Two", "One"]


@pytest.mark.asyncio
async def test_batch_under_event_loop_is_one_write_after_flush(storage: RecordingStorage) -> None:
    store = TaskStore(storage, persist_delay=10.0)

    for i in range(5):
        store.add_task(make_payload(f"Batch {i}"))
    store.flush()

    assert len(storage.writes) == 1
