# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskboard.core.state import AppState
from taskboard.storage.kv_store import MemoryStorage
from taskboard.tasks.task_store import TaskStore

from fakes import RecordingStorage


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="taskboard-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path / "data",
        storage_backend="sqlite",
        storage_path=tmp_path / "data" / "tasks.sqlite3",
        storage_key="eisenhower-kanban-tasks",
        persist_delay_ms=50,
        persist_delay_seconds=0.05,
    )


@pytest.fixture()
def storage() -> RecordingStorage:
    return RecordingStorage(inner=MemoryStorage())


@pytest.fixture()
def store(storage: RecordingStorage) -> TaskStore:
    """
    TaskStore over in-memory storage.

    Outside a running event loop the store persists immediately on every
    mutation; async tests get the real debounce.
    """
    return TaskStore(storage, persist_delay=0.05)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, storage: RecordingStorage) -> AppState:
    return AppState(settings=settings, storage=storage, task_store=store)
