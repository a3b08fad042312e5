# src/taskboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the storage backend and wires it into a TaskStore inside AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.ports import KeyValueStorage
from ..core.state import AppState
from ..storage.kv_store import JsonFileStorage, MemoryStorage, SqliteStorage
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.storage_path).parent.mkdir(parents=True, exist_ok=True)


def build_storage(settings) -> KeyValueStorage:
    backend = str(getattr(settings, "storage_backend", "sqlite")).lower()
    path = Path(settings.storage_path)

    if backend == "memory":
        logger.warning("Using in-memory storage: tasks will not survive a restart.")
        return MemoryStorage()
    if backend == "json":
        return JsonFileStorage(path)
    if backend != "sqlite":
        logger.warning("Unknown storage backend %r; falling back to sqlite.", backend)
    return SqliteStorage(path)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().

    The returned store is not hydrated yet; the caller awaits `task_store.hydrate()`.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    storage = build_storage(settings)
    task_store = TaskStore(
        storage,
        storage_key=settings.storage_key,
        persist_delay=settings.persist_delay_seconds,
    )
    return AppState(settings=settings, storage=storage, task_store=task_store)
