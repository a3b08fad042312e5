# src/taskboard/tasks/task_store.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime

from ..core.ports import KeyValueStorage
from .persist_scheduler import DEFAULT_DELAY_SECONDS, PersistScheduler
from .task_codec import as_utc, build_task, decode_tasks, encode_tasks, utc_now
from .task_models import (
    UNSET,
    CreateTaskPayload,
    FilterState,
    KanbanStatus,
    Quadrant,
    Task,
    UpdateTaskPatch,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "eisenhower-kanban-tasks"


def _by_order(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: t.order)


def _reindex(tasks: list[Task], now: datetime) -> list[Task]:
    """Rewrite `order` to match list position; tasks whose order moves get updated_at=now."""
    out: list[Task] = []
    for idx, t in enumerate(tasks):
        out.append(t if t.order == idx else replace(t, order=idx, updated_at=now))
    return out


def _apply_patch(task: Task, patch: UpdateTaskPatch, now: datetime) -> Task:
    title = task.title
    if patch.title is not UNSET:
        if not isinstance(patch.title, str) or not patch.title.strip():
            raise ValueError("title must be a non-empty string")
        title = patch.title.strip()

    description = task.description
    if patch.description is not UNSET:
        description = patch.description or ""

    quadrant = task.quadrant
    if patch.quadrant is not UNSET:
        if not isinstance(patch.quadrant, Quadrant):
            raise ValueError(f"invalid quadrant: {patch.quadrant!r}")
        quadrant = patch.quadrant

    status = task.kanban_status
    if patch.kanban_status is not UNSET:
        if not isinstance(patch.kanban_status, KanbanStatus):
            raise ValueError(f"invalid kanban status: {patch.kanban_status!r}")
        status = patch.kanban_status

    due_date = task.due_date
    if patch.due_date is not UNSET:
        if patch.due_date is not None and not isinstance(patch.due_date, datetime):
            raise ValueError(f"invalid due date: {patch.due_date!r}")
        due_date = as_utc(patch.due_date) if patch.due_date is not None else None

    return replace(
        task,
        title=title,
        description=description,
        quadrant=quadrant,
        kanban_status=status,
        due_date=due_date,
        updated_at=max(now, task.created_at),
    )


class TaskStore:
    """
    In-memory task collection with one global ordering and debounced persistence.

    The store owns the canonical list; the storage backend only mirrors it.
    Every successful mutation re-arms a single persist timer, so a burst of
    mutations results in one write of the final state.

    The debounce needs a running asyncio loop. Called from plain synchronous
    code (a script, a REPL without asyncio) there is nothing to defer onto,
    so every mutation writes through immediately: N mutations, N writes.
    Scripts that want one write per batch should run under `asyncio.run`
    and call `flush()` when done.

    Invariant after every public call: task orders are exactly 0..N-1.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        storage_key: str = STORAGE_KEY,
        persist_delay: float = DEFAULT_DELAY_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._storage = storage
        self._key = storage_key
        self._tasks: list[Task] = []
        self._initialized = False
        self._scheduler = PersistScheduler(
            self.persist_to_storage,
            delay_seconds=persist_delay,
            loop=loop,
        )

    # ---- state ----

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def persist_pending(self) -> bool:
        return self._scheduler.pending

    def count_tasks(self) -> int:
        return len(self._tasks)

    def _index_of(self, task_id: str) -> int:
        for idx, t in enumerate(self._tasks):
            if t.id == task_id:
                return idx
        return -1

    def _schedule_persist(self) -> None:
        self._scheduler.schedule()

    # ---- CRUD ----

    def add_task(self, payload: CreateTaskPayload) -> Task:
        order = max((t.order for t in self._tasks), default=-1) + 1
        task = build_task(payload, order)
        self._tasks.append(task)
        logger.debug("Task added id=%s order=%s quadrant=%s", task.id, order, task.quadrant.value)
        self._schedule_persist()
        return task

    def update_task(self, task_id: str, patch: UpdateTaskPatch) -> Task | None:
        idx = self._index_of(task_id)
        if idx == -1:
            return None

        updated = _apply_patch(self._tasks[idx], patch, utc_now())
        self._tasks[idx] = updated
        self._schedule_persist()
        return updated

    def delete_task(self, task_id: str) -> bool:
        idx = self._index_of(task_id)
        if idx == -1:
            return False

        remaining = self._tasks[:idx] + self._tasks[idx + 1 :]
        self._tasks = _reindex(remaining, utc_now())
        logger.debug("Task deleted id=%s remaining=%s", task_id, len(self._tasks))
        self._schedule_persist()
        return True

    def get_task(self, task_id: str) -> Task | None:
        idx = self._index_of(task_id)
        return None if idx == -1 else self._tasks[idx]

    # ---- ordering / queries ----

    def reorder_tasks(self, task_id: str, target_index: int) -> None:
        """
        Move a task to `target_index` in the global sequence (clamped to 0..N-1).

        Ordering is global: quadrant and status do not scope it.
        """
        idx = self._index_of(task_id)
        if idx == -1:
            return

        tasks = list(self._tasks)
        task = tasks.pop(idx)
        target = max(0, min(int(target_index), len(tasks)))
        tasks.insert(target, task)

        self._tasks = _reindex(tasks, utc_now())
        self._schedule_persist()

    def get_tasks_by_quadrant(self, quadrant: Quadrant) -> list[Task]:
        return _by_order([t for t in self._tasks if t.quadrant == quadrant])

    def get_tasks_by_status(self, status: KanbanStatus) -> list[Task]:
        return _by_order([t for t in self._tasks if t.kanban_status == status])

    def get_all_tasks(self) -> list[Task]:
        return _by_order(self._tasks)

    def filter_tasks(self, filter_state: FilterState) -> list[Task]:
        return _by_order([t for t in self._tasks if filter_state.matches(t)])

    def kanban_columns(self) -> dict[KanbanStatus, list[Task]]:
        return {status: self.get_tasks_by_status(status) for status in KanbanStatus}

    def eisenhower_matrix(self) -> dict[Quadrant, list[Task]]:
        return {quadrant: self.get_tasks_by_quadrant(quadrant) for quadrant in Quadrant}

    def update_kanban_status(self, task_id: str, status: KanbanStatus) -> Task | None:
        return self.update_task(task_id, UpdateTaskPatch(kanban_status=status))

    # ---- persistence ----

    def persist_to_storage(self) -> bool:
        """Write the full list under the storage key. Never raises; returns success."""
        try:
            payload = encode_tasks(self._tasks)
            self._storage.set(self._key, payload)
        except Exception:
            logger.exception("Failed to persist %d tasks key=%s", len(self._tasks), self._key)
            return False
        logger.debug("Persisted %d tasks key=%s", len(self._tasks), self._key)
        return True

    async def hydrate(self) -> None:
        """
        Load persisted tasks into memory (call once at start-up).

        Missing, unreadable or malformed data all leave an empty list.
        `initialized` is True afterwards in every case.
        """
        tasks: list[Task] = []
        try:
            raw = self._storage.get(self._key)
            if raw is not None:
                tasks = _by_order(decode_tasks(raw))
        except Exception:
            logger.exception("Failed to hydrate tasks key=%s; starting empty.", self._key)
            tasks = []

        if any(t.order != idx for idx, t in enumerate(tasks)):
            logger.warning("Stored task orders are not contiguous; reindexing %d tasks.", len(tasks))
            tasks = _reindex(tasks, utc_now())

        self._tasks = tasks
        self._initialized = True
        logger.info("TaskStore hydrated key=%s total=%d", self._key, len(tasks))

    def clear_storage(self) -> None:
        self._scheduler.cancel()
        try:
            self._storage.remove(self._key)
        except Exception:
            logger.exception("Failed to remove stored tasks key=%s", self._key)
        self._tasks = []
        self._initialized = True

    def flush(self) -> bool:
        """Persist now if a write is pending. Returns True if one was."""
        return self._scheduler.flush()

    def close(self) -> None:
        """Shutdown hook: write any pending changes."""
        if self.flush():
            logger.info("Flushed pending task changes on close.")

    def reset(self) -> None:
        """Testing hook: forget everything in memory, including `initialized`."""
        self._scheduler.cancel()
        self._tasks = []
        self._initialized = False
