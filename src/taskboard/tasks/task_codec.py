# src/taskboard/tasks/task_codec.py

"""
Task <-> storage conversion.

The stored form is a JSON array of objects keyed in camelCase
(`kanbanStatus`, `createdAt`, ...) with ISO-8601 UTC timestamps at millisecond
precision, e.g. "2024-01-01T10:00:00.000Z". `dueDate` is omitted when a task
has none.
"""

from __future__ import annotations

import json
import secrets
import string
import time
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from .task_models import CreateTaskPayload, KanbanStatus, Quadrant, Task

_ID_PREFIX = "task_"
_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_RANDOM_LEN = 9

_REQUIRED_KEYS = ("id", "title", "description", "quadrant", "kanbanStatus", "createdAt", "updatedAt", "order")


class MalformedTaskData(ValueError):
    """Stored data does not describe a valid serialized task (list)."""


def generate_task_id() -> str:
    millis = int(time.time() * 1000)
    rand = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_RANDOM_LEN))
    return f"{_ID_PREFIX}{millis}_{rand}"


def as_utc(dt: datetime) -> datetime:
    """
    Normalize to an aware UTC datetime truncated to milliseconds.

    Naive values are taken as UTC. Millisecond precision is what the stored
    format keeps, so normalized values survive a round trip unchanged.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def utc_now() -> datetime:
    return as_utc(datetime.now(timezone.utc))


def format_timestamp(dt: datetime) -> str:
    dt = as_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(raw: Any) -> datetime:
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedTaskData(f"invalid timestamp: {raw!r}")
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise MalformedTaskData(f"invalid timestamp: {raw!r}") from e


def serialize_task(task: Task) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "quadrant": task.quadrant.value,
        "kanbanStatus": task.kanban_status.value,
        "createdAt": format_timestamp(task.created_at),
        "updatedAt": format_timestamp(task.updated_at),
        "order": task.order,
    }
    if task.due_date is not None:
        data["dueDate"] = format_timestamp(task.due_date)
    return data


def deserialize_task(data: Any) -> Task:
    if not isinstance(data, dict):
        raise MalformedTaskData(f"serialized task must be an object, got {type(data).__name__}")

    missing = [k for k in _REQUIRED_KEYS if k not in data]
    if missing:
        raise MalformedTaskData(f"serialized task is missing keys: {', '.join(missing)}")

    task_id = data["id"]
    title = data["title"]
    description = data["description"]
    if not isinstance(task_id, str) or not task_id:
        raise MalformedTaskData(f"invalid task id: {task_id!r}")
    if not isinstance(title, str) or not isinstance(description, str):
        raise MalformedTaskData(f"task {task_id}: title/description must be strings")

    try:
        quadrant = Quadrant(data["quadrant"])
        status = KanbanStatus(data["kanbanStatus"])
    except ValueError as e:
        raise MalformedTaskData(f"task {task_id}: {e}") from e

    order = data["order"]
    # bool is an int subclass; reject it explicitly.
    if isinstance(order, bool) or not isinstance(order, int):
        raise MalformedTaskData(f"task {task_id}: order must be an integer, got {order!r}")

    raw_due = data.get("dueDate")
    due_date = parse_timestamp(raw_due) if raw_due is not None else None

    return Task(
        id=task_id,
        title=title,
        description=description,
        quadrant=quadrant,
        kanban_status=status,
        created_at=parse_timestamp(data["createdAt"]),
        updated_at=parse_timestamp(data["updatedAt"]),
        order=order,
        due_date=due_date,
    )


def encode_tasks(tasks: Iterable[Task]) -> str:
    return json.dumps([serialize_task(t) for t in tasks], ensure_ascii=False)


def decode_tasks(raw: str) -> list[Task]:
    """
    Parse a stored JSON array into tasks (unsorted, as stored).

    Raises MalformedTaskData on anything that is not a list of valid
    serialized tasks with unique ids.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedTaskData(f"stored tasks are not valid JSON: {e}") from e

    if not isinstance(payload, list):
        raise MalformedTaskData(f"stored tasks must be a JSON array, got {type(payload).__name__}")

    tasks = [deserialize_task(item) for item in payload]

    seen: set[str] = set()
    for t in tasks:
        if t.id in seen:
            raise MalformedTaskData(f"duplicate task id in storage: {t.id}")
        seen.add(t.id)
    return tasks


def build_task(payload: CreateTaskPayload, order: int) -> Task:
    """Create a new task from a creation payload: fresh id, timestamps = now, status defaults to todo."""
    title = payload.title.strip() if isinstance(payload.title, str) else ""
    if not title:
        raise ValueError("title is required")
    if not isinstance(payload.quadrant, Quadrant):
        raise ValueError(f"invalid quadrant: {payload.quadrant!r}")
    if payload.kanban_status is not None and not isinstance(payload.kanban_status, KanbanStatus):
        raise ValueError(f"invalid kanban status: {payload.kanban_status!r}")

    now = utc_now()
    return Task(
        id=generate_task_id(),
        title=title,
        description=payload.description or "",
        quadrant=payload.quadrant,
        kanban_status=payload.kanban_status or KanbanStatus.TODO,
        created_at=now,
        updated_at=now,
        order=order,
        due_date=as_utc(payload.due_date) if payload.due_date is not None else None,
    )
