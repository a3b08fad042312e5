# src/taskboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class Quadrant(StrEnum):
    """
    Eisenhower matrix quadrant.

    Layout on the matrix view:
    - URGENT_IMPORTANT: do first (top-left)
    - NOT_URGENT_IMPORTANT: schedule (top-right)
    - URGENT_NOT_IMPORTANT: delegate (bottom-left)
    - NOT_URGENT_NOT_IMPORTANT: eliminate (bottom-right)
    """

    URGENT_IMPORTANT = "urgent_important"
    NOT_URGENT_IMPORTANT = "not_urgent_important"
    URGENT_NOT_IMPORTANT = "urgent_not_important"
    NOT_URGENT_NOT_IMPORTANT = "not_urgent_not_important"

    @property
    def label(self) -> str:
        return _QUADRANT_LABELS[self]

    @classmethod
    def parse(cls, raw: str | None) -> Quadrant | None:
        """Accept enum values, q1..q4 and the action names (do/schedule/...)."""
        if not raw:
            return None
        key = raw.strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            return _QUADRANT_ALIASES.get(key)


class KanbanStatus(StrEnum):
    """Kanban workflow stage."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def parse(cls, raw: str | None) -> KanbanStatus | None:
        if not raw:
            return None
        key = raw.strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            return _STATUS_ALIASES.get(key)


_QUADRANT_LABELS = {
    Quadrant.URGENT_IMPORTANT: "Do First",
    Quadrant.NOT_URGENT_IMPORTANT: "Schedule",
    Quadrant.URGENT_NOT_IMPORTANT: "Delegate",
    Quadrant.NOT_URGENT_NOT_IMPORTANT: "Eliminate",
}

_QUADRANT_ALIASES = {
    "q1": Quadrant.URGENT_IMPORTANT,
    "do": Quadrant.URGENT_IMPORTANT,
    "q2": Quadrant.NOT_URGENT_IMPORTANT,
    "schedule": Quadrant.NOT_URGENT_IMPORTANT,
    "q3": Quadrant.URGENT_NOT_IMPORTANT,
    "delegate": Quadrant.URGENT_NOT_IMPORTANT,
    "q4": Quadrant.NOT_URGENT_NOT_IMPORTANT,
    "eliminate": Quadrant.NOT_URGENT_NOT_IMPORTANT,
}

_STATUS_LABELS = {
    KanbanStatus.TODO: "To Do",
    KanbanStatus.IN_PROGRESS: "In Progress",
    KanbanStatus.REVIEW: "Review",
    KanbanStatus.DONE: "Done",
}

_STATUS_ALIASES = {
    "doing": KanbanStatus.IN_PROGRESS,
    "wip": KanbanStatus.IN_PROGRESS,
    "inprogress": KanbanStatus.IN_PROGRESS,
}


# Marker for "field not provided" in an update patch.
UNSET: Any = object()


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str
    quadrant: Quadrant
    kanban_status: KanbanStatus

    created_at: datetime
    updated_at: datetime
    order: int

    due_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class CreateTaskPayload:
    """What a caller provides to create a task (ids/timestamps/order are assigned)."""

    title: str
    description: str
    quadrant: Quadrant
    kanban_status: KanbanStatus | None = None
    due_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class UpdateTaskPatch:
    """
    Partial update.

    Fields left as UNSET are not touched. `due_date=None` clears the due date.
    """

    title: Any = UNSET
    description: Any = UNSET
    quadrant: Any = UNSET
    kanban_status: Any = UNSET
    due_date: Any = UNSET

    def is_empty(self) -> bool:
        return all(
            v is UNSET
            for v in (self.title, self.description, self.quadrant, self.kanban_status, self.due_date)
        )


@dataclass(frozen=True, slots=True)
class FilterState:
    search: str = ""
    statuses: frozenset[KanbanStatus] = field(default_factory=frozenset)
    quadrants: frozenset[Quadrant] = field(default_factory=frozenset)

    def matches(self, task: Task) -> bool:
        if self.statuses and task.kanban_status not in self.statuses:
            return False
        if self.quadrants and task.quadrant not in self.quadrants:
            return False
        needle = self.search.strip().lower()
        if needle:
            return needle in task.title.lower() or needle in task.description.lower()
        return True
