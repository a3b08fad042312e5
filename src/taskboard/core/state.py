# src/taskboard/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_store import TaskStore
from .ports import KeyValueStorage


@dataclass
class AppState:
    # Settings object (taskboard.config.Settings or a test stand-in).
    settings: object

    storage: KeyValueStorage
    task_store: TaskStore
