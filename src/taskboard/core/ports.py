# src/taskboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

TaskStore depends on a storage Protocol instead of a concrete backend, so
SQLite, JSON-file and in-memory backends (and test fakes) are interchangeable.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorage(Protocol):
    """
    Synchronous string key-value storage (localStorage-shaped).

    Implementations may raise on any call (quota, I/O, corruption);
    callers are expected to catch and degrade.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...
