# src/taskboard/tasks/persist_scheduler.py

from __future__ import annotations

"""
Debounced persistence.

A tiny state machine with two states:
- idle: no timer armed
- pending: exactly one timer armed on the event loop

schedule() cancels any armed timer and arms a new one; when a timer fires
uninterrupted the callback runs once (reading whatever state exists at fire
time) and the scheduler returns to idle.
"""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 0.5


class PersistScheduler:
    def __init__(
        self,
        callback: Callable[[], object],
        *,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._callback = callback
        self._delay = max(0.0, float(delay_seconds))
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _resolve_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def schedule(self) -> None:
        self.cancel()

        loop = self._resolve_loop()
        if loop is None:
            # Synchronous callers (scripts) have no loop to defer onto.
            logger.debug("No running event loop; persisting immediately.")
            self._callback()
            return

        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """Drop the armed timer, if any. Returns True if one was pending."""
        handle = self._handle
        if handle is None:
            return False
        handle.cancel()
        self._handle = None
        return True

    def flush(self) -> bool:
        """Run a pending callback now. Returns True if something was pending."""
        if not self.cancel():
            return False
        self._callback()
        return True

    def _fire(self) -> None:
        self._handle = None
        logger.debug("Debounce elapsed (%.3fs); persisting.", self._delay)
        try:
            self._callback()
        except Exception:
            logger.exception("Scheduled persist callback failed.")
