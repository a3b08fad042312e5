# src/taskboard/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, hydrates the task store once, then runs
the console REPL on an asyncio loop (the loop also drives debounced saves).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.task_store.close()
    except Exception:
        logger.exception("Failed to flush pending task changes.")


async def _run(state: AppState) -> None:
    await state.task_store.hydrate()

    try:
        if state.settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run. Tasks loaded: %d", state.task_store.count_tasks())
    finally:
        _shutdown(state)


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(
        log_dir=settings.data_dir,
        console_level=getattr(settings, "log_level", "INFO"),
        app_name=settings.app_name,
    )

    logger.info(
        "Starting %s (storage=%s %s, log=%s)...",
        settings.app_name,
        settings.storage_backend,
        settings.storage_path,
        log_file,
    )

    state = create_initial_state(settings=settings)
    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
