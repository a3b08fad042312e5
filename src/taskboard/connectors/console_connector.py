# src/taskboard/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

PROMPT = ">>> "


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class _LineReader:
    """
    Reads stdin on a daemon thread and hands lines to the event loop.

    A line is only read after the loop asks for one, so the prompt appears
    after the previous reply. The thread is never joined: when the loop is
    cancelled (Ctrl-C) it is simply abandoned inside input().
    None in the queue means EOF.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, prompt: str) -> None:
        self._loop = loop
        self._prompt = prompt
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._wanted = threading.Event()
        self._thread = threading.Thread(target=self._pump, name="console-stdin", daemon=True)

    def start(self) -> None:
        self._thread.start()

    async def readline(self) -> str | None:
        self._wanted.set()
        return await self._queue.get()

    def _deliver(self, line: str | None) -> bool:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, line)
        except RuntimeError:
            # Loop already closed; nobody is listening any more.
            return False
        return True

    def _pump(self) -> None:
        while True:
            self._wanted.wait()
            self._wanted.clear()
            try:
                line = input(self._prompt)
            except EOFError:
                self._deliver(None)
                return
            except Exception:
                logger.exception("Reading console input failed.")
                self._deliver(None)
                return
            if not self._deliver(line):
                return


async def run_console_loop(state: AppState) -> None:
    """
    Interactive REPL over the task store.

    stdin is read on a daemon thread so the event loop stays free to fire the
    debounced persist timer; every store call still happens on the loop thread.
    Cancelling the coroutine (asyncio.run turns Ctrl-C into a cancel) ends the
    loop right away without waiting for a pending input().
    """
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "taskboard"))
    logger.info("Console connector started (tasks=%d).", state.task_store.count_tasks())
    _print_ts(f"[{app_name}] Type /help for commands. Use /exit to quit.\n")

    reader = _LineReader(asyncio.get_running_loop(), PROMPT)
    reader.start()

    try:
        while True:
            raw = await reader.readline()
            if raw is None:
                logger.info("Console EOF received, exiting.")
                break

            user_input = raw.strip()
            if not user_input:
                continue

            _rewrite_prev_line(f"[{_ts_local()}] {PROMPT}{user_input}")

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                # Bare text is a quick add.
                user_input = "/add " + user_input

            try:
                reply = command_registry.handle(state, user_input)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is not None:
                _print_ts(reply)
    except asyncio.CancelledError:
        logger.info("Console interrupted, exiting.")
        print()
        raise

    logger.info("Console connector finished.")
