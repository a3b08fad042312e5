# src/taskboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Background persistence: debounce fires and backend I/O. Console shows WARNING+.
_QUIET_PREFIXES = (
    "taskboard.tasks.persist_scheduler",
    "taskboard.storage.",
)

# Per-mutation debug lines ("Task added", "Persisted N tasks") go to the file only.
_FILE_ONLY_DEBUG = ("taskboard.tasks.task_store",)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable while tasks are being edited:
    - taskboard logs pass, except the persistence machinery (WARNING+)
    - task store debug chatter never reaches the console (INFO+)
    - persist/hydrate failures (ERROR from the task store) always pass
    - Python warnings and third-party noise only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("taskboard."):
            if name.startswith(_QUIET_PREFIXES):
                return record.levelno >= logging.WARNING
            if name.startswith(_FILE_ONLY_DEBUG):
                return record.levelno >= logging.INFO
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        return record.levelno >= logging.ERROR


class _ConsoleLevelGate(logging.Filter):
    """
    Console handler level, except that task store errors bypass it.

    A failed save means edits may be lost on restart, so the user sees it
    even when the console is set to CRITICAL.
    """

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= self.level:
            return True
        return record.name.startswith(_FILE_ONLY_DEBUG) and record.levelno >= logging.ERROR


def resolve_level(value: str | int, default: int = logging.INFO) -> int:
    """Map "debug"/"INFO"/20 to a logging level; unknown names give `default`."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskboard",
    console_level: str | int = logging.INFO,
    file_level: str | int = logging.DEBUG,
    app_name: str = "taskboard",
) -> Path:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler: full logs for debugging, at <log_dir>/<app_name>.log

    Levels may be given as names (TASKBOARD_LOG_LEVEL) or numbers.
    Call this ONCE, very early (before first logger.info). Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{app_name or 'taskboard'}.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Level gating happens in _ConsoleLevelGate so task store errors can bypass it.
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.DEBUG)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleLevelGate(resolve_level(console_level)))
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(resolve_level(file_level, default=logging.DEBUG))
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
