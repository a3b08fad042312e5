# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
See src/taskboard/config.py.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKBOARD_APP_NAME": "App display name (default: taskboard).",
    "TASKBOARD_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "TASKBOARD_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Storage
    "TASKBOARD_DATA_DIR": "Local data directory for logs and storage (default: .local/taskboard).",
    "TASKBOARD_STORAGE_BACKEND": "sqlite | json | memory (default: sqlite).",
    "TASKBOARD_STORAGE_PATH": (
        "Storage file (default: <data_dir>/tasks.sqlite3, or <data_dir>/tasks.json for json)."
    ),
    "TASKBOARD_STORAGE_KEY": "Key the task list is stored under (default: eisenhower-kanban-tasks).",
    # Tuning
    "TASKBOARD_PERSIST_DELAY_MS": "Quiet period before a burst of edits is written (default: 500).",
}
