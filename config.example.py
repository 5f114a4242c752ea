# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Keep machine-specific values in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "TASKFLOW_DATA_DIR": "Local data directory (default: .local/taskflow).",
    "TASKFLOW_STORAGE_PATH": (
        "Store file (default: <data_dir>/tasks.json, or <data_dir>/tasks.sqlite3 for sqlite)."
    ),
    # Storage
    "TASKFLOW_STORAGE_BACKEND": "json | sqlite (default: json; unknown values fall back to json).",
    "TASKFLOW_STORAGE_KEY": "Record key inside the store (default: taskflow-data).",
    "TASKFLOW_AUTOSAVE": "Save after every change (true/false, default: true).",
    # Tuning
    "TASKFLOW_SEARCH_CACHE_SIZE": "Max cached search queries (default: 100).",
    "TASKFLOW_STATS_CACHE_TTL_MS": "How long stats() may be reused, in ms (default: 100).",
}
