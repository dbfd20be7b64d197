# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.

See src/quest_tracker/config.py for defaults.
"""

ENV_VARS = {
    # App / logging
    "QUEST_APP_NAME": "App display name (default: quest).",
    "QUEST_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "QUEST_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Local data
    "QUEST_DATA_DIR": "Directory for the database and quest.log (default: .local/quest).",
    "QUEST_TASKS_DB_PATH": "SQLite file with the tasks table (default: <data_dir>/tasks.sqlite3).",
    # Calendar
    "QUEST_TIMEZONE": "IANA timezone for day boundaries, e.g. Europe/Berlin (default: machine local time).",
}
