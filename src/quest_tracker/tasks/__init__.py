"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskCategory, TaskFilter)
- civil_date.py: timestamp <-> civil date / epoch-millis helpers
- progress.py: daily progress + streak engine (pure)
- task_store.py: SQLite-backed storage, schema migrations, query helpers
- task_api.py: entry points used by presentation layers
"""
