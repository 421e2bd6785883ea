"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, filters, store events)
- task_store.py: in-memory canonical store + snapshot hand-off
- task_view.py: filtered/sorted view and per-priority counts
- undo.py: single-slot banner with an undoable delete
- task_scheduler.py: polling reminder scheduler
- task_api.py: UI intents used by the front-ends
"""
