"""Personal task tracker: task store, filtered view, undoable deletes and due-date reminders."""

__version__ = "0.1.0"
