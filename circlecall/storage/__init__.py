"""SQLite persistence for calls, rooms, tasks and governance logs."""

from .migrations import MIGRATIONS, get_current_version, run_migrations
from .persistence import DatabaseManager
from .stores import SQLiteCallStore, SQLiteParticipantStore, SQLiteTaskSource

__all__ = [
    "DatabaseManager",
    "MIGRATIONS",
    "SQLiteCallStore",
    "SQLiteParticipantStore",
    "SQLiteTaskSource",
    "get_current_version",
    "run_migrations",
]
