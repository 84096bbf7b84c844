"""Database manager for calls, rooms, tasks and governance logs using SQLite."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, AsyncGenerator, Optional

import aiosqlite

from circlecall.calls.models import CALL_UPDATE_FIELDS, PARTICIPANT_UPDATE_FIELDS
from circlecall.errors import PersistenceError

from .migrations import get_current_version, run_migrations


def _to_db(value: Any) -> Any:
    """Convert a model value to its column representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


class DatabaseManager:
    """Async SQLite database manager."""

    def __init__(self, db_path: str | Path):
        """Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path).expanduser()

    async def initialize(self) -> None:
        """Initialize the database, creating it and running migrations if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self.connect() as conn:
            await run_migrations(conn)

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Get a database connection as an async context manager.

        Raises:
            PersistenceError: If a statement fails
        """
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        except aiosqlite.Error as e:
            raise PersistenceError("query", str(e), e) from e
        finally:
            await conn.close()

    async def execute(
        self, query: str, params: tuple = (), *, commit: bool = True
    ) -> int:
        """Execute a query and optionally commit.

        Args:
            query: SQL query to execute
            params: Query parameters
            commit: Whether to commit after execution

        Returns:
            Number of rows affected
        """
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            if commit:
                await conn.commit()
            return cursor.rowcount

    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[dict]:
        """Fetch a single row as a dictionary.

        Args:
            query: SQL query to execute
            params: Query parameters

        Returns:
            Row as dictionary or None if not found
        """
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            row = await cursor.fetchone()
            if row is None:
                return None
            return dict(row)

    async def fetch_all(self, query: str, params: tuple = ()) -> list[dict]:
        """Fetch all rows as a list of dictionaries.

        Args:
            query: SQL query to execute
            params: Query parameters

        Returns:
            List of rows as dictionaries
        """
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def get_version(self) -> int:
        """Get the current schema version."""
        async with self.connect() as conn:
            return await get_current_version(conn)

    async def _update(
        self,
        table: str,
        fields: dict[str, Any],
        allowed: frozenset[str],
        where: str,
        where_params: tuple,
    ) -> int:
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not fields:
            return 0

        columns = sorted(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = tuple(_to_db(fields[column]) for column in columns) + where_params
        return await self.execute(f"UPDATE {table} SET {assignments} WHERE {where}", params)

    # Call operations

    async def create_call(
        self,
        call_id: str,
        scope: str,
        ref_id: str,
        mode: str,
        started_by: str,
        circle_talking_enabled: bool = False,
    ) -> dict:
        """Create a new active call.

        Returns:
            Created call as dictionary
        """
        now = datetime.now(UTC).isoformat()

        await self.execute(
            """
            INSERT INTO calls
            (id, scope, ref_id, mode, status, circle_talking_enabled, started_by, created_at)
            VALUES (?, ?, ?, ?, 'active', ?, ?, ?)
            """,
            (
                call_id,
                _to_db(scope),
                ref_id,
                _to_db(mode),
                int(circle_talking_enabled),
                started_by,
                now,
            ),
        )

        return await self.get_call(call_id)

    async def get_call(self, call_id: str) -> Optional[dict]:
        """Get a call by ID."""
        return await self.fetch_one("SELECT * FROM calls WHERE id = ?", (call_id,))

    async def update_call(self, call_id: str, **fields: Any) -> Optional[dict]:
        """Apply a partial update to a call."""
        await self._update("calls", fields, CALL_UPDATE_FIELDS, "id = ?", (call_id,))
        return await self.get_call(call_id)

    async def list_calls(
        self,
        ref_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> list[dict]:
        """List calls, most recent first."""
        query = "SELECT * FROM calls WHERE 1 = 1"
        params: list[Any] = []

        if ref_id is not None:
            query += " AND ref_id = ?"
            params.append(ref_id)
        if status is not None:
            query += " AND status = ?"
            params.append(_to_db(status))

        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        return await self.fetch_all(query, tuple(params))

    # Participant operations

    async def add_participant(self, call_id: str, user_id: str) -> dict:
        """Add a participant, muted with hand down.

        A participant who is already present is reset and moved to the end
        of the enumeration order.
        """
        now = datetime.now(UTC).isoformat()

        async with self.connect() as conn:
            await conn.execute(
                "DELETE FROM call_participants WHERE call_id = ? AND user_id = ?",
                (call_id, user_id),
            )
            await conn.execute(
                """
                INSERT INTO call_participants (call_id, user_id, muted, hand_raised, joined_at)
                VALUES (?, ?, 1, 0, ?)
                """,
                (call_id, user_id, now),
            )
            await conn.commit()

        return await self.get_participant(call_id, user_id)

    async def get_participant(self, call_id: str, user_id: str) -> Optional[dict]:
        """Get one participant of a call."""
        return await self.fetch_one(
            "SELECT * FROM call_participants WHERE call_id = ? AND user_id = ?",
            (call_id, user_id),
        )

    async def remove_participant(self, call_id: str, user_id: str) -> bool:
        """Remove a participant. Returns False if they were not present."""
        removed = await self.execute(
            "DELETE FROM call_participants WHERE call_id = ? AND user_id = ?",
            (call_id, user_id),
        )
        return removed > 0

    async def update_participant(
        self, call_id: str, user_id: str, **fields: Any
    ) -> Optional[dict]:
        """Apply a partial update to a participant."""
        await self._update(
            "call_participants",
            fields,
            PARTICIPANT_UPDATE_FIELDS,
            "call_id = ? AND user_id = ?",
            (call_id, user_id),
        )
        return await self.get_participant(call_id, user_id)

    async def list_participants(self, call_id: str) -> list[dict]:
        """List a call's participants in insertion order."""
        return await self.fetch_all(
            "SELECT * FROM call_participants WHERE call_id = ? ORDER BY rowid ASC",
            (call_id,),
        )

    # Room and task operations

    async def create_room(self, room_id: str, title: str) -> dict:
        """Create a room."""
        now = datetime.now(UTC).isoformat()
        await self.execute(
            "INSERT INTO rooms (id, title, created_at) VALUES (?, ?, ?)",
            (room_id, title, now),
        )
        return await self.get_room(room_id)

    async def get_room(self, room_id: str) -> Optional[dict]:
        """Get a room by ID."""
        return await self.fetch_one("SELECT * FROM rooms WHERE id = ?", (room_id,))

    async def list_rooms(self) -> list[dict]:
        """List all rooms, oldest first."""
        return await self.fetch_all("SELECT * FROM rooms ORDER BY created_at ASC")

    async def create_task(
        self,
        task_id: str,
        room_id: str,
        title: str,
        task_type: str,
        day_index: int = 0,
        mandatory: bool = False,
    ) -> dict:
        """Create an active task in a room."""
        now = datetime.now(UTC).isoformat()
        await self.execute(
            """
            INSERT INTO tasks (id, room_id, title, task_type, day_index, mandatory, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, 'active', ?)
            """,
            (task_id, room_id, title, _to_db(task_type), day_index, int(mandatory), now),
        )
        return await self.get_task(task_id)

    async def get_task(self, task_id: str) -> Optional[dict]:
        """Get a task by ID."""
        return await self.fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))

    async def list_tasks(self, room_id: str, mandatory_only: bool = False) -> list[dict]:
        """List a room's tasks by day."""
        query = "SELECT * FROM tasks WHERE room_id = ?"
        if mandatory_only:
            query += " AND mandatory = 1"
        query += " ORDER BY day_index ASC, created_at ASC"
        return await self.fetch_all(query, (room_id,))

    async def set_task_progress(
        self,
        task_id: str,
        user_id: str,
        room_id: str,
        completed: bool = True,
        completed_at: Optional[datetime] = None,
    ) -> dict:
        """Record (or overwrite) a participant's completion of a task."""
        if completed and completed_at is None:
            completed_at = datetime.now(UTC)

        await self.execute(
            """
            INSERT INTO task_progress (task_id, user_id, room_id, completed, completed_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (task_id, user_id) DO UPDATE SET
                completed = excluded.completed,
                completed_at = excluded.completed_at
            """,
            (
                task_id,
                user_id,
                room_id,
                int(completed),
                _to_db(completed_at) if completed else None,
            ),
        )
        return await self.fetch_one(
            "SELECT * FROM task_progress WHERE task_id = ? AND user_id = ?",
            (task_id, user_id),
        )

    async def get_task_progress(self, user_id: str, room_id: str) -> list[dict]:
        """Get a participant's completion records in a room."""
        return await self.fetch_all(
            "SELECT * FROM task_progress WHERE user_id = ? AND room_id = ?",
            (user_id, room_id),
        )

    # Governance operations

    async def log_action(
        self,
        log_id: str,
        scope: str,
        ref_id: str,
        action: str,
        executed_by: str = "gemini",
        target_user_id: Optional[str] = None,
    ) -> dict:
        """Record an automated moderation action."""
        now = datetime.now(UTC).isoformat()
        await self.execute(
            """
            INSERT INTO governance_logs
            (id, scope, ref_id, action, executed_by, target_user_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (log_id, _to_db(scope), ref_id, _to_db(action), executed_by, target_user_id, now),
        )
        return await self.fetch_one("SELECT * FROM governance_logs WHERE id = ?", (log_id,))

    async def get_logs_by_ref(self, scope: str, ref_id: str) -> list[dict]:
        """Get actions taken on a room, task or call, newest first."""
        return await self.fetch_all(
            """
            SELECT * FROM governance_logs
            WHERE scope = ? AND ref_id = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (_to_db(scope), ref_id),
        )

    async def get_logs_by_target_user(self, user_id: str) -> list[dict]:
        """Get actions taken against a user, newest first."""
        return await self.fetch_all(
            """
            SELECT * FROM governance_logs
            WHERE target_user_id = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (user_id,),
        )
