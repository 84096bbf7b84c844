"""Database schema migrations for CircleCall."""

from typing import Any, Callable, Coroutine

import aiosqlite

# Type alias for migration functions
MigrationFunc = Callable[[aiosqlite.Connection], Coroutine[Any, Any, None]]

# Migration registry: version -> migration function
MIGRATIONS: dict[int, MigrationFunc] = {}


def migration(version: int) -> Callable[[MigrationFunc], MigrationFunc]:
    """Decorator to register a migration function."""

    def decorator(func: MigrationFunc) -> MigrationFunc:
        MIGRATIONS[version] = func
        return func

    return decorator


async def get_current_version(conn: aiosqlite.Connection) -> int:
    """Get the current schema version from the database."""
    cursor = await conn.execute(
        """
        SELECT name FROM sqlite_master
        WHERE type='table' AND name='schema_version'
        """
    )
    if await cursor.fetchone() is None:
        return 0

    cursor = await conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = await cursor.fetchone()
    return row[0] if row else 0


async def set_version(conn: aiosqlite.Connection, version: int) -> None:
    """Set the schema version."""
    await conn.execute(
        "INSERT INTO schema_version (version, applied_at) VALUES (?, CURRENT_TIMESTAMP)",
        (version,),
    )


async def run_migrations(conn: aiosqlite.Connection) -> None:
    """Run all pending migrations."""
    current_version = await get_current_version(conn)

    pending_versions = sorted(v for v in MIGRATIONS.keys() if v > current_version)

    for version in pending_versions:
        migration_func = MIGRATIONS[version]
        await migration_func(conn)
        await set_version(conn, version)
        await conn.commit()


# ============================================================================
# Migration Definitions
# ============================================================================


@migration(1)
async def migration_001_calls(conn: aiosqlite.Connection) -> None:
    """Create call and participant tables."""

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS calls (
            id TEXT PRIMARY KEY,
            scope TEXT NOT NULL CHECK (scope IN ('room', 'event')),
            ref_id TEXT NOT NULL,
            mode TEXT NOT NULL CHECK (mode IN ('audio', 'video')),
            status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'ended')),
            circle_talking_enabled BOOLEAN NOT NULL DEFAULT FALSE,
            current_speaker_id TEXT,
            speaker_start_time TEXT,
            started_by TEXT NOT NULL,
            moderator_message TEXT,
            created_at TEXT NOT NULL,
            ended_at TEXT
        )
        """
    )

    # Row order of this table is the participants' enumeration order
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS call_participants (
            call_id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            muted BOOLEAN NOT NULL DEFAULT TRUE,
            hand_raised BOOLEAN NOT NULL DEFAULT FALSE,
            speaking_order INTEGER CHECK (speaking_order >= 0),
            speaking_time_seconds REAL,
            joined_at TEXT NOT NULL,
            UNIQUE (call_id, user_id),
            FOREIGN KEY (call_id) REFERENCES calls(id) ON DELETE CASCADE
        )
        """
    )

    await conn.execute("CREATE INDEX IF NOT EXISTS idx_calls_ref ON calls(scope, ref_id)")
    await conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_participants_call ON call_participants(call_id)"
    )


@migration(2)
async def migration_002_rooms_and_tasks(conn: aiosqlite.Connection) -> None:
    """Add rooms, tasks and task completion tracking."""

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS rooms (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            room_id TEXT NOT NULL,
            title TEXT NOT NULL,
            task_type TEXT NOT NULL,
            day_index INTEGER NOT NULL DEFAULT 0,
            mandatory BOOLEAN NOT NULL DEFAULT FALSE,
            status TEXT NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            FOREIGN KEY (room_id) REFERENCES rooms(id) ON DELETE CASCADE
        )
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS task_progress (
            task_id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            room_id TEXT NOT NULL,
            completed BOOLEAN NOT NULL DEFAULT FALSE,
            completed_at TEXT,
            PRIMARY KEY (task_id, user_id),
            FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE,
            FOREIGN KEY (room_id) REFERENCES rooms(id) ON DELETE CASCADE
        )
        """
    )

    await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_room ON tasks(room_id)")
    await conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_progress_user_room ON task_progress(user_id, room_id)"
    )


@migration(3)
async def migration_003_governance_logs(conn: aiosqlite.Connection) -> None:
    """Add the audit log of automated moderation actions."""

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS governance_logs (
            id TEXT PRIMARY KEY,
            scope TEXT NOT NULL CHECK (scope IN ('room', 'task', 'call')),
            ref_id TEXT NOT NULL,
            action TEXT NOT NULL,
            executed_by TEXT NOT NULL DEFAULT 'gemini',
            target_user_id TEXT,
            created_at TEXT NOT NULL
        )
        """
    )

    await conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_governance_ref ON governance_logs(scope, ref_id)"
    )
    await conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_governance_target ON governance_logs(target_user_id)"
    )
