"""Tests for database persistence."""

import uuid
from datetime import UTC, datetime
from pathlib import Path

import pytest

from circlecall.errors import PersistenceError
from circlecall.storage import DatabaseManager


class TestDatabaseManager:
    """Tests for DatabaseManager setup."""

    @pytest.mark.asyncio
    async def test_initialize_creates_database(self, temp_dir: Path) -> None:
        """Test that initialize creates the database file."""
        db_path = temp_dir / "nested" / "new_test.db"
        assert not db_path.exists()

        db = DatabaseManager(db_path)
        await db.initialize()

        assert db_path.exists()

    @pytest.mark.asyncio
    async def test_initialize_creates_tables(self, db_manager: DatabaseManager) -> None:
        """Test that initialize creates all required tables."""
        tables = await db_manager.fetch_all(
            "SELECT name FROM sqlite_master WHERE type='table'"
        )
        table_names = {t["name"] for t in tables}

        assert {
            "calls",
            "call_participants",
            "rooms",
            "tasks",
            "task_progress",
            "governance_logs",
            "schema_version",
        } <= table_names

    @pytest.mark.asyncio
    async def test_migrations_are_idempotent(self, temp_dir: Path) -> None:
        """Test that running migrations multiple times is safe."""
        db = DatabaseManager(temp_dir / "idempotent_test.db")

        await db.initialize()
        await db.initialize()

        assert await db.get_version() == 3

    @pytest.mark.asyncio
    async def test_failed_statement(self, db_manager: DatabaseManager) -> None:
        """Test that SQLite errors surface as PersistenceError."""
        with pytest.raises(PersistenceError):
            await db_manager.execute("INSERT INTO no_such_table VALUES (1)")


class TestCallOperations:
    """Tests for call and participant rows."""

    @pytest.mark.asyncio
    async def test_create_and_update_call(self, db_manager: DatabaseManager) -> None:
        """Test creating a call and applying a partial update."""
        call_id = uuid.uuid4().hex
        created = await db_manager.create_call(call_id, "room", "room-1", "audio", "admin")

        assert created["status"] == "active"
        assert created["circle_talking_enabled"] == 0

        now = datetime.now(UTC)
        updated = await db_manager.update_call(
            call_id,
            circle_talking_enabled=True,
            current_speaker_id="A",
            speaker_start_time=now,
        )

        assert updated["circle_talking_enabled"] == 1
        assert updated["current_speaker_id"] == "A"
        assert updated["speaker_start_time"] == now.isoformat()

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_column(self, db_manager: DatabaseManager) -> None:
        """Test that only mutable columns can be updated."""
        call_id = uuid.uuid4().hex
        await db_manager.create_call(call_id, "room", "room-1", "audio", "admin")

        with pytest.raises(ValueError):
            await db_manager.update_call(call_id, ref_id="other")

    @pytest.mark.asyncio
    async def test_list_calls(self, db_manager: DatabaseManager) -> None:
        """Test filtering calls by status."""
        active = uuid.uuid4().hex
        ended = uuid.uuid4().hex
        await db_manager.create_call(active, "room", "room-1", "audio", "admin")
        await db_manager.create_call(ended, "room", "room-1", "video", "admin")
        await db_manager.update_call(ended, status="ended")

        rows = await db_manager.list_calls(ref_id="room-1", status="active")

        assert [r["id"] for r in rows] == [active]

    @pytest.mark.asyncio
    async def test_participants_keep_join_order(self, db_manager: DatabaseManager) -> None:
        """Test that participants list in insertion order."""
        call_id = uuid.uuid4().hex
        await db_manager.create_call(call_id, "room", "room-1", "audio", "admin")
        for user in ("c", "a", "b"):
            await db_manager.add_participant(call_id, user)

        await db_manager.add_participant(call_id, "c")

        rows = await db_manager.list_participants(call_id)
        assert [r["user_id"] for r in rows] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_participant_requires_call(self, db_manager: DatabaseManager) -> None:
        """Test that participants cannot reference a missing call."""
        with pytest.raises(PersistenceError):
            await db_manager.add_participant("missing", "a")

    @pytest.mark.asyncio
    async def test_remove_participant(self, db_manager: DatabaseManager) -> None:
        """Test removing a participant twice."""
        call_id = uuid.uuid4().hex
        await db_manager.create_call(call_id, "room", "room-1", "audio", "admin")
        await db_manager.add_participant(call_id, "a")

        assert await db_manager.remove_participant(call_id, "a") is True
        assert await db_manager.remove_participant(call_id, "a") is False


class TestTaskOperations:
    """Tests for rooms, tasks and progress."""

    @pytest.mark.asyncio
    async def test_list_mandatory_tasks(self, db_manager: DatabaseManager) -> None:
        """Test filtering mandatory tasks."""
        await db_manager.create_room("room-1", "Lent")
        await db_manager.create_task("t1", "room-1", "Pray", "prayer", day_index=0, mandatory=True)
        await db_manager.create_task("t2", "room-1", "Sing", "worship", day_index=0)

        rows = await db_manager.list_tasks("room-1", mandatory_only=True)

        assert [r["id"] for r in rows] == ["t1"]

    @pytest.mark.asyncio
    async def test_progress_upsert(self, db_manager: DatabaseManager) -> None:
        """Test that recording progress twice overwrites the first record."""
        await db_manager.create_room("room-1", "Lent")
        await db_manager.create_task("t1", "room-1", "Pray", "prayer", mandatory=True)

        await db_manager.set_task_progress("t1", "u1", "room-1", completed=False)
        row = await db_manager.set_task_progress("t1", "u1", "room-1", completed=True)

        assert row["completed"] == 1
        assert row["completed_at"] is not None
        assert len(await db_manager.get_task_progress("u1", "room-1")) == 1


class TestGovernanceLogs:
    """Tests for governance log operations."""

    @pytest.mark.asyncio
    async def test_log_and_query(self, db_manager: DatabaseManager) -> None:
        """Test recording actions and reading them by reference and target."""
        await db_manager.log_action("g1", "room", "room-1", "warn_user", target_user_id="u1")
        await db_manager.log_action("g2", "room", "room-1", "remove_user", target_user_id="u1")
        await db_manager.log_action("g3", "call", "call-1", "summarize_call")

        by_ref = await db_manager.get_logs_by_ref("room", "room-1")
        by_user = await db_manager.get_logs_by_target_user("u1")

        assert [r["id"] for r in by_ref] == ["g2", "g1"]
        assert {r["id"] for r in by_user} == {"g1", "g2"}
        assert by_ref[0]["executed_by"] == "gemini"
