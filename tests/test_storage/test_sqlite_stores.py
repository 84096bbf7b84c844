"""Tests for the SQLite store adapters, including the session core end to end."""

from datetime import UTC, datetime

import pytest

from circlecall.calls import (
    CallMode,
    CallScope,
    CallSession,
    CallStatus,
    CreateCallRequest,
)
from circlecall.discipline import DisciplineEngine, DisciplineResult
from circlecall.errors import CallEndedError, RoomNotFoundError
from circlecall.storage import (
    DatabaseManager,
    SQLiteCallStore,
    SQLiteParticipantStore,
    SQLiteTaskSource,
)


@pytest.fixture
def sqlite_session(db_manager: DatabaseManager, clock) -> CallSession:
    return CallSession(SQLiteCallStore(db_manager), SQLiteParticipantStore(db_manager), clock=clock)


class TestSQLiteCallStore:
    """Tests for SQLiteCallStore."""

    @pytest.mark.asyncio
    async def test_round_trip(self, db_manager: DatabaseManager) -> None:
        """Test that calls come back as models with parsed fields."""
        store = SQLiteCallStore(db_manager)
        call = await store.create(CallScope.EVENT, "event-9", CallMode.VIDEO, "host")

        start = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        updated = await store.update(
            call.id,
            circle_talking_enabled=True,
            current_speaker_id="A",
            speaker_start_time=start,
        )

        assert updated.scope == CallScope.EVENT
        assert updated.mode == CallMode.VIDEO
        assert updated.circle_talking_enabled is True
        assert updated.speaker_start_time == start
        assert await store.get("missing") is None


class TestSQLiteSession:
    """Tests for the call session over SQLite."""

    @pytest.mark.asyncio
    async def test_three_participant_scenario(self, sqlite_session: CallSession) -> None:
        """Test the A, B, C rotation against the database."""
        call = await sqlite_session.create_call(
            CreateCallRequest(scope="room", ref_id="room-1", mode="audio", started_by="admin")
        )
        for user in ("A", "B", "C"):
            await sqlite_session.join(call.id, user)

        call = await sqlite_session.start_circle_talking(call.id, "admin")
        assert call.current_speaker_id == "A"
        assert call.moderator_message == "Welcome to the circle. A will start us off."

        speakers = []
        for _ in range(3):
            call = await sqlite_session.advance_speaker(call.id, "admin")
            speakers.append(call.current_speaker_id)
        assert speakers == ["B", "C", "A"]

        participants = await sqlite_session.get_participants(call.id)
        assert [p.speaking_order for p in participants] == [0, 1, 2]
        assert [p.user_id for p in participants if not p.muted] == ["A"]

    @pytest.mark.asyncio
    async def test_end_call(self, sqlite_session: CallSession, clock) -> None:
        """Test that ending persists and blocks further joins."""
        call = await sqlite_session.create_call(
            CreateCallRequest(scope="room", ref_id="room-1", mode="audio", started_by="admin")
        )
        await sqlite_session.join(call.id, "A")
        await sqlite_session.start_circle_talking(call.id, "admin")
        clock.advance(20)

        ended = await sqlite_session.end_call(call.id, "admin")

        assert ended.status == CallStatus.ENDED
        assert ended.ended_at == clock.now
        speaker = await sqlite_session.get_current_speaker(call.id)
        assert speaker.speaking_time_seconds == 20.0
        with pytest.raises(CallEndedError):
            await sqlite_session.join(call.id, "B")


class TestSQLiteTaskSource:
    """Tests for SQLiteTaskSource."""

    @pytest.mark.asyncio
    async def test_engine_over_sqlite(self, db_manager: DatabaseManager) -> None:
        """Test evaluating discipline from database rows."""
        await db_manager.create_room("room-1", "Advent")
        for i in range(4):
            await db_manager.create_task(
                f"t{i}", "room-1", f"Day {i}", "prayer", day_index=i, mandatory=True
            )
        await db_manager.create_task("extra", "room-1", "Optional", "worship")
        await db_manager.set_task_progress("t0", "u1", "room-1")

        report = await DisciplineEngine(SQLiteTaskSource(db_manager)).evaluate("room-1", "u1")

        assert report.missed == 3
        assert report.result == DisciplineResult.WARNING

    @pytest.mark.asyncio
    async def test_unknown_room(self, db_manager: DatabaseManager) -> None:
        """Test that a missing room raises."""
        source = SQLiteTaskSource(db_manager)

        with pytest.raises(RoomNotFoundError):
            await source.mandatory_tasks("nowhere")
        with pytest.raises(RoomNotFoundError):
            await source.completions("u1", "nowhere")
