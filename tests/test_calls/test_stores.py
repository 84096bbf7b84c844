"""Tests for the in-memory call and participant stores."""

import pytest

from circlecall.calls import (
    CallMode,
    CallScope,
    CallStatus,
    InMemoryCallStore,
    InMemoryParticipantStore,
)


class TestInMemoryCallStore:
    """Tests for InMemoryCallStore."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, call_store: InMemoryCallStore) -> None:
        """Test creating a call and reading it back."""
        call = await call_store.create(CallScope.EVENT, "event-1", CallMode.VIDEO, "host")

        fetched = await call_store.get(call.id)

        assert fetched == call
        assert fetched.status == CallStatus.ACTIVE
        assert fetched.scope == CallScope.EVENT

    @pytest.mark.asyncio
    async def test_update(self, call_store: InMemoryCallStore) -> None:
        """Test partial updates."""
        call = await call_store.create(CallScope.ROOM, "room-1", CallMode.AUDIO, "host")

        updated = await call_store.update(call.id, current_speaker_id="a", moderator_message="hi")

        assert updated.current_speaker_id == "a"
        assert updated.moderator_message == "hi"
        assert updated.ref_id == "room-1"

    @pytest.mark.asyncio
    async def test_update_missing(self, call_store: InMemoryCallStore) -> None:
        """Test that updating a missing call returns None."""
        assert await call_store.update("missing", current_speaker_id="a") is None

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, call_store: InMemoryCallStore) -> None:
        """Test that immutable or unknown fields cannot be changed."""
        call = await call_store.create(CallScope.ROOM, "room-1", CallMode.AUDIO, "host")

        with pytest.raises(ValueError, match="started_by"):
            await call_store.update(call.id, started_by="intruder")


class TestInMemoryParticipantStore:
    """Tests for InMemoryParticipantStore."""

    @pytest.mark.asyncio
    async def test_insertion_order(self, participant_store: InMemoryParticipantStore) -> None:
        """Test that listing follows insertion order."""
        for user in ("c", "a", "b"):
            await participant_store.add("call-1", user)

        listed = [p.user_id for p in await participant_store.list_all("call-1")]

        assert listed == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_readd_moves_to_end(self, participant_store: InMemoryParticipantStore) -> None:
        """Test that re-adding resets and moves a participant to the end."""
        await participant_store.add("call-1", "a")
        await participant_store.add("call-1", "b")
        await participant_store.update("call-1", "a", hand_raised=True)

        again = await participant_store.add("call-1", "a")

        assert again.hand_raised is False
        listed = [p.user_id for p in await participant_store.list_all("call-1")]
        assert listed == ["b", "a"]

    @pytest.mark.asyncio
    async def test_calls_are_isolated(self, participant_store: InMemoryParticipantStore) -> None:
        """Test that participants belong to one call."""
        await participant_store.add("call-1", "a")

        assert await participant_store.list_all("call-2") == []
        assert await participant_store.get("call-2", "a") is None

    @pytest.mark.asyncio
    async def test_remove(self, participant_store: InMemoryParticipantStore) -> None:
        """Test removing reports whether the participant was present."""
        await participant_store.add("call-1", "a")

        assert await participant_store.remove("call-1", "a") is True
        assert await participant_store.remove("call-1", "a") is False

    @pytest.mark.asyncio
    async def test_update_missing(self, participant_store: InMemoryParticipantStore) -> None:
        """Test that updating an absent participant returns None."""
        assert await participant_store.update("call-1", "ghost", muted=False) is None
