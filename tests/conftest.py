"""Pytest configuration and fixtures for CircleCall tests."""

import os
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import AsyncGenerator, Generator, Optional

import pytest
import pytest_asyncio

from circlecall.calls import (
    CallMode,
    CallScope,
    CallSession,
    CreateCallRequest,
    InMemoryCallStore,
    InMemoryParticipantStore,
)
from circlecall.config import Settings, reset_settings
from circlecall.storage import DatabaseManager


class FakeClock:
    """Manually advanced clock for speaking time tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings with temporary paths and no API key."""
    reset_settings()
    return Settings(
        google_api_key=None,
        storage={"database_path": str(temp_dir / "test.db")},
    )


@pytest_asyncio.fixture
async def db_manager(temp_dir: Path) -> AsyncGenerator[DatabaseManager, None]:
    """Create an initialized database manager for tests."""
    db_path = temp_dir / "test.db"
    db = DatabaseManager(db_path)
    await db.initialize()
    yield db


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def call_store() -> InMemoryCallStore:
    return InMemoryCallStore()


@pytest.fixture
def participant_store() -> InMemoryParticipantStore:
    return InMemoryParticipantStore()


@pytest.fixture
def session(
    call_store: InMemoryCallStore,
    participant_store: InMemoryParticipantStore,
    clock: FakeClock,
) -> CallSession:
    """Call session over in-memory stores with template announcements."""
    return CallSession(call_store, participant_store, clock=clock)


@pytest.fixture
def room_call_request() -> CreateCallRequest:
    """Request for an audio call in a room, started by 'admin'."""
    return CreateCallRequest(
        scope=CallScope.ROOM,
        ref_id="room-1",
        mode=CallMode.AUDIO,
        started_by="admin",
    )


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables for testing."""
    original = {}
    env_vars = [
        "GOOGLE_API_KEY",
        "GEMINI_API_KEY",
        "CIRCLECALL_GOOGLE_API_KEY",
        "CIRCLECALL_MODERATOR__ENABLED",
        "CIRCLECALL_CIRCLE__SPEAKING_ORDER",
    ]
    for var in env_vars:
        original[var] = os.environ.pop(var, None)

    reset_settings()

    yield

    for var, value in original.items():
        if value is not None:
            os.environ[var] = value
        elif var in os.environ:
            del os.environ[var]

    reset_settings()
