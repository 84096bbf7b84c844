"""Tests for logging helpers and what the core logs."""

import logging
from pathlib import Path

import pytest

from circlecall.calls import CallSession, CreateCallRequest
from circlecall.errors import ForbiddenError
from circlecall.moderator import AnnouncementGenerator
from circlecall.utils import LogCapture, get_call_logger, get_logger, setup_logging


class TimeoutLikeAnnouncer(AnnouncementGenerator):
    async def generate(self, kind, outgoing_speaker_id, incoming_speaker_id) -> str:
        raise ConnectionError("unreachable")


@pytest.fixture
def package_logger():
    """Restore the package logger after a test reconfigures it."""
    logger = logging.getLogger("circlecall")
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(level)


class TestSetupLogging:
    """Tests for logger configuration."""

    def test_verbose_sets_debug(self, package_logger: logging.Logger) -> None:
        """Test that verbose mode lowers the level."""
        logger = setup_logging(verbose=True)

        assert logger.name == "circlecall"
        assert logger.level == logging.DEBUG

    def test_file_handler(self, temp_dir: Path, package_logger: logging.Logger) -> None:
        """Test that a log file receives messages."""
        log_file = temp_dir / "logs" / "circlecall.log"
        setup_logging(log_file=log_file)

        get_logger("calls").info("circle started")
        for handler in logging.getLogger("circlecall").handlers:
            handler.flush()

        assert "circle started" in log_file.read_text(encoding="utf-8")

    def test_get_logger_prefix(self) -> None:
        """Test that named loggers live under the package logger."""
        assert get_logger("storage").name == "circlecall.storage"
        assert get_logger().name == "circlecall"


class TestCallLogger:
    """Tests for per-call loggers."""

    def test_prefixes_call_id(self) -> None:
        """Test that messages carry the call id."""
        with LogCapture() as capture:
            get_call_logger("c1").info("A joined")

        assert capture.messages == ["[call c1] A joined"]
        assert capture.records[0].name == "circlecall.calls"

    def test_filter_by_call(self) -> None:
        """Test selecting the messages of one call."""
        with LogCapture() as capture:
            get_call_logger("c1").info("A joined")
            get_call_logger("c2").info("B joined")
            get_logger("storage").info("unrelated")

        assert capture.for_call("c2") == ["[call c2] B joined"]


class TestSessionLogging:
    """Tests for messages logged by the call session."""

    @pytest.mark.asyncio
    async def test_transitions_logged(
        self, session: CallSession, room_call_request: CreateCallRequest
    ) -> None:
        """Test that speaker transitions log at INFO."""
        call = await session.create_call(room_call_request)
        await session.join(call.id, "A")
        await session.join(call.id, "B")

        with LogCapture() as capture:
            await session.start_circle_talking(call.id, "admin")
            await session.advance_speaker(call.id, "admin")

        assert capture.has_message("A has the floor")
        assert capture.has_message("passed from A to B")
        assert all(m.startswith(f"[call {call.id}]") for m in capture.for_call(call.id))
        assert len(capture.for_call(call.id)) == 2

    @pytest.mark.asyncio
    async def test_rejection_logged(
        self, session: CallSession, room_call_request: CreateCallRequest
    ) -> None:
        """Test that rejected moderation is logged as a warning."""
        call = await session.create_call(room_call_request)

        with LogCapture() as capture:
            with pytest.raises(ForbiddenError):
                await session.end_call(call.id, "intruder")

        warnings = [r for r in capture.records if r.levelno == logging.WARNING]
        assert any("intruder" in r.getMessage() for r in warnings)

    @pytest.mark.asyncio
    async def test_announcement_failure_logged(
        self, call_store, participant_store, room_call_request: CreateCallRequest
    ) -> None:
        """Test that announcement fallbacks log a warning."""
        session = CallSession(call_store, participant_store, announcer=TimeoutLikeAnnouncer())
        call = await session.create_call(room_call_request)
        await session.join(call.id, "A")

        with LogCapture() as capture:
            await session.start_circle_talking(call.id, "admin")

        assert capture.has_message("Announcement failed: unreachable")
