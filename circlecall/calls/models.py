"""Data models for calls and their participants."""

from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class CallScope(str, Enum):
    """What a call belongs to."""

    ROOM = "room"
    EVENT = "event"


class CallMode(str, Enum):
    """Media mode of a call."""

    AUDIO = "audio"
    VIDEO = "video"


class CallStatus(str, Enum):
    """Lifecycle status of a call. ENDED is terminal."""

    ACTIVE = "active"
    ENDED = "ended"


class CallState(str, Enum):
    """Moderation state derived from a call's status and circle flag."""

    ACTIVE_FREE = "active-free"
    ACTIVE_CIRCLE = "active-circle"
    ENDED = "ended"


class CreateCallRequest(BaseModel):
    """Validated input for creating a call."""

    scope: CallScope
    ref_id: str
    mode: CallMode
    started_by: str
    circle_talking_enabled: bool = False

    @field_validator("ref_id", "started_by")
    @classmethod
    def validate_identity(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class Call(BaseModel):
    """A live call in a room or event."""

    id: str
    scope: CallScope
    ref_id: str
    mode: CallMode
    status: CallStatus = CallStatus.ACTIVE
    circle_talking_enabled: bool = False
    current_speaker_id: Optional[str] = None
    speaker_start_time: Optional[datetime] = None
    started_by: str
    created_at: datetime = Field(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    moderator_message: Optional[str] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "Call":
        """Create a Call from a database row."""
        return cls(
            id=row["id"],
            scope=CallScope(row["scope"]),
            ref_id=row["ref_id"],
            mode=CallMode(row["mode"]),
            status=CallStatus(row["status"]),
            circle_talking_enabled=bool(row["circle_talking_enabled"]),
            current_speaker_id=row["current_speaker_id"],
            speaker_start_time=_parse_timestamp(row["speaker_start_time"]),
            started_by=row["started_by"],
            created_at=_parse_timestamp(row["created_at"]) or utcnow(),
            ended_at=_parse_timestamp(row["ended_at"]),
            moderator_message=row["moderator_message"],
        )

    @property
    def is_ended(self) -> bool:
        return self.status == CallStatus.ENDED

    @property
    def has_speaker(self) -> bool:
        return self.current_speaker_id is not None

    @property
    def state(self) -> CallState:
        """The moderation state this call is in."""
        if self.is_ended:
            return CallState.ENDED
        if self.circle_talking_enabled and self.has_speaker:
            return CallState.ACTIVE_CIRCLE
        return CallState.ACTIVE_FREE


class CallParticipant(BaseModel):
    """A user's presence in a call."""

    user_id: str
    muted: bool = True
    hand_raised: bool = False
    speaking_order: Optional[int] = Field(default=None, ge=0)
    speaking_time_seconds: Optional[float] = Field(default=None, ge=0.0)
    joined_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_db_row(cls, row: dict) -> "CallParticipant":
        """Create a CallParticipant from a database row."""
        return cls(
            user_id=row["user_id"],
            muted=bool(row["muted"]),
            hand_raised=bool(row["hand_raised"]),
            speaking_order=row["speaking_order"],
            speaking_time_seconds=row["speaking_time_seconds"],
            joined_at=_parse_timestamp(row["joined_at"]) or utcnow(),
        )

    @property
    def is_speaking(self) -> bool:
        return not self.muted


# Fields the session core may change through the stores
CALL_UPDATE_FIELDS = frozenset({
    "status",
    "circle_talking_enabled",
    "current_speaker_id",
    "speaker_start_time",
    "ended_at",
    "moderator_message",
})

PARTICIPANT_UPDATE_FIELDS = frozenset({
    "muted",
    "hand_raised",
    "speaking_order",
    "speaking_time_seconds",
})
