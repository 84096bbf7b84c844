"""Data models for rooms, tasks, completions and governance actions."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from circlecall.calls.models import utcnow


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class TaskType(str, Enum):
    """Kinds of spiritual-formation tasks."""

    TELL_ME = "tell_me"
    PRAYER = "prayer"
    RHEMA = "rhema"
    ACTION = "action"
    SILENCE = "silence"
    WORSHIP = "worship"


class TaskStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class DisciplineResult(str, Enum):
    """Outcome of the rule table over missed mandatory tasks."""

    OK = "ok"
    WARNING = "warning"
    REMOVE = "remove"


class DisciplineRecommendation(str, Enum):
    """Four-tier recommendation of the discipline evaluator."""

    OK = "ok"
    ENCOURAGE = "encourage"
    WARNING = "warning"
    REMOVE = "remove"


class Room(BaseModel):
    id: str
    title: str
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_db_row(cls, row: dict) -> "Room":
        """Create a Room from a database row."""
        return cls(
            id=row["id"],
            title=row["title"],
            created_at=_parse_timestamp(row["created_at"]) or utcnow(),
        )


class Task(BaseModel):
    """A task set for a room on a given day."""

    id: str
    room_id: str
    title: str
    task_type: TaskType = TaskType.ACTION
    day_index: int = Field(default=0, ge=0)
    mandatory: bool = False
    status: TaskStatus = TaskStatus.ACTIVE
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_db_row(cls, row: dict) -> "Task":
        """Create a Task from a database row."""
        return cls(
            id=row["id"],
            room_id=row["room_id"],
            title=row["title"],
            task_type=TaskType(row["task_type"]),
            day_index=row["day_index"],
            mandatory=bool(row["mandatory"]),
            status=TaskStatus(row["status"]),
            created_at=_parse_timestamp(row["created_at"]) or utcnow(),
        )


class TaskProgress(BaseModel):
    """A participant's completion record for one task."""

    task_id: str
    user_id: str
    room_id: str
    completed: bool = False
    completed_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "TaskProgress":
        """Create a TaskProgress from a database row."""
        return cls(
            task_id=row["task_id"],
            user_id=row["user_id"],
            room_id=row["room_id"],
            completed=bool(row["completed"]),
            completed_at=_parse_timestamp(row["completed_at"]),
        )


class DisciplineReport(BaseModel):
    """Result of evaluating one participant in one room."""

    room_id: str
    user_id: str
    result: DisciplineResult
    missed: int
    mandatory_total: int
    completed_total: int


class UserRoomData(BaseModel):
    """Engagement figures fed to the four-tier evaluator."""

    user_id: str
    room_id: str
    missed_mandatory_tasks: int = Field(default=0, ge=0)
    consecutive_missed_days: int = Field(default=0, ge=0)
    total_completions: int = Field(default=0, ge=0)
    last_active_at: Optional[datetime] = None


class GovernanceScope(str, Enum):
    ROOM = "room"
    TASK = "task"
    CALL = "call"


class GovernanceAction(str, Enum):
    WARN_USER = "warn_user"
    REMOVE_USER = "remove_user"
    SUGGEST_TASK = "suggest_task"
    SUMMARIZE_CALL = "summarize_call"


class GovernanceLog(BaseModel):
    """An automated moderation action taken against a room, task or call."""

    id: str
    scope: GovernanceScope
    ref_id: str
    action: GovernanceAction
    executed_by: str = "gemini"
    target_user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_db_row(cls, row: dict) -> "GovernanceLog":
        """Create a GovernanceLog from a database row."""
        return cls(
            id=row["id"],
            scope=GovernanceScope(row["scope"]),
            ref_id=row["ref_id"],
            action=GovernanceAction(row["action"]),
            executed_by=row["executed_by"],
            target_user_id=row["target_user_id"],
            created_at=_parse_timestamp(row["created_at"]) or utcnow(),
        )


# Governance action matching a discipline outcome, if any
RESULT_ACTIONS: dict[DisciplineResult, GovernanceAction] = {
    DisciplineResult.WARNING: GovernanceAction.WARN_USER,
    DisciplineResult.REMOVE: GovernanceAction.REMOVE_USER,
}
