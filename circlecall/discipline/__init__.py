"""Discipline evaluation for room participants.

Main components:
- DisciplineEngine: rule table over missed mandatory tasks (ok/warning/remove)
- DisciplineEvaluator: four-tier recommendation with a model and rule fallback
- TaskSource: read interface for tasks and completions
"""

from .engine import (
    DisciplineEngine,
    classify_missed,
    consecutive_missed_days,
    count_missed,
)
from .evaluator import DisciplineEvaluator, DisciplineVerdict, fallback_recommendation
from .models import (
    DisciplineRecommendation,
    DisciplineReport,
    DisciplineResult,
    GovernanceAction,
    GovernanceLog,
    GovernanceScope,
    Room,
    Task,
    TaskProgress,
    TaskStatus,
    TaskType,
    UserRoomData,
)
from .sources import InMemoryTaskSource, TaskSource

__all__ = [
    "DisciplineEngine",
    "DisciplineEvaluator",
    "DisciplineRecommendation",
    "DisciplineReport",
    "DisciplineResult",
    "DisciplineVerdict",
    "GovernanceAction",
    "GovernanceLog",
    "GovernanceScope",
    "InMemoryTaskSource",
    "Room",
    "Task",
    "TaskProgress",
    "TaskSource",
    "TaskStatus",
    "TaskType",
    "UserRoomData",
    "classify_missed",
    "consecutive_missed_days",
    "count_missed",
    "fallback_recommendation",
]
