"""Discipline engine.

Scores a participant's adherence to a room's mandatory tasks:

    missed = |mandatory tasks| - |mandatory tasks with a completed record|

and classifies it: at or above the remove threshold (default 5) the
participant should be removed, at or above the warning threshold (default
3) warned, otherwise they are fine. The engine only reads.
"""

import logging
from typing import Iterable, Optional

from circlecall.config.settings import DisciplineConfig

from .models import (
    DisciplineReport,
    DisciplineResult,
    Task,
    TaskProgress,
    UserRoomData,
)
from .sources import TaskSource

logger = logging.getLogger(__name__)

DEFAULT_WARNING_MISSED = 3
DEFAULT_REMOVE_MISSED = 5


def completed_task_ids(completions: Iterable[TaskProgress]) -> set[str]:
    """IDs of tasks with a completed record."""
    return {c.task_id for c in completions if c.completed}


def count_missed(
    mandatory_tasks: Iterable[Task],
    completions: Iterable[TaskProgress],
) -> int:
    """Number of mandatory tasks without a completed record."""
    done = completed_task_ids(completions)
    mandatory_ids = {t.id for t in mandatory_tasks if t.mandatory}
    return len(mandatory_ids) - len(mandatory_ids & done)


def classify_missed(
    missed: int,
    warning_at: int = DEFAULT_WARNING_MISSED,
    remove_at: int = DEFAULT_REMOVE_MISSED,
) -> DisciplineResult:
    """Map a missed-task count to a result.

    Args:
        missed: Number of missed mandatory tasks
        warning_at: Lowest count that earns a warning
        remove_at: Lowest count that earns removal

    Returns:
        DisciplineResult
    """
    if missed >= remove_at:
        return DisciplineResult.REMOVE
    if missed >= warning_at:
        return DisciplineResult.WARNING
    return DisciplineResult.OK


def consecutive_missed_days(
    mandatory_tasks: Iterable[Task],
    completions: Iterable[TaskProgress],
) -> int:
    """Count trailing days with at least one missed mandatory task.

    Walks back from the latest day that has mandatory tasks and stops at the
    first day whose mandatory tasks were all completed.
    """
    done = completed_task_ids(completions)
    days: dict[int, bool] = {}
    for task in mandatory_tasks:
        if not task.mandatory:
            continue
        missed = task.id not in done
        days[task.day_index] = days.get(task.day_index, False) or missed

    streak = 0
    for day in sorted(days, reverse=True):
        if not days[day]:
            break
        streak += 1
    return streak


class DisciplineEngine:
    """Evaluates participants against a room's mandatory tasks."""

    def __init__(
        self,
        source: TaskSource,
        config: Optional[DisciplineConfig] = None,
    ):
        """Initialize the engine.

        Args:
            source: Where tasks and completions are read from
            config: Thresholds (defaults if omitted)
        """
        self.source = source
        self.config = config or DisciplineConfig()

    def classify(self, missed: int) -> DisciplineResult:
        """Classify a missed count with the configured thresholds."""
        return classify_missed(
            missed,
            warning_at=self.config.warning_missed,
            remove_at=self.config.remove_missed,
        )

    async def evaluate(self, room_id: str, user_id: str) -> DisciplineReport:
        """Evaluate one participant in one room.

        Raises:
            RoomNotFoundError: If the source does not know the room
        """
        mandatory = await self.source.mandatory_tasks(room_id)
        completions = await self.source.completions(user_id, room_id)

        missed = count_missed(mandatory, completions)
        result = self.classify(missed)

        logger.debug(f"Discipline for {user_id} in {room_id}: {missed} missed -> {result.value}")

        return DisciplineReport(
            room_id=room_id,
            user_id=user_id,
            result=result,
            missed=missed,
            mandatory_total=len({t.id for t in mandatory if t.mandatory}),
            completed_total=len(completed_task_ids(completions)),
        )

    async def gather(self, room_id: str, user_id: str) -> UserRoomData:
        """Collect the engagement figures the four-tier evaluator needs."""
        mandatory = await self.source.mandatory_tasks(room_id)
        completions = await self.source.completions(user_id, room_id)

        completed = [c for c in completions if c.completed]
        timestamps = [c.completed_at for c in completed if c.completed_at is not None]

        return UserRoomData(
            user_id=user_id,
            room_id=room_id,
            missed_mandatory_tasks=count_missed(mandatory, completions),
            consecutive_missed_days=consecutive_missed_days(mandatory, completions),
            total_completions=len(completed),
            last_active_at=max(timestamps) if timestamps else None,
        )
