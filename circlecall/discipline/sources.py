"""Task and completion sources read by the discipline engine."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from circlecall.errors import RoomNotFoundError

from .models import Task, TaskProgress


class TaskSource(ABC):
    """Read access to a room's tasks and a participant's completions."""

    @abstractmethod
    async def mandatory_tasks(self, room_id: str) -> list[Task]:
        """Mandatory tasks of a room.

        Raises:
            RoomNotFoundError: If the room does not exist
        """
        ...

    @abstractmethod
    async def completions(self, user_id: str, room_id: str) -> list[TaskProgress]:
        """Completion records of a participant in a room.

        Raises:
            RoomNotFoundError: If the room does not exist
        """
        ...


class InMemoryTaskSource(TaskSource):
    """Dictionary-backed task source, mostly for tests."""

    def __init__(self) -> None:
        self._tasks: dict[str, list[Task]] = {}
        self._progress: dict[tuple[str, str, str], TaskProgress] = {}

    def add_room(self, room_id: str) -> None:
        self._tasks.setdefault(room_id, [])

    def add_task(self, task: Task) -> Task:
        self.add_room(task.room_id)
        self._tasks[task.room_id].append(task)
        return task

    def record(
        self,
        room_id: str,
        task_id: str,
        user_id: str,
        completed: bool = True,
        completed_at: Optional[datetime] = None,
    ) -> TaskProgress:
        progress = TaskProgress(
            task_id=task_id,
            user_id=user_id,
            room_id=room_id,
            completed=completed,
            completed_at=completed_at,
        )
        self._progress[(room_id, user_id, task_id)] = progress
        return progress

    def _require_room(self, room_id: str) -> list[Task]:
        if room_id not in self._tasks:
            raise RoomNotFoundError(room_id)
        return self._tasks[room_id]

    async def mandatory_tasks(self, room_id: str) -> list[Task]:
        return [t for t in self._require_room(room_id) if t.mandatory]

    async def completions(self, user_id: str, room_id: str) -> list[TaskProgress]:
        self._require_room(room_id)
        return [
            p for (room, user, _), p in self._progress.items()
            if room == room_id and user == user_id
        ]
