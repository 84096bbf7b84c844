"""SQLite-backed implementations of the call stores and task source."""

import uuid
from typing import Any, Optional

from circlecall.calls.models import Call, CallMode, CallParticipant, CallScope
from circlecall.calls.stores import CallStore, ParticipantStore
from circlecall.discipline.models import Task, TaskProgress
from circlecall.discipline.sources import TaskSource
from circlecall.errors import RoomNotFoundError

from .persistence import DatabaseManager


class SQLiteCallStore(CallStore):
    """Call store over the ``calls`` table."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def get(self, call_id: str) -> Optional[Call]:
        row = await self.db.get_call(call_id)
        return Call.from_db_row(row) if row else None

    async def create(
        self,
        scope: CallScope,
        ref_id: str,
        mode: CallMode,
        started_by: str,
        circle_talking_enabled: bool = False,
    ) -> Call:
        row = await self.db.create_call(
            call_id=uuid.uuid4().hex,
            scope=scope,
            ref_id=ref_id,
            mode=mode,
            started_by=started_by,
            circle_talking_enabled=circle_talking_enabled,
        )
        return Call.from_db_row(row)

    async def update(self, call_id: str, **fields: Any) -> Optional[Call]:
        row = await self.db.update_call(call_id, **fields)
        return Call.from_db_row(row) if row else None


class SQLiteParticipantStore(ParticipantStore):
    """Participant store over the ``call_participants`` table."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def add(self, call_id: str, user_id: str) -> CallParticipant:
        row = await self.db.add_participant(call_id, user_id)
        return CallParticipant.from_db_row(row)

    async def remove(self, call_id: str, user_id: str) -> bool:
        return await self.db.remove_participant(call_id, user_id)

    async def update(
        self, call_id: str, user_id: str, **fields: Any
    ) -> Optional[CallParticipant]:
        row = await self.db.update_participant(call_id, user_id, **fields)
        return CallParticipant.from_db_row(row) if row else None

    async def list_all(self, call_id: str) -> list[CallParticipant]:
        rows = await self.db.list_participants(call_id)
        return [CallParticipant.from_db_row(row) for row in rows]

    async def get(self, call_id: str, user_id: str) -> Optional[CallParticipant]:
        row = await self.db.get_participant(call_id, user_id)
        return CallParticipant.from_db_row(row) if row else None


class SQLiteTaskSource(TaskSource):
    """Task source over the ``rooms``, ``tasks`` and ``task_progress`` tables."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def _require_room(self, room_id: str) -> None:
        if await self.db.get_room(room_id) is None:
            raise RoomNotFoundError(room_id)

    async def mandatory_tasks(self, room_id: str) -> list[Task]:
        await self._require_room(room_id)
        rows = await self.db.list_tasks(room_id, mandatory_only=True)
        return [Task.from_db_row(row) for row in rows]

    async def completions(self, user_id: str, room_id: str) -> list[TaskProgress]:
        await self._require_room(room_id)
        rows = await self.db.get_task_progress(user_id, room_id)
        return [TaskProgress.from_db_row(row) for row in rows]
