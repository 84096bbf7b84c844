"""Store interfaces the call session core depends on.

The session core never touches a database directly; it is handed a
:class:`CallStore` and a :class:`ParticipantStore`. The in-memory
implementations here back the tests and any single-process use; the SQLite
adapters live in :mod:`circlecall.storage.stores`.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import (
    CALL_UPDATE_FIELDS,
    PARTICIPANT_UPDATE_FIELDS,
    Call,
    CallMode,
    CallParticipant,
    CallScope,
)


def _check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")


class CallStore(ABC):
    """Persistence for call metadata."""

    @abstractmethod
    async def get(self, call_id: str) -> Optional[Call]:
        """Return the call, or None if it does not exist."""
        ...

    @abstractmethod
    async def create(
        self,
        scope: CallScope,
        ref_id: str,
        mode: CallMode,
        started_by: str,
        circle_talking_enabled: bool = False,
    ) -> Call:
        """Create a new active call."""
        ...

    @abstractmethod
    async def update(self, call_id: str, **fields: Any) -> Optional[Call]:
        """Apply a partial update and return the new call, or None if absent."""
        ...


class ParticipantStore(ABC):
    """Persistence for the participants of each call."""

    @abstractmethod
    async def add(self, call_id: str, user_id: str) -> CallParticipant:
        """Add (or reset) a participant: muted, hand down, no order."""
        ...

    @abstractmethod
    async def remove(self, call_id: str, user_id: str) -> bool:
        """Remove a participant. Returns False if they were not present."""
        ...

    @abstractmethod
    async def update(
        self, call_id: str, user_id: str, **fields: Any
    ) -> Optional[CallParticipant]:
        """Apply a partial update, or return None if the participant is absent."""
        ...

    @abstractmethod
    async def list_all(self, call_id: str) -> list[CallParticipant]:
        """List participants in the store's natural enumeration order."""
        ...

    @abstractmethod
    async def get(self, call_id: str, user_id: str) -> Optional[CallParticipant]:
        """Return one participant, or None."""
        ...


class InMemoryCallStore(CallStore):
    """Dictionary-backed call store."""

    def __init__(self) -> None:
        self._calls: dict[str, Call] = {}

    async def get(self, call_id: str) -> Optional[Call]:
        return self._calls.get(call_id)

    async def create(
        self,
        scope: CallScope,
        ref_id: str,
        mode: CallMode,
        started_by: str,
        circle_talking_enabled: bool = False,
    ) -> Call:
        call = Call(
            id=uuid.uuid4().hex,
            scope=scope,
            ref_id=ref_id,
            mode=mode,
            started_by=started_by,
            circle_talking_enabled=circle_talking_enabled,
        )
        self._calls[call.id] = call
        return call

    async def update(self, call_id: str, **fields: Any) -> Optional[Call]:
        _check_fields(fields, CALL_UPDATE_FIELDS)
        call = self._calls.get(call_id)
        if call is None:
            return None
        updated = call.model_copy(update=fields)
        self._calls[call_id] = updated
        return updated


class InMemoryParticipantStore(ParticipantStore):
    """Dictionary-backed participant store.

    Enumeration order is insertion order, so re-adding a participant who
    already left moves them to the end.
    """

    def __init__(self) -> None:
        self._participants: dict[str, dict[str, CallParticipant]] = {}

    async def add(self, call_id: str, user_id: str) -> CallParticipant:
        members = self._participants.setdefault(call_id, {})
        members.pop(user_id, None)
        participant = CallParticipant(user_id=user_id)
        members[user_id] = participant
        return participant

    async def remove(self, call_id: str, user_id: str) -> bool:
        members = self._participants.get(call_id, {})
        return members.pop(user_id, None) is not None

    async def update(
        self, call_id: str, user_id: str, **fields: Any
    ) -> Optional[CallParticipant]:
        _check_fields(fields, PARTICIPANT_UPDATE_FIELDS)
        members = self._participants.get(call_id, {})
        participant = members.get(user_id)
        if participant is None:
            return None
        updated = participant.model_copy(update=fields)
        members[user_id] = updated
        return updated

    async def list_all(self, call_id: str) -> list[CallParticipant]:
        return list(self._participants.get(call_id, {}).values())

    async def get(self, call_id: str, user_id: str) -> Optional[CallParticipant]:
        return self._participants.get(call_id, {}).get(user_id)
