"""Call session core.

The CallSession drives a call through its lifecycle:
1. Creating the call (active, free talking)
2. Participants joining, leaving and raising hands
3. Starting circle talking: fixing a speaking order and giving the floor
   to the first speaker
4. Advancing the floor around the circle under admin control
5. Ending the call (terminal)

Every speaker transition carries a moderator announcement. Transitions for
the same call are serialized on a per-call lock; different calls never
block each other.
"""

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from circlecall.config import Settings
from circlecall.errors import (
    CallEndedError,
    CallNotFoundError,
    CircleCallError,
    CircleNotActiveError,
    ForbiddenError,
    NoParticipantsError,
    ParticipantNotFoundError,
)
from circlecall.moderator import (
    AnnouncementGenerator,
    AnnouncementKind,
    FallbackAnnouncer,
    create_announcer,
    fallback_announcement,
)
from circlecall.utils import get_call_logger

from .events import CallEvent
from .models import Call, CallParticipant, CallStatus, CreateCallRequest, utcnow
from .stores import CallStore, ParticipantStore
from .turns import SpeakingOrderRule, SpeakingRotation, order_for_circle

logger = logging.getLogger(__name__)

# Bound on how long a transition waits for its announcement
ANNOUNCEMENT_TIMEOUT = 5.0  # seconds

AdminCheck = Callable[[Call, Optional[str]], Union[bool, Awaitable[bool]]]
EventListener = Callable[[CallEvent], Union[None, Awaitable[None]]]


def creator_is_admin(call: Call, requester_id: Optional[str]) -> bool:
    """Only the user who started the call may moderate it."""
    return requester_id is not None and requester_id == call.started_by


def anyone_is_admin(call: Call, requester_id: Optional[str]) -> bool:
    """Any requester may moderate."""
    return True


ADMIN_POLICIES: dict[str, AdminCheck] = {
    "creator": creator_is_admin,
    "open": anyone_is_admin,
}


class CallSession:
    """Orchestrates call lifecycle and circle talking.

    Stores, announcer and authorization predicate are injected so the core
    can run against in-memory fakes or SQLite alike.
    """

    def __init__(
        self,
        calls: CallStore,
        participants: ParticipantStore,
        announcer: Optional[AnnouncementGenerator] = None,
        speaking_order: SpeakingOrderRule = SpeakingOrderRule.JOIN,
        is_admin: AdminCheck = creator_is_admin,
        announcement_timeout: float = ANNOUNCEMENT_TIMEOUT,
        on_event: Optional[EventListener] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the call session core.

        Args:
            calls: Call metadata store
            participants: Participant store
            announcer: Moderator announcement generator (templates if omitted)
            speaking_order: Rule for assigning speaking orders
            is_admin: Predicate deciding who may start, advance and end
            announcement_timeout: Seconds to wait for an announcement
            on_event: Optional listener receiving a CallEvent per transition
            clock: Source of the current time
        """
        self.calls = calls
        self.participants = participants
        self.announcer = announcer or FallbackAnnouncer()
        self.speaking_order = SpeakingOrderRule(speaking_order)
        self.is_admin = is_admin
        self.announcement_timeout = announcement_timeout
        self.on_event = on_event
        self.clock = clock

        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, call_id: str) -> asyncio.Lock:
        lock = self._locks.get(call_id)
        if lock is None:
            lock = self._locks[call_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def _locked(self, call_id: str) -> AsyncIterator[None]:
        """Hold the call's lock for one transition.

        A lock is only kept while its call is live: a transition that fails
        on an unknown or ended call drops it again.
        """
        try:
            async with self._lock_for(call_id):
                yield
        except CircleCallError:
            call = await self.calls.get(call_id)
            if call is None or call.is_ended:
                self._locks.pop(call_id, None)
            raise

    @property
    def locked_calls(self) -> list[str]:
        """IDs of calls currently holding a transition lock."""
        return list(self._locks)

    async def _emit(self, event: CallEvent) -> None:
        if self.on_event is None:
            return
        result = self.on_event(event)
        if inspect.isawaitable(result):
            await result

    # Lookups

    async def get_call(self, call_id: str) -> Call:
        """Get a call by ID.

        Raises:
            CallNotFoundError: If the call does not exist
        """
        call = await self.calls.get(call_id)
        if call is None:
            raise CallNotFoundError(call_id)
        return call

    async def get_participants(self, call_id: str) -> list[CallParticipant]:
        """Participants of a call in rotation order."""
        await self.get_call(call_id)
        return SpeakingRotation(await self.participants.list_all(call_id)).speakers

    async def get_current_speaker(self, call_id: str) -> Optional[CallParticipant]:
        """The participant holding the floor, if still present."""
        call = await self.get_call(call_id)
        if call.current_speaker_id is None:
            return None
        return await self.participants.get(call_id, call.current_speaker_id)

    async def _require_active(self, call_id: str) -> Call:
        call = await self.get_call(call_id)
        if call.is_ended:
            raise CallEndedError(call_id)
        return call

    async def _authorize(self, call: Call, requester_id: Optional[str], action: str) -> None:
        allowed = self.is_admin(call, requester_id)
        if inspect.isawaitable(allowed):
            allowed = await allowed
        if not allowed:
            get_call_logger(call.id).warning(f"Rejected '{action}' by {requester_id}")
            raise ForbiddenError(call.id, requester_id, action)

    async def _save(self, call_id: str, **fields) -> Call:
        updated = await self.calls.update(call_id, **fields)
        if updated is None:
            raise CallNotFoundError(call_id)
        return updated

    # Lifecycle

    async def create_call(self, request: CreateCallRequest) -> Call:
        """Create a call in the active, free-talking state.

        The request's circle flag is recorded as off: circle talking only
        begins through start_circle_talking.
        """
        if request.circle_talking_enabled:
            logger.debug("Circle talking requested at creation; waiting for explicit start")

        call = await self.calls.create(
            scope=request.scope,
            ref_id=request.ref_id,
            mode=request.mode,
            started_by=request.started_by,
            circle_talking_enabled=False,
        )
        get_call_logger(call.id).info(
            f"Created for {call.scope.value} {call.ref_id} by {call.started_by}"
        )
        await self._emit(CallEvent.call_created(call))
        return call

    async def join(self, call_id: str, user_id: str) -> CallParticipant:
        """Add a user to an active call, muted and with hand down.

        Joining again returns the existing participant untouched.

        Raises:
            CallNotFoundError: If the call does not exist
            CallEndedError: If the call has ended
        """
        async with self._locked(call_id):
            await self._require_active(call_id)

            existing = await self.participants.get(call_id, user_id)
            if existing is not None:
                return existing

            participant = await self.participants.add(call_id, user_id)

        get_call_logger(call_id).info(f"{user_id} joined")
        await self._emit(CallEvent.participant_joined(call_id, participant))
        return participant

    async def leave(self, call_id: str, user_id: str) -> bool:
        """Remove a user from a call. Never fails.

        If the current speaker leaves, the floor is not reassigned; it stays
        with the departed speaker until the next advance_speaker.

        Returns:
            True if the user was a participant
        """
        call = await self.calls.get(call_id)
        if call is None:
            return False

        if call.is_ended:
            removed = await self.participants.remove(call_id, user_id)
        else:
            async with self._locked(call_id):
                removed = await self.participants.remove(call_id, user_id)
                call = await self.calls.get(call_id)
            if call is None or call.is_ended:
                self._locks.pop(call_id, None)

        if not removed:
            return False

        if call is not None and call.circle_talking_enabled and call.current_speaker_id == user_id:
            get_call_logger(call_id).info(
                f"Current speaker {user_id} left; floor held until next advance"
            )
        else:
            get_call_logger(call_id).info(f"{user_id} left")
        await self._emit(CallEvent.participant_left(call_id, user_id))
        return True

    async def raise_hand(self, call_id: str, user_id: str) -> CallParticipant:
        """Raise a participant's hand. Does not change the floor.

        Raises:
            CallNotFoundError: If the call does not exist
            CallEndedError: If the call has ended
            ParticipantNotFoundError: If the user has not joined
        """
        async with self._locked(call_id):
            await self._require_active(call_id)
            participant = await self.participants.update(call_id, user_id, hand_raised=True)
            if participant is None:
                raise ParticipantNotFoundError(call_id, user_id)

        await self._emit(CallEvent.hand_raised(call_id, participant))
        return participant

    # Circle talking

    async def start_circle_talking(self, call_id: str, requester_id: Optional[str]) -> Call:
        """Fix a speaking order and give the floor to its first participant.

        Restarting a running circle reassigns every order from scratch.

        Raises:
            CallNotFoundError: If the call does not exist
            CallEndedError: If the call has ended
            ForbiddenError: If the requester may not moderate
            NoParticipantsError: If nobody has joined
        """
        async with self._locked(call_id):
            call = await self._require_active(call_id)
            await self._authorize(call, requester_id, "start circle talking")

            participants = await self.participants.list_all(call_id)
            if not participants:
                raise NoParticipantsError(call_id)

            now = self.clock()
            await self._credit_speaker(call, now)

            ordered = order_for_circle(participants, self.speaking_order)
            for index, participant in enumerate(ordered):
                await self.participants.update(
                    call_id,
                    participant.user_id,
                    speaking_order=index,
                    muted=True,
                    hand_raised=False,
                )

            first_speaker_id = ordered[0].user_id
            await self.participants.update(call_id, first_speaker_id, muted=False)

            message = await self._announce(AnnouncementKind.START, None, first_speaker_id)

            updated = await self._save(
                call_id,
                circle_talking_enabled=True,
                current_speaker_id=first_speaker_id,
                speaker_start_time=now,
                moderator_message=message,
            )

        get_call_logger(call_id).info(
            f"Circle started with {len(ordered)} participants; "
            f"{first_speaker_id} has the floor"
        )
        await self._emit(CallEvent.circle_started(updated))
        return updated

    async def advance_speaker(self, call_id: str, requester_id: Optional[str]) -> Call:
        """Pass the floor to the next participant in the rotation.

        The rotation wraps from the last speaker to the first and never ends
        by itself.

        Raises:
            CallNotFoundError: If the call does not exist
            ForbiddenError: If the requester may not moderate
            CircleNotActiveError: If circle talking is off or has no speaker
            NoParticipantsError: If every participant has left
        """
        async with self._locked(call_id):
            call = await self.get_call(call_id)
            await self._authorize(call, requester_id, "advance the speaker")

            if not call.circle_talking_enabled or call.current_speaker_id is None:
                raise CircleNotActiveError(call_id)

            rotation = SpeakingRotation(await self.participants.list_all(call_id))
            if not len(rotation):
                raise NoParticipantsError(call_id)

            outgoing_id = call.current_speaker_id
            incoming = rotation.next_after(outgoing_id)
            now = self.clock()

            # Outgoing first: with a single participant they are also incoming
            await self._credit_speaker(call, now, mute=True)
            await self.participants.update(
                call_id,
                incoming.user_id,
                muted=False,
                hand_raised=False,
            )

            message = await self._announce(AnnouncementKind.NEXT, outgoing_id, incoming.user_id)

            updated = await self._save(
                call_id,
                current_speaker_id=incoming.user_id,
                speaker_start_time=now,
                moderator_message=message,
            )

        get_call_logger(call_id).info(f"Floor passed from {outgoing_id} to {incoming.user_id}")
        await self._emit(CallEvent.speaker_advanced(updated, outgoing_id))
        return updated

    async def end_call(self, call_id: str, requester_id: Optional[str]) -> Call:
        """End a call. Ending an already ended call changes nothing.

        Raises:
            CallNotFoundError: If the call does not exist
            ForbiddenError: If the requester may not moderate
        """
        async with self._locked(call_id):
            call = await self.get_call(call_id)
            await self._authorize(call, requester_id, "end the call")

            if call.is_ended:
                self._locks.pop(call_id, None)
                return call

            now = self.clock()
            await self._credit_speaker(call, now)

            updated = await self._save(
                call_id,
                status=CallStatus.ENDED,
                circle_talking_enabled=False,
                ended_at=now,
            )

        self._locks.pop(call_id, None)
        get_call_logger(call_id).info(f"Ended by {requester_id}")
        await self._emit(CallEvent.call_ended(updated))
        return updated

    # Helpers

    async def _credit_speaker(self, call: Call, now: datetime, mute: bool = False) -> None:
        """Add the current speaker's elapsed floor time to their total."""
        if not call.circle_talking_enabled or call.current_speaker_id is None:
            return

        speaker = await self.participants.get(call.id, call.current_speaker_id)
        if speaker is None:
            return

        fields: dict = {}
        if call.speaker_start_time is not None:
            elapsed = max(0.0, (now - call.speaker_start_time).total_seconds())
            fields["speaking_time_seconds"] = (speaker.speaking_time_seconds or 0.0) + elapsed
        if mute:
            fields["muted"] = True
        if fields:
            await self.participants.update(call.id, speaker.user_id, **fields)

    async def _announce(
        self,
        kind: AnnouncementKind,
        outgoing_speaker_id: Optional[str],
        incoming_speaker_id: str,
    ) -> str:
        """Get the moderator message, falling back to a template on any failure."""
        try:
            message = await asyncio.wait_for(
                self.announcer.generate(kind, outgoing_speaker_id, incoming_speaker_id),
                timeout=self.announcement_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Announcement timed out after {self.announcement_timeout}s")
            return fallback_announcement(kind, incoming_speaker_id, failed=True)
        except Exception as e:
            logger.warning(f"Announcement failed: {e}")
            return fallback_announcement(kind, incoming_speaker_id, failed=True)

        if not message or not message.strip():
            return fallback_announcement(kind, incoming_speaker_id, failed=True)
        return message.strip()


def create_call_session(
    calls: CallStore,
    participants: ParticipantStore,
    settings: Settings,
    announcer: Optional[AnnouncementGenerator] = None,
    on_event: Optional[EventListener] = None,
) -> CallSession:
    """Factory function to create a call session from settings.

    Args:
        calls: Call metadata store
        participants: Participant store
        settings: Application settings
        announcer: Announcer override (built from settings if omitted)
        on_event: Optional event listener

    Returns:
        Configured CallSession instance
    """
    if announcer is None:
        announcer = create_announcer(settings)

    return CallSession(
        calls=calls,
        participants=participants,
        announcer=announcer,
        speaking_order=SpeakingOrderRule(settings.circle.speaking_order),
        is_admin=ADMIN_POLICIES[settings.circle.admin_policy],
        announcement_timeout=settings.moderator.timeout_seconds,
        on_event=on_event,
    )
