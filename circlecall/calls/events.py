"""Call session event types.

Events are emitted by the call session after each transition completes so
the outer layer (CLI, signaling bridge, audit log) can react to it.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from .models import Call, CallParticipant


class CallEventType(Enum):
    """Types of events emitted by the call session."""

    CALL_CREATED = auto()
    PARTICIPANT_JOINED = auto()
    PARTICIPANT_LEFT = auto()
    HAND_RAISED = auto()
    CIRCLE_STARTED = auto()
    SPEAKER_ADVANCED = auto()
    CALL_ENDED = auto()


@dataclass
class CallEvent:
    """Event emitted by the call session.

    The type field determines which other fields are populated:
    - CALL_CREATED / CALL_ENDED: call
    - PARTICIPANT_JOINED / HAND_RAISED: user_id, participant
    - PARTICIPANT_LEFT: user_id
    - CIRCLE_STARTED: call, incoming_speaker_id, message
    - SPEAKER_ADVANCED: call, outgoing_speaker_id, incoming_speaker_id, message
    """

    type: CallEventType
    call_id: str
    call: Optional[Call] = None
    user_id: Optional[str] = None
    participant: Optional[CallParticipant] = None
    outgoing_speaker_id: Optional[str] = None
    incoming_speaker_id: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def call_created(cls, call: Call) -> "CallEvent":
        """Create a CALL_CREATED event."""
        return cls(type=CallEventType.CALL_CREATED, call_id=call.id, call=call)

    @classmethod
    def participant_joined(
        cls, call_id: str, participant: CallParticipant
    ) -> "CallEvent":
        """Create a PARTICIPANT_JOINED event."""
        return cls(
            type=CallEventType.PARTICIPANT_JOINED,
            call_id=call_id,
            user_id=participant.user_id,
            participant=participant,
        )

    @classmethod
    def participant_left(cls, call_id: str, user_id: str) -> "CallEvent":
        """Create a PARTICIPANT_LEFT event."""
        return cls(type=CallEventType.PARTICIPANT_LEFT, call_id=call_id, user_id=user_id)

    @classmethod
    def hand_raised(cls, call_id: str, participant: CallParticipant) -> "CallEvent":
        """Create a HAND_RAISED event."""
        return cls(
            type=CallEventType.HAND_RAISED,
            call_id=call_id,
            user_id=participant.user_id,
            participant=participant,
        )

    @classmethod
    def circle_started(cls, call: Call) -> "CallEvent":
        """Create a CIRCLE_STARTED event."""
        return cls(
            type=CallEventType.CIRCLE_STARTED,
            call_id=call.id,
            call=call,
            incoming_speaker_id=call.current_speaker_id,
            message=call.moderator_message,
        )

    @classmethod
    def speaker_advanced(cls, call: Call, outgoing_speaker_id: Optional[str]) -> "CallEvent":
        """Create a SPEAKER_ADVANCED event."""
        return cls(
            type=CallEventType.SPEAKER_ADVANCED,
            call_id=call.id,
            call=call,
            outgoing_speaker_id=outgoing_speaker_id,
            incoming_speaker_id=call.current_speaker_id,
            message=call.moderator_message,
        )

    @classmethod
    def call_ended(cls, call: Call) -> "CallEvent":
        """Create a CALL_ENDED event."""
        return cls(type=CallEventType.CALL_ENDED, call_id=call.id, call=call)
