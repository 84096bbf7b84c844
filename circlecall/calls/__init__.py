"""Live call moderation with circle talking.

Main components:
- CallSession: lifecycle and turn-taking state machine
- SpeakingRotation: the fixed speaking order of a running circle
- CallStore / ParticipantStore: persistence interfaces with in-memory fakes
- CallEvent: events emitted after each transition
"""

from .events import CallEvent, CallEventType
from .models import (
    Call,
    CallMode,
    CallParticipant,
    CallScope,
    CallState,
    CallStatus,
    CreateCallRequest,
)
from .session import (
    ADMIN_POLICIES,
    AdminCheck,
    CallSession,
    anyone_is_admin,
    create_call_session,
    creator_is_admin,
)
from .stores import (
    CallStore,
    InMemoryCallStore,
    InMemoryParticipantStore,
    ParticipantStore,
)
from .turns import SpeakingOrderRule, SpeakingRotation, order_for_circle

__all__ = [
    "ADMIN_POLICIES",
    "AdminCheck",
    "Call",
    "CallEvent",
    "CallEventType",
    "CallMode",
    "CallParticipant",
    "CallScope",
    "CallSession",
    "CallState",
    "CallStatus",
    "CallStore",
    "CreateCallRequest",
    "InMemoryCallStore",
    "InMemoryParticipantStore",
    "ParticipantStore",
    "SpeakingOrderRule",
    "SpeakingRotation",
    "anyone_is_admin",
    "create_call_session",
    "creator_is_admin",
    "order_for_circle",
]
