"""Speaking order for circle talking.

Handles:
- Choosing the order in which participants get the floor when a circle starts
- Sorting participants into the fixed rotation
- Finding the next speaker, wrapping from the last back to the first
"""

from enum import Enum
from typing import Iterable, Optional, Sequence

from .models import CallParticipant


class SpeakingOrderRule(str, Enum):
    """How speaking orders are assigned when circle talking starts.

    - join: by join time, earliest first
    - enumeration: whatever order the participant store lists them in
    - identity: sorted by user id
    """

    JOIN = "join"
    ENUMERATION = "enumeration"
    IDENTITY = "identity"


def order_for_circle(
    participants: Sequence[CallParticipant],
    rule: SpeakingOrderRule = SpeakingOrderRule.JOIN,
) -> list[CallParticipant]:
    """Arrange participants for a new circle.

    Position in the returned list becomes the participant's speaking order.

    Args:
        participants: Participants as enumerated by the store
        rule: Assignment rule

    Returns:
        Participants in speaking order
    """
    if rule == SpeakingOrderRule.IDENTITY:
        return sorted(participants, key=lambda p: p.user_id)
    if rule == SpeakingOrderRule.JOIN:
        # Stable: simultaneous joins keep the store's order
        return sorted(participants, key=lambda p: p.joined_at)
    return list(participants)


def _rotation_key(participant: CallParticipant) -> tuple[int, str]:
    # A missing order (joined after the circle started) counts as 0
    order = participant.speaking_order
    return (order if order is not None else 0, participant.user_id)


class SpeakingRotation:
    """The fixed rotation of a running circle.

    Participants are sorted ascending by speaking order with the user id
    breaking ties; a missing order sorts as 0.
    """

    def __init__(self, participants: Iterable[CallParticipant]):
        self._speakers = sorted(participants, key=_rotation_key)

    def __len__(self) -> int:
        return len(self._speakers)

    @property
    def speakers(self) -> list[CallParticipant]:
        """Participants in rotation order."""
        return list(self._speakers)

    @property
    def first(self) -> CallParticipant:
        """The participant who opens the rotation."""
        return self._speakers[0]

    def get(self, user_id: Optional[str]) -> Optional[CallParticipant]:
        """Look up a participant of the rotation."""
        for speaker in self._speakers:
            if speaker.user_id == user_id:
                return speaker
        return None

    def index_of(self, user_id: Optional[str]) -> int:
        """Position of a participant, or -1 if they are not in the rotation."""
        for index, speaker in enumerate(self._speakers):
            if speaker.user_id == user_id:
                return index
        return -1

    def next_after(self, user_id: Optional[str]) -> CallParticipant:
        """Return who speaks after ``user_id``.

        The rotation never ends: after the last speaker it wraps to the
        first. A speaker who is no longer present counts as index -1, so
        the floor goes to the first participant.

        Raises:
            IndexError: If the rotation is empty
        """
        if not self._speakers:
            raise IndexError("empty rotation")
        next_index = (self.index_of(user_id) + 1) % len(self._speakers)
        return self._speakers[next_index]
