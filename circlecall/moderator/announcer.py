"""Moderator announcements for circle talking transitions.

Every speaker transition carries a short announcement. A generative model
writes it when one is configured; otherwise, or whenever the model fails,
a deterministic template naming the speaker is used. Generators never
raise to the caller.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from circlecall.config import Settings, get_settings
from circlecall.models import Message, ModelClient, get_moderator_client

from .prompts import (
    DISABLED_NEXT_TEMPLATE,
    DISABLED_START_TEMPLATE,
    ERROR_NEXT_TEMPLATE,
    ERROR_START_TEMPLATE,
    MODERATOR_SYSTEM_PROMPT,
    format_announcement_prompt,
)

logger = logging.getLogger(__name__)


class AnnouncementKind(str, Enum):
    """The transition being announced."""

    START = "start"
    NEXT = "next"


def fallback_announcement(
    kind: AnnouncementKind,
    incoming_speaker_id: str,
    failed: bool = False,
) -> str:
    """Deterministic announcement naming the incoming speaker.

    Args:
        kind: Transition kind
        incoming_speaker_id: Speaker receiving the floor
        failed: True when substituting for a failed generation rather than
            a disabled generator

    Returns:
        Announcement text
    """
    if failed:
        template = ERROR_START_TEMPLATE if kind == AnnouncementKind.START else ERROR_NEXT_TEMPLATE
    else:
        template = DISABLED_START_TEMPLATE if kind == AnnouncementKind.START else DISABLED_NEXT_TEMPLATE
    return template.format(incoming=incoming_speaker_id)


class AnnouncementGenerator(ABC):
    """Produces the moderator message for a speaker transition."""

    @abstractmethod
    async def generate(
        self,
        kind: AnnouncementKind,
        outgoing_speaker_id: Optional[str],
        incoming_speaker_id: str,
    ) -> str:
        """Return announcement text. Must not raise."""
        ...


class FallbackAnnouncer(AnnouncementGenerator):
    """Announcer used when no generative model is available."""

    async def generate(
        self,
        kind: AnnouncementKind,
        outgoing_speaker_id: Optional[str],
        incoming_speaker_id: str,
    ) -> str:
        return fallback_announcement(kind, incoming_speaker_id)


class ModelAnnouncer(AnnouncementGenerator):
    """Announcer backed by a generative model client."""

    def __init__(
        self,
        client: ModelClient,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        self.client = client
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(
        self,
        kind: AnnouncementKind,
        outgoing_speaker_id: Optional[str],
        incoming_speaker_id: str,
    ) -> str:
        if not self.client.is_available:
            return fallback_announcement(kind, incoming_speaker_id)

        prompt = format_announcement_prompt(kind.value, outgoing_speaker_id, incoming_speaker_id)
        try:
            response = await self.client.generate(
                messages=[Message.user(prompt)],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=MODERATOR_SYSTEM_PROMPT,
            )
        except Exception as e:
            logger.error(f"Moderator generation error: {e}")
            return fallback_announcement(kind, incoming_speaker_id, failed=True)

        if response.is_empty:
            logger.warning("Moderator model returned an empty announcement")
            return fallback_announcement(kind, incoming_speaker_id, failed=True)

        return response.content.strip()


def create_announcer(settings: Optional[Settings] = None) -> AnnouncementGenerator:
    """Build the announcer the settings call for.

    Args:
        settings: Application settings (loaded if omitted)

    Returns:
        A model-backed announcer when moderation is enabled and an API key is
        configured, otherwise the template announcer
    """
    settings = settings or get_settings()
    client = get_moderator_client(settings)
    if client is None:
        return FallbackAnnouncer()
    return ModelAnnouncer(
        client,
        max_tokens=settings.moderator.max_tokens,
        temperature=settings.moderator.temperature,
    )
