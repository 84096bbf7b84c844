"""Generative model clients for CircleCall."""

import logging
from typing import Optional

from circlecall.config import Settings, get_settings

from .base import (
    APIError,
    AuthenticationError,
    ModelClient,
    ModelError,
    RateLimitError,
    with_retry,
)
from .gemini import GeminiClient
from .types import FinishReason, Message, MessageRole, ModelResponse, Usage

logger = logging.getLogger(__name__)


def get_moderator_client(settings: Optional[Settings] = None) -> Optional[ModelClient]:
    """Create the client used for moderator announcements.

    Returns:
        A configured client, or None when announcements are disabled or no
        API key is configured.
    """
    settings = settings or get_settings()
    if not settings.moderator_available:
        logger.debug("Moderator model unavailable, announcements use templates")
        return None

    return GeminiClient(
        api_key=settings.google_api_key,
        model_id=settings.moderator.model_id,
        max_tokens=settings.moderator.max_tokens,
        temperature=settings.moderator.temperature,
    )


def get_discipline_client(settings: Optional[Settings] = None) -> Optional[ModelClient]:
    """Create the client used by the discipline evaluator, if enabled."""
    settings = settings or get_settings()
    if not settings.discipline_model_available:
        return None

    return GeminiClient(
        api_key=settings.google_api_key,
        model_id=settings.moderator.model_id,
        max_tokens=200,
        temperature=0.2,
    )


__all__ = [
    "APIError",
    "AuthenticationError",
    "FinishReason",
    "GeminiClient",
    "Message",
    "MessageRole",
    "ModelClient",
    "ModelError",
    "ModelResponse",
    "RateLimitError",
    "Usage",
    "get_discipline_client",
    "get_moderator_client",
    "with_retry",
]
