"""Message and response types for generative model providers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class MessageRole(str, Enum):
    """Role of a message sender."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class FinishReason(str, Enum):
    """Reason why the model stopped generating."""

    STOP = "stop"
    LENGTH = "length"
    ERROR = "error"
    CONTENT_FILTER = "content_filter"


@dataclass
class Message:
    """A message sent to a model."""

    role: MessageRole
    content: str

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=content)


@dataclass
class Usage:
    """Token usage information."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ModelResponse:
    """Complete response from a model."""

    content: str
    model: str
    finish_reason: FinishReason = FinishReason.STOP
    usage: Optional[Usage] = None
    raw_response: Optional[Any] = None

    @property
    def is_empty(self) -> bool:
        return not self.content or not self.content.strip()
