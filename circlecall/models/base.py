"""Abstract base class for generative model clients."""

import asyncio
import logging
from abc import ABC, abstractmethod
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .types import Message, ModelResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ModelError(Exception):
    """Base exception for model errors."""

    pass


class RateLimitError(ModelError):
    """Raised when rate limited by the API."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class AuthenticationError(ModelError):
    """Raised when authentication fails."""

    pass


class APIError(ModelError):
    """Raised for general API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def with_retry(
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    retryable_exceptions: tuple = (RateLimitError, APIError),
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for retrying async functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff calculation
        retryable_exceptions: Tuple of exception types that trigger retries
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Optional[Exception] = None
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    if attempt == max_retries:
                        break

                    if isinstance(e, RateLimitError) and e.retry_after:
                        wait_time = e.retry_after
                    else:
                        wait_time = min(delay, max_delay)
                        delay *= exponential_base

                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                        f"Retrying in {wait_time:.1f}s..."
                    )
                    await asyncio.sleep(wait_time)

            raise last_exception  # type: ignore

        return wrapper  # type: ignore

    return decorator


class ModelClient(ABC):
    """Abstract base class for generative model clients.

    The moderator announcer and the discipline evaluator only need
    single-shot text generation, so that is the whole interface.
    """

    name: str
    display_name: str

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: Optional[str] = None,
        max_tokens: int = 256,
        temperature: float = 0.7,
    ):
        """Initialize the model client.

        Args:
            api_key: API key for the provider (falls back to env var)
            model_id: Model identifier to use
            max_tokens: Maximum tokens in response
            temperature: Temperature for generation
        """
        self.api_key = api_key
        self.model_id = model_id or self._default_model_id()
        self.max_tokens = max_tokens
        self.temperature = temperature

    @abstractmethod
    def _default_model_id(self) -> str:
        """Return the default model ID for this provider."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the model is available (API key configured, etc.)."""
        ...

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Generate a response from the model.

        Args:
            messages: Prompt messages
            max_tokens: Override default max tokens
            temperature: Override default temperature
            system: System prompt

        Returns:
            ModelResponse with generated content
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model_id={self.model_id!r}, available={self.is_available})"
