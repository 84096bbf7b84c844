"""Gemini (Google) model client using the google.genai SDK."""

import logging
import os
from typing import Any, Optional

from .base import (
    APIError,
    AuthenticationError,
    ModelClient,
    RateLimitError,
    with_retry,
)
from .types import FinishReason, Message, MessageRole, ModelResponse, Usage

logger = logging.getLogger(__name__)


class GeminiClient(ModelClient):
    """Client for Google's Gemini models."""

    name = "gemini"
    display_name = "Gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: Optional[str] = None,
        max_tokens: int = 256,
        temperature: float = 0.7,
    ):
        super().__init__(api_key, model_id, max_tokens, temperature)

        # The SDK reads GEMINI_API_KEY; GOOGLE_API_KEY is accepted as well
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")

        self._async_client = None

    def _get_async_client(self) -> Any:
        """Get or create the async Gemini client."""
        if self._async_client is None and self.api_key:
            try:
                from google import genai
            except ImportError:
                raise ImportError(
                    "google-genai package not installed. "
                    "Run: pip install google-genai"
                )
            self._async_client = genai.Client(api_key=self.api_key).aio
        return self._async_client

    def _default_model_id(self) -> str:
        return "gemini-2.0-flash"

    @property
    def is_available(self) -> bool:
        return self.api_key is not None

    def _convert_messages(
        self, messages: list[Message], system: Optional[str] = None
    ) -> tuple[Optional[str], list[dict[str, Any]]]:
        """Convert messages to Gemini format.

        Returns:
            Tuple of (system_instruction, contents)
        """
        system_instruction = system
        contents = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_instruction = msg.content
                continue

            role = "user" if msg.role == MessageRole.USER else "model"
            contents.append({
                "role": role,
                "parts": [{"text": msg.content}],
            })

        return system_instruction, contents

    def _parse_response(self, response: Any) -> ModelResponse:
        """Parse Gemini response to unified format."""
        text = ""
        try:
            if getattr(response, "text", None):
                text = response.text
        except Exception as e:
            # .text raises when the candidate was blocked
            logger.debug(f"Error reading response text: {e}")

        finish_reason = FinishReason.STOP
        candidates = getattr(response, "candidates", None)
        if candidates:
            reason = str(getattr(candidates[0], "finish_reason", "")).lower()
            if "length" in reason or "max" in reason:
                finish_reason = FinishReason.LENGTH
            elif "safety" in reason:
                finish_reason = FinishReason.CONTENT_FILTER

        usage = None
        meta = getattr(response, "usage_metadata", None)
        if meta:
            usage = Usage(
                prompt_tokens=getattr(meta, "prompt_token_count", 0) or 0,
                completion_tokens=getattr(meta, "candidates_token_count", 0) or 0,
                total_tokens=getattr(meta, "total_token_count", 0) or 0,
            )

        return ModelResponse(
            content=text,
            model=self.model_id,
            finish_reason=finish_reason,
            usage=usage,
            raw_response=response,
        )

    def _handle_api_error(self, e: Exception) -> None:
        """Convert Google API exceptions to our error types."""
        error_msg = str(e)

        if hasattr(e, "message"):
            error_msg = str(e.message)
        elif hasattr(e, "args") and e.args:
            error_msg = str(e.args[0])

        if not error_msg or error_msg in ("", "object", "'object'"):
            error_msg = f"{type(e).__name__}: {repr(e)}"

        error_str = error_msg.lower()

        if "quota" in error_str or "rate" in error_str or "429" in error_str or "resource_exhausted" in error_str:
            raise RateLimitError(error_msg)
        elif "api key" in error_str or "authentication" in error_str or "unauthenticated" in error_str:
            raise AuthenticationError(error_msg)
        else:
            raise APIError(error_msg)

    @with_retry(max_retries=2)
    async def generate(
        self,
        messages: list[Message],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Generate a response from Gemini."""
        if not self.is_available:
            raise AuthenticationError("Google API key not configured")

        try:
            from google.genai import types

            async_client = self._get_async_client()
            system_instruction, contents = self._convert_messages(messages, system)

            config_kwargs = {
                "max_output_tokens": max_tokens or self.max_tokens,
                "temperature": temperature if temperature is not None else self.temperature,
            }
            if system_instruction:
                config_kwargs["system_instruction"] = system_instruction

            response = await async_client.models.generate_content(
                model=self.model_id,
                contents=contents,
                config=types.GenerateContentConfig(**config_kwargs),
            )

            return self._parse_response(response)

        except Exception as e:
            self._handle_api_error(e)
            raise  # pragma: no cover
