"""Tests for the Gemini client and model helpers."""

from types import SimpleNamespace

import pytest

from circlecall.config import Settings
from circlecall.models import (
    APIError,
    AuthenticationError,
    FinishReason,
    GeminiClient,
    Message,
    MessageRole,
    ModelResponse,
    RateLimitError,
    get_discipline_client,
    get_moderator_client,
    with_retry,
)


class TestGeminiClient:
    """Tests for GeminiClient."""

    def test_default_model_id(self) -> None:
        """Test the default model."""
        client = GeminiClient(api_key="test-key")
        assert client.model_id == "gemini-2.0-flash"

    def test_is_available_with_key(self) -> None:
        """Test availability with an API key."""
        assert GeminiClient(api_key="test-key").is_available is True

    def test_is_available_without_key(self, clean_env: None) -> None:
        """Test availability without an API key."""
        assert GeminiClient().is_available is False

    def test_convert_messages(self) -> None:
        """Test splitting the system instruction from contents."""
        client = GeminiClient(api_key="test-key")
        system, contents = client._convert_messages(
            [Message.system("Be brief."), Message.user("Hello")]
        )

        assert system == "Be brief."
        assert contents == [{"role": "user", "parts": [{"text": "Hello"}]}]

    def test_parse_response(self) -> None:
        """Test mapping an SDK response."""
        client = GeminiClient(api_key="test-key")
        raw = SimpleNamespace(
            text="Welcome, Anna.",
            candidates=[SimpleNamespace(finish_reason="MAX_TOKENS")],
            usage_metadata=SimpleNamespace(
                prompt_token_count=10, candidates_token_count=4, total_token_count=14
            ),
        )

        response = client._parse_response(raw)

        assert response.content == "Welcome, Anna."
        assert response.model == "gemini-2.0-flash"
        assert response.finish_reason == FinishReason.LENGTH
        assert response.usage.total_tokens == 14

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("429 RESOURCE_EXHAUSTED", RateLimitError),
            ("API key not valid", AuthenticationError),
            ("Internal error", APIError),
        ],
    )
    def test_handle_api_error(self, message: str, expected: type) -> None:
        """Test mapping SDK errors to model errors."""
        client = GeminiClient(api_key="test-key")

        with pytest.raises(expected):
            client._handle_api_error(RuntimeError(message))

    @pytest.mark.asyncio
    async def test_generate_without_key(self, clean_env: None) -> None:
        """Test that generating without a key fails fast."""
        with pytest.raises(AuthenticationError):
            await GeminiClient().generate([Message.user("hi")])


class TestWithRetry:
    """Tests for the retry decorator."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self) -> None:
        """Test that retryable errors are retried."""
        attempts = []

        @with_retry(max_retries=2, base_delay=0.0)
        async def flaky() -> str:
            attempts.append(1)
            if len(attempts) < 2:
                raise APIError("temporary")
            return "ok"

        assert await flaky() == "ok"
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_raises(self) -> None:
        """Test that other errors propagate immediately."""
        attempts = []

        @with_retry(max_retries=3, base_delay=0.0)
        async def broken() -> str:
            attempts.append(1)
            raise AuthenticationError("bad key")

        with pytest.raises(AuthenticationError):
            await broken()
        assert len(attempts) == 1


class TestFactories:
    """Tests for the client factories."""

    def test_moderator_client_needs_key(self, clean_env: None) -> None:
        """Test that no client is built without a key."""
        assert get_moderator_client(Settings(google_api_key=None)) is None

    def test_moderator_client(self, clean_env: None) -> None:
        """Test building the moderator client from settings."""
        settings = Settings(google_api_key="key", moderator={"temperature": 0.3})

        client = get_moderator_client(settings)

        assert isinstance(client, GeminiClient)
        assert client.temperature == 0.3

    def test_discipline_client_opt_in(self, clean_env: None) -> None:
        """Test that the discipline client requires opting in."""
        assert get_discipline_client(Settings(google_api_key="key")) is None
        assert get_discipline_client(
            Settings(google_api_key="key", discipline={"use_model": True})
        ) is not None


class TestTypes:
    """Tests for message and response types."""

    def test_message_factories(self) -> None:
        """Test message constructors."""
        assert Message.user("hi").role == MessageRole.USER
        assert Message.system("be kind").role == MessageRole.SYSTEM

    def test_empty_response(self) -> None:
        """Test detecting empty output."""
        assert ModelResponse(content="  ", model="m").is_empty is True
        assert ModelResponse(content="Amen", model="m").is_empty is False
