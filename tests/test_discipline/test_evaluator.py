"""Tests for the four-tier discipline evaluator."""

import asyncio
from typing import Optional

import pytest

from circlecall.config.settings import DisciplineConfig
from circlecall.discipline import (
    DisciplineEvaluator,
    DisciplineRecommendation,
    DisciplineResult,
    UserRoomData,
    classify_missed,
    fallback_recommendation,
)
from circlecall.models import Message, ModelClient, ModelResponse


class CannedClient(ModelClient):
    """Model client answering with fixed text."""

    name = "canned"
    display_name = "Canned"

    def __init__(self, content: str = "", error: Optional[Exception] = None, delay: float = 0.0):
        super().__init__(api_key="test-key")
        self.content = content
        self.error = error
        self.delay = delay

    def _default_model_id(self) -> str:
        return "canned-model"

    @property
    def is_available(self) -> bool:
        return True

    async def generate(
        self,
        messages: list[Message],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return ModelResponse(content=self.content, model=self.model_id)


def _data(missed: int = 0, days: int = 0) -> UserRoomData:
    return UserRoomData(
        user_id="user-1",
        room_id="room-1",
        missed_mandatory_tasks=missed,
        consecutive_missed_days=days,
    )


class TestFallbackRecommendation:
    """Tests for the rule table."""

    @pytest.mark.parametrize(
        "missed,days,expected",
        [
            (0, 0, DisciplineRecommendation.OK),
            (1, 0, DisciplineRecommendation.ENCOURAGE),
            (0, 2, DisciplineRecommendation.ENCOURAGE),
            (3, 0, DisciplineRecommendation.WARNING),
            (0, 4, DisciplineRecommendation.WARNING),
            (5, 0, DisciplineRecommendation.REMOVE),
            (0, 7, DisciplineRecommendation.REMOVE),
            (2, 6, DisciplineRecommendation.WARNING),
        ],
    )
    def test_table(self, missed: int, days: int, expected: DisciplineRecommendation) -> None:
        """Test each tier boundary."""
        assert fallback_recommendation(_data(missed, days)) == expected

    @pytest.mark.parametrize("missed", range(0, 8))
    def test_agrees_with_simple_table(self, missed: int) -> None:
        """Test that warning and removal match the simple rule table."""
        simple = classify_missed(missed)
        tiered = fallback_recommendation(_data(missed))

        if simple == DisciplineResult.OK:
            assert tiered in (DisciplineRecommendation.OK, DisciplineRecommendation.ENCOURAGE)
        else:
            assert tiered.value == simple.value

    def test_configured_thresholds(self) -> None:
        """Test that configured thresholds are honored."""
        config = DisciplineConfig(warning_missed=1, remove_missed=2)

        assert fallback_recommendation(_data(1), config) == DisciplineRecommendation.WARNING


class TestDisciplineEvaluator:
    """Tests for DisciplineEvaluator."""

    @pytest.mark.asyncio
    async def test_without_client(self) -> None:
        """Test that the rules decide when no client is configured."""
        verdict = await DisciplineEvaluator().evaluate(_data(missed=3))

        assert verdict.recommendation == DisciplineRecommendation.WARNING
        assert verdict.source == "rules"

    @pytest.mark.asyncio
    async def test_model_answer(self) -> None:
        """Test using a well-formed model answer."""
        client = CannedClient('{"recommendation": "encourage", "reason": "Keep going"}')

        verdict = await DisciplineEvaluator(client).evaluate(_data(missed=3))

        assert verdict.recommendation == DisciplineRecommendation.ENCOURAGE
        assert verdict.reason == "Keep going"
        assert verdict.source == "model"

    @pytest.mark.asyncio
    async def test_model_answer_in_code_block(self) -> None:
        """Test extracting JSON wrapped in markdown."""
        client = CannedClient('Sure:\n```json\n{"recommendation": "REMOVE", "reason": "Absent"}\n```')

        verdict = await DisciplineEvaluator(client).evaluate(_data())

        assert verdict.recommendation == DisciplineRecommendation.REMOVE

    @pytest.mark.asyncio
    async def test_single_quoted_answer(self) -> None:
        """Test extracting a single-quoted object."""
        client = CannedClient("{'recommendation': 'ok', 'reason': 'Faithful'}")

        verdict = await DisciplineEvaluator(client).evaluate(_data(missed=1))

        assert verdict.recommendation == DisciplineRecommendation.OK
        assert verdict.source == "model"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "client",
        [
            CannedClient("I think they are doing fine."),
            CannedClient('{"recommendation": "banish", "reason": "?"}'),
            CannedClient(error=RuntimeError("quota")),
        ],
    )
    async def test_falls_back_to_rules(self, client: CannedClient) -> None:
        """Test that unusable model answers use the rule table."""
        verdict = await DisciplineEvaluator(client).evaluate(_data(missed=5))

        assert verdict.recommendation == DisciplineRecommendation.REMOVE
        assert verdict.source == "rules"

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self) -> None:
        """Test that a slow model is abandoned."""
        client = CannedClient('{"recommendation": "ok"}', delay=5.0)

        verdict = await DisciplineEvaluator(client, timeout=0.05).evaluate(_data(days=2))

        assert verdict.recommendation == DisciplineRecommendation.ENCOURAGE
        assert verdict.source == "rules"
