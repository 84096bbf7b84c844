"""Four-tier discipline evaluation.

Recommends ``ok``, ``encourage``, ``warning`` or ``remove`` from a
participant's engagement figures. A generative model may be consulted;
whenever it is unavailable, slow or unparseable the rule table in
:func:`fallback_recommendation` decides.

The rule table shares its missed-task thresholds with
:func:`circlecall.discipline.engine.classify_missed`: with no missed days,
``warning`` and ``remove`` fall exactly where the simple table puts them,
and ``encourage`` only refines its ``ok``.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal, Optional

from circlecall.config.settings import DisciplineConfig
from circlecall.models import Message, ModelClient

from .models import DisciplineRecommendation, UserRoomData

logger = logging.getLogger(__name__)

DISCIPLINE_PROMPT = """Evaluate this participant's spiritual discipline in a formation room:
- Missed mandatory tasks: {missed}
- Consecutive missed days: {days}
- Total completions: {completions}
- Last active: {last_active}

Consider grace and encouragement over punishment.
Respond with ONLY a JSON object (no markdown, no explanation):
{{"recommendation": "ok" | "encourage" | "warning" | "remove", "reason": "brief explanation"}}"""


@dataclass
class DisciplineVerdict:
    """A recommendation and where it came from."""

    recommendation: DisciplineRecommendation
    reason: str
    source: Literal["model", "rules"] = "rules"


def fallback_recommendation(
    data: UserRoomData,
    config: Optional[DisciplineConfig] = None,
) -> DisciplineRecommendation:
    """Rule-based recommendation used when no model answers."""
    config = config or DisciplineConfig()
    days = data.consecutive_missed_days
    missed = data.missed_mandatory_tasks

    if days >= config.remove_days or missed >= config.remove_missed:
        return DisciplineRecommendation.REMOVE
    if days >= config.warning_days or missed >= config.warning_missed:
        return DisciplineRecommendation.WARNING
    if days >= config.encourage_days or missed >= 1:
        return DisciplineRecommendation.ENCOURAGE
    return DisciplineRecommendation.OK


class DisciplineEvaluator:
    """Asks a model for a recommendation, with the rule table as fallback."""

    def __init__(
        self,
        client: Optional[ModelClient] = None,
        config: Optional[DisciplineConfig] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the evaluator.

        Args:
            client: Model client, or None to always use the rules
            config: Thresholds for the rule table
            timeout: Seconds to wait for the model
        """
        self.client = client
        self.config = config or DisciplineConfig()
        self.timeout = timeout if timeout is not None else self.config.timeout_seconds

    def _rules(self, data: UserRoomData, reason: str) -> DisciplineVerdict:
        return DisciplineVerdict(
            recommendation=fallback_recommendation(data, self.config),
            reason=reason,
            source="rules",
        )

    async def evaluate(self, data: UserRoomData) -> DisciplineVerdict:
        """Recommend an action for the participant described by ``data``."""
        if self.client is None or not self.client.is_available:
            return self._rules(data, "Rule-based evaluation")

        prompt = DISCIPLINE_PROMPT.format(
            missed=data.missed_mandatory_tasks,
            days=data.consecutive_missed_days,
            completions=data.total_completions,
            last_active=data.last_active_at.isoformat() if data.last_active_at else "never",
        )

        try:
            response = await asyncio.wait_for(
                self.client.generate(
                    messages=[Message.user(prompt)],
                    max_tokens=200,
                    temperature=0.2,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Discipline evaluation for {data.user_id} timed out")
            return self._rules(data, "Model timed out - rule-based evaluation")
        except Exception as e:
            logger.error(f"Discipline evaluation error: {e}")
            return self._rules(data, "Model error - rule-based evaluation")

        parsed = self._extract_json(response.content.strip())
        if parsed is None:
            logger.warning(f"Unparseable discipline response: {response.content[:100]}")
            return self._rules(data, "Could not parse model response - rule-based evaluation")

        try:
            recommendation = DisciplineRecommendation(str(parsed.get("recommendation", "")).lower())
        except ValueError:
            return self._rules(data, "Unknown recommendation from model - rule-based evaluation")

        return DisciplineVerdict(
            recommendation=recommendation,
            reason=str(parsed.get("reason", "No reason provided")),
            source="model",
        )

    def _extract_json(self, content: str) -> Optional[dict[str, Any]]:
        """Extract a JSON object from model output.

        Handles markdown code blocks and single-quoted keys.
        """
        try:
            data = json.loads(content)
            return data if isinstance(data, dict) else None
        except json.JSONDecodeError:
            pass

        code_block_pattern = r"```(?:json)?\s*(\{.*?\})\s*```"
        match = re.search(code_block_pattern, content, re.DOTALL)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                pass

        match = re.search(r"\{[^{}]*recommendation[^{}]*\}", content, re.DOTALL)
        if match:
            candidate = match.group(0)
            for text in (candidate, candidate.replace("'", '"')):
                try:
                    return json.loads(text)
                except json.JSONDecodeError:
                    continue

        return None
