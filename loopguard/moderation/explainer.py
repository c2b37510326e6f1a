"""Human-readable rationale for finished decisions."""

from __future__ import annotations

import logging

from loopguard.config import EngineConfig
from loopguard.llm.client import Oracle, OracleError, call_oracle
from loopguard.llm.prompts import EXPLAIN_PROMPT, EXPLAIN_SYSTEM_PROMPT
from loopguard.moderation.models import ModerationResult

logger = logging.getLogger(__name__)

FALLBACK_EXPLANATION = (
    "We couldn't generate a detailed explanation at this time, but our AI system "
    "has flagged this content based on our community guidelines."
)


class ExplanationGenerator:
    def __init__(self, oracle: Oracle, config: EngineConfig | None = None) -> None:
        self.oracle = oracle
        self.config = config or EngineConfig()

    async def explain(self, content: str, result: ModerationResult) -> str:
        """Ask the oracle for a short rationale.  Returns the fallback text on failure.

        The 150-word limit is requested in the prompt only.
        """
        prompt = EXPLAIN_PROMPT.format(
            content=content,
            verdict="Violation detected" if result.is_violation else "No violation detected",
            category=result.primary_category.value,
            action=result.recommended_action.value,
        )
        try:
            response = await call_oracle(
                self.oracle,
                model=self.config.model,
                system_prompt=EXPLAIN_SYSTEM_PROMPT,
                user_prompt=prompt,
                temperature=self.config.explain.temperature,
                max_tokens=self.config.explain.max_tokens,
                timeout=self.config.oracle_timeout,
                purpose="explain",
            )
        except OracleError as exc:
            logger.warning("Explanation failed: %s", exc)
            return FALLBACK_EXPLANATION
        except Exception:
            logger.exception("Explanation raised unexpectedly")
            return FALLBACK_EXPLANATION

        text = response.text.strip() if isinstance(response.text, str) else ""
        return text or FALLBACK_EXPLANATION
