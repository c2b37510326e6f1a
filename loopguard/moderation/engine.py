"""Moderation engine: one request in, one final decision out.

Per request the steps run strictly in order: count the user's recent
violations, tag the language (text only), classify, escalate, record the
violation with the escalated action, and optionally explain.  Oracle
failures never surface to the caller; each component degrades to its own
safe default.  History reads and writes run in worker threads, off the
event loop.
"""

from __future__ import annotations

import asyncio
import logging

from loopguard.config import EngineConfig
from loopguard.llm.client import LLMClient, Oracle
from loopguard.llm.usage import UsageTracker
from loopguard.moderation.classifier import ContentClassifier
from loopguard.moderation.escalation import EscalationPolicy
from loopguard.moderation.explainer import ExplanationGenerator
from loopguard.moderation.history import (
    InMemoryViolationStore,
    JsonlViolationStore,
    ViolationHistory,
    ViolationStore,
)
from loopguard.moderation.language import LanguageDetector
from loopguard.moderation.models import (
    ContentType,
    Language,
    ModerationRequest,
    ModerationResult,
    UserViolationHistory,
)

logger = logging.getLogger(__name__)


def build_store(config: EngineConfig) -> ViolationStore:
    if config.history.backend == "jsonl":
        return JsonlViolationStore(config.history.directory or None)
    return InMemoryViolationStore()


class ModerationEngine:
    def __init__(
        self,
        oracle: Oracle,
        config: EngineConfig | None = None,
        history: ViolationHistory | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.oracle = oracle
        self.history = history or ViolationHistory(build_store(self.config))
        self.language_detector = LanguageDetector(oracle, self.config)
        self.classifier = ContentClassifier(oracle, self.config)
        self.policy = EscalationPolicy(self.config.escalation)
        self.explainer = ExplanationGenerator(oracle, self.config)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        api_key: str | None = None,
        tracker: UsageTracker | None = None,
    ) -> ModerationEngine:
        """Engine backed by the Anthropic oracle and the configured history store."""
        oracle = LLMClient(api_key=api_key, timeout=config.oracle_timeout, tracker=tracker)
        return cls(oracle, config)

    async def moderate(self, request: ModerationRequest) -> ModerationResult:
        recent = await asyncio.to_thread(
            self.history.count_recent_violations, request.user_id
        )

        language = Language.UNKNOWN
        if request.content_type is ContentType.TEXT:
            language = await self.language_detector.detect_language(request.content)

        raw = await self.classifier.classify(
            request.content, request.content_type, recent, language
        )
        trace = self.policy.explain_steps(raw, recent)

        if raw.is_violation:
            await asyncio.to_thread(
                self.history.record_violation,
                request.user_id,
                raw.primary_category,
                trace.final_action,
            )

        logger.info(
            "Moderated %s from user %s: violation=%s category=%s action=%s->%s rules=%s",
            request.content_type.value,
            request.user_id,
            raw.is_violation,
            raw.primary_category.value,
            trace.raw_action.value,
            trace.final_action.value,
            ",".join(trace.applied_rules) or "-",
        )
        return ModerationResult.from_judgement(
            raw, trace.final_action, request.content_type, language
        )

    async def explain(self, content: str, result: ModerationResult) -> str:
        return await self.explainer.explain(content, result)

    async def moderate_and_explain(
        self, request: ModerationRequest
    ) -> tuple[ModerationResult, str]:
        result = await self.moderate(request)
        return result, await self.explain(request.content, result)

    async def user_history(self, user_id: str) -> tuple[UserViolationHistory, int]:
        """Full history snapshot plus the recent-violation count."""
        snapshot = await asyncio.to_thread(self.history.get_history, user_id)
        recent = await asyncio.to_thread(self.history.count_recent_violations, user_id)
        return snapshot, recent
