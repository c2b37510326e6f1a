"""Oracle-backed content classifier.

The oracle is asked for a strict JSON judgement; its answer is untrusted text
and is validated against the closed category/action enums before use.  Any
failure, including a malformed answer, yields :data:`SAFE_DEFAULT_JUDGEMENT`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from loopguard.config import EngineConfig
from loopguard.llm.client import Oracle, OracleError, OracleResponseError, call_oracle
from loopguard.llm.prompts import CLASSIFY_FRAMING, CLASSIFY_PROMPT, CLASSIFY_SYSTEM_PROMPT
from loopguard.moderation.models import (
    SAFE_DEFAULT_JUDGEMENT,
    ContentType,
    Language,
    ModerationAction,
    ModerationCategory,
    RawJudgement,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

_CATEGORY_ALIASES = {
    "hate-speech": ModerationCategory.HATE,
    "safe": ModerationCategory.CLEAN,
    "none": ModerationCategory.CLEAN,
}


def _coerce_category(value: Any) -> ModerationCategory:
    if isinstance(value, ModerationCategory):
        return value
    if not isinstance(value, str):
        raise ValueError(f"category must be a string, got {type(value).__name__}")
    key = re.sub(r"[\s_]+", "-", value.strip().lower())
    if key in _CATEGORY_ALIASES:
        return _CATEGORY_ALIASES[key]
    return ModerationCategory(key)


class _OracleJudgement(BaseModel):
    """Wire schema of the oracle's classification answer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_violation: bool = Field(alias="isViolation", strict=True)
    categories: list[ModerationCategory] = Field(min_length=1)
    primary_category: ModerationCategory = Field(alias="primaryCategory")
    # Strict floats still take ints (0, 1) but refuse strings and booleans.
    confidence: float = Field(ge=0.0, le=1.0, strict=True)
    recommended_action: ModerationAction = Field(alias="recommendedAction")
    explanation: str = ""

    @field_validator("categories", mode="before")
    @classmethod
    def _categories(cls, value: Any) -> list[ModerationCategory]:
        if not isinstance(value, list):
            raise ValueError("categories must be a list")
        return [_coerce_category(v) for v in value]

    @field_validator("primary_category", mode="before")
    @classmethod
    def _primary(cls, value: Any) -> ModerationCategory:
        return _coerce_category(value)

    @field_validator("recommended_action", mode="before")
    @classmethod
    def _action(cls, value: Any) -> ModerationAction:
        if isinstance(value, str):
            return ModerationAction(value.strip().lower())
        return value

    @field_validator("explanation", mode="before")
    @classmethod
    def _explanation(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def to_judgement(self) -> RawJudgement:
        categories = list(dict.fromkeys(self.categories))
        if self.primary_category not in categories:
            categories.insert(0, self.primary_category)
        return RawJudgement(
            is_violation=self.is_violation,
            categories=tuple(categories),
            primary_category=self.primary_category,
            confidence=self.confidence,
            recommended_action=self.recommended_action,
            explanation=self.explanation,
        )


def parse_judgement(text: str) -> RawJudgement:
    """Parse oracle output into a :class:`RawJudgement`.

    Accepts a bare JSON object or one embedded in prose / markdown fences.
    Raises :class:`OracleResponseError` when no valid judgement is found.
    """
    if not isinstance(text, str):
        raise OracleResponseError("oracle returned non-text output")
    match = _JSON_OBJECT.search(text)
    if match is None:
        raise OracleResponseError("no JSON object in oracle output")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise OracleResponseError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise OracleResponseError("judgement must be a JSON object")
    try:
        return _OracleJudgement.model_validate(data).to_judgement()
    except (ValidationError, ValueError) as exc:
        raise OracleResponseError(f"judgement failed validation: {exc}") from exc


def build_prompt(
    content: str,
    content_type: ContentType,
    recent_violation_count: int,
    language: Language = Language.UNKNOWN,
) -> str:
    framing = CLASSIFY_FRAMING[content_type.value].format(language=language.value)
    return CLASSIFY_PROMPT.format(
        framing=framing,
        content=content,
        recent_violations=recent_violation_count,
    )


class ContentClassifier:
    def __init__(self, oracle: Oracle, config: EngineConfig | None = None) -> None:
        self.oracle = oracle
        self.config = config or EngineConfig()

    async def classify(
        self,
        content: str,
        content_type: ContentType,
        recent_violation_count: int,
        language: Language = Language.UNKNOWN,
    ) -> RawJudgement:
        """Ask the oracle for a raw judgement; fall back to the safe default."""
        prompt = build_prompt(content, content_type, recent_violation_count, language)
        try:
            response = await call_oracle(
                self.oracle,
                model=self.config.model,
                system_prompt=CLASSIFY_SYSTEM_PROMPT,
                user_prompt=prompt,
                temperature=self.config.classify.temperature,
                max_tokens=self.config.classify.max_tokens,
                timeout=self.config.oracle_timeout,
                purpose="classify",
            )
            return parse_judgement(response.text)
        except OracleError as exc:
            logger.warning("Classification failed, using safe default: %s", exc)
        except Exception:
            logger.exception("Classification raised unexpectedly, using safe default")
        return SAFE_DEFAULT_JUDGEMENT
