"""Pydantic models for API request/response serialization.

These models mirror the LoopGuard dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

ContentTypeName = Literal["text", "image", "video", "audio"]
CategoryName = Literal[
    "hate", "harassment", "sexual", "violence", "self-harm", "misinformation", "spam", "clean"
]
ActionName = Literal["allow", "warn", "suspend", "ban"]
LanguageName = Literal["english", "telugu", "telugu-english", "unknown"]


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class ModerationRequestBody(BaseModel):
    """Mirrors loopguard.moderation.models.ModerationRequest."""

    content: str
    content_type: ContentTypeName = "text"
    user_id: str = Field(min_length=1)


class ModerationResultResponse(BaseModel):
    """Mirrors loopguard.moderation.models.ModerationResult."""

    is_violation: bool
    categories: list[CategoryName] = Field(min_length=1)
    primary_category: CategoryName
    confidence: float = Field(ge=0.0, le=1.0)
    recommended_action: ActionName
    explanation: str = ""
    content_type: ContentTypeName
    language: LanguageName
    rationale: str | None = None


class ExplainRequest(BaseModel):
    content: str
    result: ModerationResultResponse


class ExplainResponse(BaseModel):
    rationale: str


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class ViolationRecordResponse(BaseModel):
    """Mirrors loopguard.moderation.models.ViolationRecord."""

    timestamp: str
    category: CategoryName
    action: ActionName


class UserHistoryResponse(BaseModel):
    user_id: str
    total: int = 0
    recent_count: int = 0
    records: list[ViolationRecordResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Accuracy
# ---------------------------------------------------------------------------


class AccuracyRequest(BaseModel):
    predictions: list[bool] = Field(default_factory=list)
    ground_truth: list[bool] = Field(default_factory=list)


class AccuracyResponse(BaseModel):
    accuracy: float
    sample_count: int
