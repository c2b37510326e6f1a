"""Data models for the content moderation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ContentType(Enum):
    """Kind of content submitted for moderation.

    For everything except ``TEXT`` the moderated string is a description or
    transcript of the media, never the media itself.
    """

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class ModerationCategory(Enum):
    """Closed set of moderation categories."""

    HATE = "hate"
    HARASSMENT = "harassment"
    SEXUAL = "sexual"
    VIOLENCE = "violence"
    SELF_HARM = "self-harm"
    MISINFORMATION = "misinformation"
    SPAM = "spam"
    CLEAN = "clean"


_ACTION_ORDER = ("allow", "warn", "suspend", "ban")


class ModerationAction(Enum):
    """Enforcement ladder: allow < warn < suspend < ban."""

    ALLOW = "allow"
    WARN = "warn"
    SUSPEND = "suspend"
    BAN = "ban"

    @property
    def rank(self) -> int:
        return _ACTION_ORDER.index(self.value)

    def escalate(self) -> ModerationAction:
        """Return the next rung up the ladder (``BAN`` stays ``BAN``)."""
        return ModerationAction(_ACTION_ORDER[min(self.rank + 1, len(_ACTION_ORDER) - 1)])

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ModerationAction):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ModerationAction):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ModerationAction):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ModerationAction):
            return NotImplemented
        return self.rank >= other.rank


class Language(Enum):
    """Language tags the detector is allowed to return."""

    ENGLISH = "english"
    TELUGU = "telugu"
    TELUGU_ENGLISH = "telugu-english"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RawJudgement:
    """The oracle's moderation verdict before escalation."""

    is_violation: bool
    categories: tuple[ModerationCategory, ...]
    primary_category: ModerationCategory
    confidence: float
    recommended_action: ModerationAction
    explanation: str = ""

    def __post_init__(self) -> None:
        _check_verdict(self.categories, self.primary_category, self.confidence)


def _check_verdict(
    categories: tuple[ModerationCategory, ...],
    primary_category: ModerationCategory,
    confidence: float,
) -> None:
    if not categories:
        raise ValueError("categories must not be empty")
    if primary_category not in categories:
        raise ValueError(
            f"primary category {primary_category.value!r} is not in categories"
        )
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"confidence {confidence} is outside [0, 1]")


SAFE_DEFAULT_JUDGEMENT = RawJudgement(
    is_violation=False,
    categories=(ModerationCategory.CLEAN,),
    primary_category=ModerationCategory.CLEAN,
    confidence=0.5,
    recommended_action=ModerationAction.ALLOW,
    explanation="analysis unavailable, defaulting to safe classification",
)


@dataclass(frozen=True)
class ModerationResult:
    """Final decision for one moderation request.

    ``recommended_action`` holds the escalated action, not the oracle's raw
    recommendation.  The engine never persists results; callers decide.
    """

    is_violation: bool
    categories: tuple[ModerationCategory, ...]
    primary_category: ModerationCategory
    confidence: float
    recommended_action: ModerationAction
    explanation: str
    content_type: ContentType
    language: Language

    def __post_init__(self) -> None:
        _check_verdict(self.categories, self.primary_category, self.confidence)

    @classmethod
    def from_judgement(
        cls,
        raw: RawJudgement,
        action: ModerationAction,
        content_type: ContentType,
        language: Language,
    ) -> ModerationResult:
        return cls(
            is_violation=raw.is_violation,
            categories=raw.categories,
            primary_category=raw.primary_category,
            confidence=raw.confidence,
            recommended_action=action,
            explanation=raw.explanation,
            content_type=content_type,
            language=language,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_violation": self.is_violation,
            "categories": [c.value for c in self.categories],
            "primary_category": self.primary_category.value,
            "confidence": self.confidence,
            "recommended_action": self.recommended_action.value,
            "explanation": self.explanation,
            "content_type": self.content_type.value,
            "language": self.language.value,
        }


@dataclass(frozen=True)
class ViolationRecord:
    """A single recorded violation.  Immutable once created."""

    timestamp: datetime
    category: ModerationCategory
    action: ModerationAction

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> ViolationRecord:
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            timestamp=timestamp,
            category=ModerationCategory(data["category"]),
            action=ModerationAction(data["action"]),
        )


@dataclass(frozen=True)
class UserViolationHistory:
    """Snapshot of a user's violations, oldest first."""

    user_id: str
    records: tuple[ViolationRecord, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ModerationRequest:
    """A piece of content submitted by a user."""

    content: str
    content_type: ContentType
    user_id: str
