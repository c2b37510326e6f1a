"""LoopGuard oracle integration.

Provides the :class:`Oracle` protocol the moderation components call, an
Anthropic-backed implementation with usage tracking, and the prompt
templates.
"""

from loopguard.llm.client import (
    LLMClient,
    Oracle,
    OracleError,
    OracleResponse,
    OracleResponseError,
    OracleTimeout,
    OracleUnavailable,
    TokenUsage,
)
from loopguard.llm.usage import UsageRecord, UsageSummary, UsageTracker

__all__ = [
    "LLMClient",
    "Oracle",
    "OracleError",
    "OracleResponse",
    "OracleResponseError",
    "OracleTimeout",
    "OracleUnavailable",
    "TokenUsage",
    "UsageRecord",
    "UsageSummary",
    "UsageTracker",
]
