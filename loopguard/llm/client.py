"""Oracle client for LoopGuard.

The moderation components talk to a text-generation "oracle" through the
:class:`Oracle` protocol.  :class:`LLMClient` implements it on top of the
Anthropic API with cost estimation, an optional usage tracker and a bounded
timeout on every call.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import anthropic

if TYPE_CHECKING:
    from loopguard.llm.usage import UsageTracker


# ---------------------------------------------------------------------------
# Pricing table (USD per 1 M tokens)
# ---------------------------------------------------------------------------

MODEL_PRICING: dict[str, dict[str, float]] = {
    "claude-sonnet-4-5-20250929": {"input": 3.0, "output": 15.0},
    "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
    "claude-haiku-3-5-20241022": {"input": 0.80, "output": 4.0},
}

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_TIMEOUT = 15.0


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class OracleError(Exception):
    """Base class for every oracle failure."""


class OracleUnavailable(OracleError):
    """No API key configured."""


class OracleTimeout(OracleError):
    """The oracle did not answer within the configured timeout."""


class OracleResponseError(OracleError):
    """The oracle answered with text that does not fit the expected schema."""


# ---------------------------------------------------------------------------
# Response / protocol
# ---------------------------------------------------------------------------


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class OracleResponse:
    """Text returned by the oracle, plus token usage when known."""

    text: str
    usage: TokenUsage | None = None
    model: str = ""
    latency_ms: int = 0
    cost_estimate: float = 0.0


class Oracle(Protocol):
    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> OracleResponse:
        ...


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class LLMClient:
    """Async wrapper around the Anthropic Python SDK.

    Parameters
    ----------
    api_key : str | None
        Anthropic API key.  Falls back to the ``ANTHROPIC_API_KEY``
        environment variable when *None*.
    timeout : float
        Seconds to wait for a single completion before raising
        :class:`OracleTimeout`.
    tracker : UsageTracker | None
        When given, every successful call is recorded under the ``purpose``
        passed to :meth:`generate`.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        tracker: UsageTracker | None = None,
    ) -> None:
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        self.timeout = timeout
        self.tracker = tracker
        self._configured = bool(self.api_key)

        if self._configured:
            # No SDK retries: every failure resolves to a fallback on first attempt.
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key, timeout=timeout, max_retries=0
            )
        else:
            self._client = None  # type: ignore[assignment]

    @property
    def configured(self) -> bool:
        """Return *True* if an API key is available."""
        return self._configured

    def _estimate_cost(self, model: str, usage: TokenUsage) -> float:
        pricing = MODEL_PRICING.get(model, MODEL_PRICING[DEFAULT_MODEL])
        input_cost = (usage.input_tokens / 1_000_000) * pricing["input"]
        output_cost = (usage.output_tokens / 1_000_000) * pricing["output"]
        return round(input_cost + output_cost, 6)

    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        purpose: str = "",
    ) -> OracleResponse:
        """Run one completion and return its text.

        Raises :class:`OracleUnavailable` without an API key and
        :class:`OracleTimeout` when the call exceeds ``timeout``.  SDK errors
        are wrapped in :class:`OracleError`.
        """
        if not self._configured:
            raise OracleUnavailable("LLM not configured. Set ANTHROPIC_API_KEY.")

        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APITimeoutError as exc:
            raise OracleTimeout(f"oracle call exceeded {self.timeout}s") from exc
        except anthropic.APIError as exc:
            raise OracleError(str(exc)) from exc
        latency_ms = int((time.monotonic() - start) * 1000)

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        result = OracleResponse(
            text=text,
            usage=usage,
            model=model,
            latency_ms=latency_ms,
            cost_estimate=self._estimate_cost(model, usage),
        )
        if self.tracker is not None:
            await asyncio.to_thread(
                self.tracker.record_usage,
                model=model,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                purpose=purpose,
                cost_estimate=result.cost_estimate,
            )
        return result


async def call_oracle(
    oracle: Oracle,
    *,
    model: str,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
    timeout: float,
    purpose: str,
) -> OracleResponse:
    """Call *oracle* with a hard timeout.

    ``purpose`` is forwarded only to oracles that accept it (``LLMClient``);
    any other :class:`Oracle` gets the bare protocol call.
    """
    kwargs = {
        "model": model,
        "system_prompt": system_prompt,
        "user_prompt": user_prompt,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if isinstance(oracle, LLMClient):
        kwargs["purpose"] = purpose
    try:
        return await asyncio.wait_for(oracle.generate(**kwargs), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise OracleTimeout(f"{purpose or 'oracle'} call exceeded {timeout}s") from exc
