import asyncio
import json

import pytest

from loopguard.config import EngineConfig
from loopguard.llm.client import OracleResponse
from loopguard.llm.prompts import CLASSIFY_SYSTEM_PROMPT, EXPLAIN_SYSTEM_PROMPT, LANGUAGE_SYSTEM_PROMPT


class ScriptedOracle:
    """Oracle stub replaying canned replies; the last reply repeats.

    A reply may be a string, an exception instance (raised), or a callable
    taking the user prompt and returning a string.
    """

    def __init__(self, *replies, delay: float = 0.0):
        self._replies = list(replies) or [""]
        self.delay = delay
        self.calls = []

    async def generate(self, model, system_prompt, user_prompt, temperature, max_tokens):
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(user_prompt)
        return OracleResponse(text=reply)


class RoutingOracle:
    """Oracle stub answering by call kind (language / classify / explain)."""

    def __init__(self, language="english", judgements=None, explanation="Because."):
        self.language = language
        self.judgements = list(judgements or [])
        self.explanation = explanation
        self.calls = []

    async def generate(self, model, system_prompt, user_prompt, temperature, max_tokens):
        if system_prompt == LANGUAGE_SYSTEM_PROMPT:
            kind, text = "language", self.language
        elif system_prompt == CLASSIFY_SYSTEM_PROMPT:
            judgement = self.judgements.pop(0) if len(self.judgements) > 1 else self.judgements[0]
            kind, text = "classify", judgement if isinstance(judgement, str) else json.dumps(judgement)
        elif system_prompt == EXPLAIN_SYSTEM_PROMPT:
            kind, text = "explain", self.explanation
        else:
            raise AssertionError(f"unexpected system prompt: {system_prompt!r}")
        self.calls.append((kind, user_prompt))
        return OracleResponse(text=text)


def judgement(
    category="clean",
    action="allow",
    violation=None,
    confidence=0.9,
    categories=None,
    explanation="ok",
):
    return {
        "isViolation": category != "clean" if violation is None else violation,
        "categories": categories or [category],
        "primaryCategory": category,
        "confidence": confidence,
        "recommendedAction": action,
        "explanation": explanation,
    }


@pytest.fixture
def fast_config():
    config = EngineConfig()
    config.oracle_timeout = 0.2
    return config
