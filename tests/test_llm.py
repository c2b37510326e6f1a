"""Tests for the oracle client plumbing and usage tracking."""

import asyncio
import threading
from types import SimpleNamespace

import pytest

from loopguard.llm.client import (
    LLMClient,
    OracleResponse,
    OracleTimeout,
    OracleUnavailable,
    TokenUsage,
    call_oracle,
)
from loopguard.llm.usage import UsageTracker


@pytest.mark.asyncio
async def test_unconfigured_client_raises_unavailable(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    client = LLMClient()
    assert client.configured is False
    with pytest.raises(OracleUnavailable):
        await client.generate("m", "sys", "user", 0.1, 10)


def test_cost_estimate_uses_model_pricing():
    client = LLMClient(api_key="test-key")
    cost = client._estimate_cost(
        "claude-haiku-3-5-20241022", TokenUsage(input_tokens=1_000_000, output_tokens=1_000_000)
    )
    assert cost == 4.8


class _SlowOracle:
    async def generate(self, model, system_prompt, user_prompt, temperature, max_tokens):
        await asyncio.sleep(1)
        return OracleResponse(text="late")


@pytest.mark.asyncio
async def test_call_oracle_enforces_timeout():
    with pytest.raises(OracleTimeout):
        await call_oracle(
            _SlowOracle(),
            model="m",
            system_prompt="",
            user_prompt="u",
            temperature=0.0,
            max_tokens=1,
            timeout=0.05,
            purpose="classify",
        )


@pytest.mark.asyncio
async def test_call_oracle_forwards_purpose_to_llm_client(monkeypatch):
    client = LLMClient(api_key="test-key")
    seen = {}

    async def fake_generate(**kwargs):
        seen.update(kwargs)
        return OracleResponse(text="english")

    monkeypatch.setattr(client, "generate", fake_generate)
    response = await call_oracle(
        client,
        model="m",
        system_prompt="s",
        user_prompt="u",
        temperature=0.1,
        max_tokens=10,
        timeout=1.0,
        purpose="language",
    )
    assert response.text == "english"
    assert seen["purpose"] == "language"


def test_usage_tracker_summarizes_by_purpose(tmp_path):
    tracker = UsageTracker(tmp_path)
    tracker.record_usage("m", 100, 5, "language", 0.001)
    tracker.record_usage("m", 400, 120, "classify", 0.003)
    tracker.record_usage("m", 300, 200, "classify", 0.004)

    assert len(tracker.get_usage()) == 3
    assert len(tracker.get_usage(purpose="classify")) == 2

    summary = tracker.summarize()
    assert summary.total.calls == 3
    assert summary.total.input_tokens == 800
    assert summary.by_purpose["classify"].output_tokens == 320
    assert summary.by_purpose["classify"].cost_estimate == 0.007
    assert summary.by_purpose["language"].calls == 1


class _ThreadRecordingTracker(UsageTracker):
    def record_usage(self, *args, **kwargs):
        self.thread = threading.get_ident()
        return super().record_usage(*args, **kwargs)


@pytest.mark.asyncio
async def test_generate_records_usage_off_the_event_loop(tmp_path):
    tracker = _ThreadRecordingTracker(tmp_path)
    client = LLMClient(api_key="test-key", tracker=tracker)

    async def fake_create(**kwargs):
        return SimpleNamespace(
            usage=SimpleNamespace(input_tokens=12, output_tokens=3),
            content=[SimpleNamespace(type="text", text="telugu")],
        )

    client._client = SimpleNamespace(messages=SimpleNamespace(create=fake_create))
    response = await client.generate("m", "sys", "user", 0.1, 10, purpose="language")

    assert response.text == "telugu"
    assert tracker.thread != threading.get_ident()
    assert tracker.summarize().by_purpose["language"].input_tokens == 12
