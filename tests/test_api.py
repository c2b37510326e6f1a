"""Tests for the moderation REST endpoints."""

import pytest
from fastapi.testclient import TestClient

from conftest import RoutingOracle, judgement
from loopguard.moderation.engine import ModerationEngine
from loopguard.moderation.history import JsonlViolationStore
from web.backend.app.main import app
from web.backend.app.routers.moderation import get_engine


@pytest.fixture
def oracle():
    return RoutingOracle(
        judgements=[judgement("hate", "allow", confidence=0.7)],
        explanation="Targets a group.",
    )


@pytest.fixture
def client(oracle, fast_config):
    engine = ModerationEngine(oracle, fast_config)
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_moderate(client):
    resp = client.post(
        "/api/moderation", json={"content": "awful", "content_type": "text", "user_id": "u1"}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_violation"] is True
    assert data["primary_category"] == "hate"
    assert data["recommended_action"] == "warn"
    assert data["language"] == "english"
    assert data["rationale"] is None


def test_moderate_with_explanation(client):
    resp = client.post(
        "/api/moderation?explain=true",
        json={"content": "awful", "content_type": "text", "user_id": "u1"},
    )
    assert resp.json()["rationale"] == "Targets a group."


def test_moderate_rejects_unknown_content_type(client):
    resp = client.post(
        "/api/moderation", json={"content": "x", "content_type": "hologram", "user_id": "u1"}
    )
    assert resp.status_code == 422


def test_history_endpoint(client):
    for _ in range(2):
        client.post("/api/moderation", json={"content": "awful", "user_id": "u9"})

    data = client.get("/api/moderation/users/u9/history").json()
    assert data["total"] == 2
    assert data["recent_count"] == 2
    assert [r["action"] for r in data["records"]] == ["warn", "warn"]

    empty = client.get("/api/moderation/users/nobody/history").json()
    assert empty == {"user_id": "nobody", "total": 0, "recent_count": 0, "records": []}


def test_explain_endpoint(client):
    result = {
        "is_violation": True,
        "categories": ["spam"],
        "primary_category": "spam",
        "confidence": 0.6,
        "recommended_action": "warn",
        "explanation": "",
        "content_type": "text",
        "language": "english",
    }
    resp = client.post("/api/moderation/explain", json={"content": "buy now", "result": result})
    assert resp.json() == {"rationale": "Targets a group."}


def test_accuracy_endpoint(client):
    resp = client.post(
        "/api/moderation/accuracy",
        json={"predictions": [True, False], "ground_truth": [True, True]},
    )
    assert resp.json() == {"accuracy": 50.0, "sample_count": 2}

    mismatched = client.post(
        "/api/moderation/accuracy", json={"predictions": [True], "ground_truth": []}
    )
    assert mismatched.json()["accuracy"] == 0


def _explain_payload(categories, primary):
    return {
        "content": "x",
        "result": {
            "is_violation": True,
            "categories": categories,
            "primary_category": primary,
            "confidence": 0.6,
            "recommended_action": "warn",
            "content_type": "text",
            "language": "english",
        },
    }


@pytest.mark.parametrize(
    "categories, primary",
    [([], "hate"), (["spam"], "hate")],
)
def test_explain_rejects_inconsistent_result(client, oracle, categories, primary):
    resp = client.post("/api/moderation/explain", json=_explain_payload(categories, primary))
    assert resp.status_code == 422
    assert oracle.calls == []


def test_default_engine_reads_config_from_environment(tmp_path, monkeypatch):
    config = tmp_path / "loopguard.yaml"
    config.write_text(f"history:\n  backend: jsonl\n  directory: {tmp_path / 'v'}\n")
    monkeypatch.setenv("LOOPGUARD_CONFIG", str(config))
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    get_engine.cache_clear()
    try:
        engine = get_engine()
        assert isinstance(engine.history.store, JsonlViolationStore)
    finally:
        get_engine.cache_clear()
