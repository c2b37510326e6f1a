"""Tests for the violation history store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from loopguard.moderation.history import (
    RECENCY_WINDOW,
    InMemoryViolationStore,
    JsonlViolationStore,
    ViolationHistory,
)
from loopguard.moderation.models import ModerationAction, ModerationCategory, ViolationRecord

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _record(at, category=ModerationCategory.SPAM, action=ModerationAction.WARN):
    return ViolationRecord(timestamp=at, category=category, action=action)


@pytest.fixture(params=["memory", "jsonl"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryViolationStore()
    return JsonlViolationStore(tmp_path / "violations")


def test_recency_window_is_thirty_days():
    assert RECENCY_WINDOW == timedelta(days=30)


def test_unknown_user_has_empty_history(store):
    history = ViolationHistory(store, clock=lambda: NOW)
    assert history.count_recent_violations("nobody") == 0
    snapshot = history.get_history("nobody")
    assert snapshot.user_id == "nobody"
    assert snapshot.records == ()


def test_record_violation_appends_in_order(store):
    times = iter([NOW - timedelta(hours=2), NOW - timedelta(hours=1), NOW])
    history = ViolationHistory(store, clock=lambda: next(times))

    history.record_violation("u1", ModerationCategory.SPAM, ModerationAction.WARN)
    history.record_violation("u1", ModerationCategory.HATE, ModerationAction.SUSPEND)
    history.record_violation("u1", ModerationCategory.VIOLENCE, ModerationAction.BAN)

    records = history.get_history("u1").records
    assert [r.category for r in records] == [
        ModerationCategory.SPAM,
        ModerationCategory.HATE,
        ModerationCategory.VIOLENCE,
    ]
    assert [r.action for r in records] == [
        ModerationAction.WARN,
        ModerationAction.SUSPEND,
        ModerationAction.BAN,
    ]


def test_window_boundaries(store):
    store.append("u1", _record(NOW - timedelta(days=30, milliseconds=1)))
    store.append("u1", _record(NOW - timedelta(days=29)))
    history = ViolationHistory(store, clock=lambda: NOW)

    assert history.count_recent_violations("u1") == 1
    assert len(history.get_history("u1")) == 2


def test_record_exactly_at_cutoff_counts(store):
    store.append("u1", _record(NOW - RECENCY_WINDOW))
    assert ViolationHistory(store, clock=lambda: NOW).count_recent_violations("u1") == 1


def test_custom_window(store):
    store.append("u1", _record(NOW - timedelta(days=3)))
    store.append("u1", _record(NOW - timedelta(hours=1)))
    history = ViolationHistory(store, clock=lambda: NOW)
    assert history.count_recent_violations("u1", window=timedelta(days=1)) == 1


def test_users_are_isolated(store):
    history = ViolationHistory(store, clock=lambda: NOW)
    history.record_violation("alice", ModerationCategory.SPAM, ModerationAction.WARN)
    assert history.count_recent_violations("bob") == 0
    assert history.count_recent_violations("alice") == 1


def test_concurrent_appends_are_not_lost(store):
    history = ViolationHistory(store, clock=lambda: NOW)
    per_thread = 25

    def worker():
        for _ in range(per_thread):
            history.record_violation("busy", ModerationCategory.SPAM, ModerationAction.WARN)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(history.get_history("busy")) == 8 * per_thread


def test_jsonl_store_persists_across_instances(tmp_path):
    base = tmp_path / "violations"
    ViolationHistory(JsonlViolationStore(base), clock=lambda: NOW).record_violation(
        "user/with spaces", ModerationCategory.HARASSMENT, ModerationAction.WARN
    )

    reopened = ViolationHistory(JsonlViolationStore(base), clock=lambda: NOW)
    records = reopened.get_history("user/with spaces").records
    assert len(records) == 1
    assert records[0].category is ModerationCategory.HARASSMENT
    assert records[0].timestamp == NOW


def test_jsonl_store_keeps_similar_ids_apart(tmp_path):
    store = JsonlViolationStore(tmp_path)
    store.append("a/b", _record(NOW))
    store.append("a_b", _record(NOW))
    store.append("a_b", _record(NOW))
    assert len(store.history("a/b")) == 1
    assert len(store.history("a_b")) == 2


@pytest.mark.parametrize(
    "first, second",
    [
        ("u" * 70 + "A", "u" * 70 + "B"),
        ("", "_"),
        ("Alice", "alice"),
    ],
)
def test_jsonl_store_never_shares_files_between_ids(tmp_path, first, second):
    store = JsonlViolationStore(tmp_path)
    for _ in range(5):
        store.append(first, _record(NOW))

    assert store._path(first) != store._path(second)
    assert store._path(first).name.lower() != store._path(second).name.lower()
    assert len(store.history(first)) == 5
    assert len(store.history(second)) == 0
    assert ViolationHistory(store, clock=lambda: NOW).count_recent_violations(second) == 0


def test_jsonl_store_skips_corrupt_lines(tmp_path):
    store = JsonlViolationStore(tmp_path)
    store.append("u1", _record(NOW))
    with store._path("u1").open("a", encoding="utf-8") as fh:
        fh.write("{not json\n")
    store.append("u1", _record(NOW))
    assert len(store.history("u1")) == 2
