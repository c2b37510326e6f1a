"""Per-user violation history.

The history is append-only: records are never mutated or deleted.  Storage
is pluggable through the :class:`ViolationStore` protocol; two backends are
provided, an in-process store and a JSONL file store under
``~/.loopguard/violations/``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Protocol

from loopguard.moderation.models import (
    ModerationAction,
    ModerationCategory,
    UserViolationHistory,
    ViolationRecord,
)

logger = logging.getLogger(__name__)

RECENCY_WINDOW = timedelta(days=30)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ViolationStore(Protocol):
    """Storage backend for violation records."""

    def append(self, user_id: str, record: ViolationRecord) -> None:
        ...

    def count_since(self, user_id: str, cutoff: datetime) -> int:
        ...

    def history(self, user_id: str) -> UserViolationHistory:
        ...


class _UserLocks:
    """Lazily created lock per user id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, user_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class InMemoryViolationStore:
    """Process-local store.  Appends are serialised per user."""

    def __init__(self) -> None:
        self._records: dict[str, list[ViolationRecord]] = {}
        self._locks = _UserLocks()

    def append(self, user_id: str, record: ViolationRecord) -> None:
        with self._locks.get(user_id):
            self._records.setdefault(user_id, []).append(record)

    def count_since(self, user_id: str, cutoff: datetime) -> int:
        records = tuple(self._records.get(user_id, ()))
        return sum(1 for r in records if r.timestamp >= cutoff)

    def history(self, user_id: str) -> UserViolationHistory:
        return UserViolationHistory(
            user_id=user_id, records=tuple(self._records.get(user_id, ()))
        )


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonlViolationStore:
    """File-backed store: one newline-delimited JSON file per user."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".loopguard" / "violations"
        self._base.mkdir(parents=True, exist_ok=True)
        self._locks = _UserLocks()

    def _path(self, user_id: str) -> Path:
        # The digest keeps ids apart; the prefix is only for humans.
        prefix = _UNSAFE_CHARS.sub("_", user_id)[:32]
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
        return self._base / f"{prefix}-{digest}.jsonl"

    def append(self, user_id: str, record: ViolationRecord) -> None:
        path = self._path(user_id)
        with self._locks.get(user_id):
            with path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record.to_dict()) + "\n")

    def _load(self, user_id: str) -> list[ViolationRecord]:
        path = self._path(user_id)
        if not path.exists():
            return []
        records: list[ViolationRecord] = []
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                records.append(ViolationRecord.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, ValueError):
                logger.warning("Skipping unreadable violation record in %s", path)
        return records

    def count_since(self, user_id: str, cutoff: datetime) -> int:
        return sum(1 for r in self._load(user_id) if r.timestamp >= cutoff)

    def history(self, user_id: str) -> UserViolationHistory:
        return UserViolationHistory(user_id=user_id, records=tuple(self._load(user_id)))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ViolationHistory:
    """Records violations and answers recency queries over a store."""

    def __init__(
        self,
        store: ViolationStore | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.store: ViolationStore = store if store is not None else InMemoryViolationStore()
        self._clock = clock

    def record_violation(
        self,
        user_id: str,
        category: ModerationCategory,
        action: ModerationAction,
    ) -> ViolationRecord:
        """Append a violation stamped with the current time."""
        record = ViolationRecord(timestamp=self._clock(), category=category, action=action)
        self.store.append(user_id, record)
        logger.debug(
            "Recorded %s/%s violation for user %s", category.value, action.value, user_id
        )
        return record

    def count_recent_violations(
        self, user_id: str, window: timedelta = RECENCY_WINDOW
    ) -> int:
        """Count records with ``timestamp >= now - window``.  Unknown users count 0."""
        return self.store.count_since(user_id, self._clock() - window)

    def get_history(self, user_id: str) -> UserViolationHistory:
        return self.store.history(user_id)
