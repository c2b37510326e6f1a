"""File-based oracle usage tracking.

Every oracle call made through :class:`~loopguard.llm.client.LLMClient` can
be recorded here, tagged with the component that made it (``language``,
``classify`` or ``explain``).  Records are stored one-per-line in monthly
files under ``~/.loopguard/oracle_usage/YYYY-MM.jsonl``.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class UsageRecord:
    """A single oracle call."""

    id: str = ""
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    purpose: str = ""
    cost_estimate: float = 0.0
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = uuid.uuid4().hex[:12]
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


@dataclass
class PurposeSummary:
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_estimate: float = 0.0


@dataclass
class UsageSummary:
    """Aggregated usage, overall and per purpose."""

    total: PurposeSummary = field(default_factory=PurposeSummary)
    by_purpose: dict[str, PurposeSummary] = field(default_factory=dict)


class UsageTracker:
    """Append-only JSONL usage log."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".loopguard" / "oracle_usage"
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _records_file(self, dt: datetime | None = None) -> Path:
        dt = dt or datetime.now(timezone.utc)
        return self._base / f"{dt.strftime('%Y-%m')}.jsonl"

    def record_usage(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        purpose: str,
        cost_estimate: float,
    ) -> UsageRecord:
        """Append a usage record and return it."""
        record = UsageRecord(
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            purpose=purpose,
            cost_estimate=cost_estimate,
        )
        with self._lock:
            with self._records_file().open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(asdict(record)) + "\n")
        return record

    def get_usage(self, purpose: str | None = None) -> list[UsageRecord]:
        """Return usage records, most recent first, optionally for one purpose."""
        records: list[UsageRecord] = []
        for path in sorted(self._base.glob("*.jsonl")):
            for line in path.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(UsageRecord(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Skipping unreadable usage record in %s", path)
        if purpose:
            records = [r for r in records if r.purpose == purpose]
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records

    def summarize(self) -> UsageSummary:
        summary = UsageSummary()
        for record in self.get_usage():
            bucket = summary.by_purpose.setdefault(record.purpose or "other", PurposeSummary())
            for target in (summary.total, bucket):
                target.calls += 1
                target.input_tokens += record.input_tokens
                target.output_tokens += record.output_tokens
                target.cost_estimate = round(target.cost_estimate + record.cost_estimate, 6)
        return summary
