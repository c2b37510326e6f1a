"""Offline accuracy evaluation of moderation verdicts.

A sample file is a YAML (or JSON) list of mappings::

    - predicted: true
      expected: true
      language: telugu
      content_type: text
      category: hate
"""

from __future__ import annotations

import json
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import yaml


def accuracy(predictions: Sequence[bool], ground_truth: Sequence[bool]) -> float:
    """Percentage of predictions matching ground truth.

    Returns 0 for empty input or when the lengths differ.
    """
    if len(predictions) != len(ground_truth) or not predictions:
        return 0.0
    correct = sum(1 for p, g in zip(predictions, ground_truth) if p == g)
    return correct / len(predictions) * 100


@dataclass
class LabeledSample:
    """One verdict with its ground truth and grouping keys."""

    predicted: bool
    expected: bool
    language: str = "unknown"
    content_type: str = "text"
    category: str = "clean"


@dataclass
class AccuracyReport:
    overall: float = 0.0
    sample_count: int = 0
    by_language: dict[str, float] = field(default_factory=dict)
    by_content_type: dict[str, float] = field(default_factory=dict)
    by_category: dict[str, float] = field(default_factory=dict)


def _grouped(samples: Sequence[LabeledSample], key: str) -> dict[str, float]:
    groups: dict[str, list[LabeledSample]] = defaultdict(list)
    for sample in samples:
        groups[getattr(sample, key)].append(sample)
    return {
        name: round(accuracy([s.predicted for s in group], [s.expected for s in group]), 2)
        for name, group in sorted(groups.items())
    }


def evaluate(samples: Sequence[LabeledSample]) -> AccuracyReport:
    """Overall accuracy plus per-language, per-content-type and per-category breakdowns."""
    return AccuracyReport(
        overall=round(
            accuracy([s.predicted for s in samples], [s.expected for s in samples]), 2
        ),
        sample_count=len(samples),
        by_language=_grouped(samples, "language"),
        by_content_type=_grouped(samples, "content_type"),
        by_category=_grouped(samples, "category"),
    )


def load_samples(path: str | Path) -> list[LabeledSample]:
    """Read labelled samples from a YAML or JSON file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of samples")

    samples: list[LabeledSample] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or "predicted" not in item or "expected" not in item:
            raise ValueError(f"{path}: sample {i} needs 'predicted' and 'expected'")
        for key in ("predicted", "expected"):
            if not isinstance(item[key], bool):
                raise ValueError(f"{path}: sample {i} '{key}' must be true or false")
        samples.append(
            LabeledSample(
                predicted=item["predicted"],
                expected=item["expected"],
                language=str(item.get("language", "unknown")),
                content_type=str(item.get("content_type", "text")),
                category=str(item.get("category", "clean")),
            )
        )
    return samples
