"""Engine configuration.

Settings come from an optional YAML file and the environment.  The API key
is only ever read from ``ANTHROPIC_API_KEY``.  ``LOOPGUARD_CONFIG`` names the
file when no path is given, and ``LOOPGUARD_MODEL`` overrides the model
named in the file.

Example ``loopguard.yaml``::

    model: claude-sonnet-4-5-20250929
    oracle_timeout: 10
    history:
      backend: jsonl
      directory: /var/lib/loopguard/violations
    escalation:
      severe_categories: [hate, violence, self-harm]
      repeat_offender_threshold: 5
      recent_offender_threshold: 3
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from loopguard.llm.client import DEFAULT_MODEL, DEFAULT_TIMEOUT
from loopguard.moderation.models import ModerationCategory

HISTORY_BACKENDS = ("memory", "jsonl")


@dataclass
class OracleCallSettings:
    """Sampling parameters for one kind of oracle call."""

    temperature: float
    max_tokens: int


@dataclass
class EscalationSettings:
    severe_categories: frozenset[ModerationCategory] = frozenset(
        {ModerationCategory.HATE, ModerationCategory.VIOLENCE, ModerationCategory.SELF_HARM}
    )
    repeat_offender_threshold: int = 5
    recent_offender_threshold: int = 3


@dataclass
class HistorySettings:
    backend: str = "memory"
    directory: str = ""


@dataclass
class EngineConfig:
    """Everything the moderation engine can be tuned with."""

    model: str = DEFAULT_MODEL
    oracle_timeout: float = DEFAULT_TIMEOUT
    language: OracleCallSettings = field(
        default_factory=lambda: OracleCallSettings(temperature=0.1, max_tokens=10)
    )
    classify: OracleCallSettings = field(
        default_factory=lambda: OracleCallSettings(temperature=0.1, max_tokens=500)
    )
    explain: OracleCallSettings = field(
        default_factory=lambda: OracleCallSettings(temperature=0.7, max_tokens=300)
    )
    escalation: EscalationSettings = field(default_factory=EscalationSettings)
    history: HistorySettings = field(default_factory=HistorySettings)


def _call_settings(data: dict, default: OracleCallSettings) -> OracleCallSettings:
    return OracleCallSettings(
        temperature=float(data.get("temperature", default.temperature)),
        max_tokens=int(data.get("max_tokens", default.max_tokens)),
    )


def _escalation_settings(data: dict) -> EscalationSettings:
    defaults = EscalationSettings()
    severe = data.get("severe_categories")
    settings = EscalationSettings(
        severe_categories=(
            frozenset(ModerationCategory(c) for c in severe)
            if severe is not None
            else defaults.severe_categories
        ),
        repeat_offender_threshold=int(
            data.get("repeat_offender_threshold", defaults.repeat_offender_threshold)
        ),
        recent_offender_threshold=int(
            data.get("recent_offender_threshold", defaults.recent_offender_threshold)
        ),
    )
    if not 0 <= settings.recent_offender_threshold <= settings.repeat_offender_threshold:
        raise ValueError(
            "recent_offender_threshold must be between 0 and repeat_offender_threshold"
        )
    return settings


def config_from_dict(data: dict) -> EngineConfig:
    """Build an :class:`EngineConfig` from parsed YAML.  Unknown keys are ignored."""
    defaults = EngineConfig()
    history = data.get("history") or {}
    backend = history.get("backend", defaults.history.backend)
    if backend not in HISTORY_BACKENDS:
        raise ValueError(f"Unknown history backend {backend!r}; expected one of {HISTORY_BACKENDS}")

    timeout = float(data.get("oracle_timeout", defaults.oracle_timeout))
    if timeout <= 0:
        raise ValueError("oracle_timeout must be positive")

    return EngineConfig(
        model=str(data.get("model", defaults.model)),
        oracle_timeout=timeout,
        language=_call_settings(data.get("language") or {}, defaults.language),
        classify=_call_settings(data.get("classify") or {}, defaults.classify),
        explain=_call_settings(data.get("explain") or {}, defaults.explain),
        escalation=_escalation_settings(data.get("escalation") or {}),
        history=HistorySettings(
            backend=backend,
            directory=str(history.get("directory", defaults.history.directory)),
        ),
    )


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from *path* and the environment.

    Without *path*, ``LOOPGUARD_CONFIG`` names the file if it is set.
    Unparseable YAML is reported as :class:`ValueError` like any other
    invalid setting.
    """
    if path is None:
        path = os.environ.get("LOOPGUARD_CONFIG") or None
    data: dict = {}
    if path is not None:
        try:
            loaded = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ValueError(f"{path}: invalid YAML: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        data = loaded or {}

    config = config_from_dict(data)
    env_model = os.environ.get("LOOPGUARD_MODEL")
    if env_model:
        config.model = env_model
    return config
