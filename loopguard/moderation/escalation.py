"""Escalation policy: raw judgement + recent history -> final action.

The rule table has two steps, each raising the action by at most one rung:

1. *Severity*: a primary category in the severe set lifts ``allow`` to
   ``warn`` and ``warn`` to ``suspend``.
2. *Recency*, applied to the result of step 1: a repeat offender (at least
   ``repeat_offender_threshold`` recent violations) goes ``warn`` to
   ``suspend`` or ``suspend`` to ``ban``; a recent offender (at least
   ``recent_offender_threshold``) goes ``allow`` to ``warn``.

The action never moves down the ladder.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loopguard.config import EscalationSettings
from loopguard.moderation.models import ModerationAction, RawJudgement


@dataclass(frozen=True)
class EscalationTrace:
    """Final action plus the names of the rules that fired, in order."""

    raw_action: ModerationAction
    final_action: ModerationAction
    applied_rules: tuple[str, ...] = field(default_factory=tuple)


class EscalationPolicy:
    def __init__(self, settings: EscalationSettings | None = None) -> None:
        self.settings = settings or EscalationSettings()

    def _severity_step(self, raw: RawJudgement, action: ModerationAction) -> ModerationAction:
        if raw.primary_category in self.settings.severe_categories and action in (
            ModerationAction.ALLOW,
            ModerationAction.WARN,
        ):
            return action.escalate()
        return action

    def _recency_step(self, count: int, action: ModerationAction) -> ModerationAction:
        if count >= self.settings.repeat_offender_threshold:
            if action in (ModerationAction.WARN, ModerationAction.SUSPEND):
                return action.escalate()
        elif count >= self.settings.recent_offender_threshold:
            if action is ModerationAction.ALLOW:
                return ModerationAction.WARN
        return action

    def explain_steps(self, raw: RawJudgement, recent_violation_count: int) -> EscalationTrace:
        if recent_violation_count < 0:
            raise ValueError("recent_violation_count must be non-negative")
        rules: list[str] = []
        action = raw.recommended_action

        stepped = self._severity_step(raw, action)
        if stepped is not action:
            rules.append(f"severity:{raw.primary_category.value}")
        action = stepped

        stepped = self._recency_step(recent_violation_count, action)
        if stepped is not action:
            rules.append(f"recency:{recent_violation_count}")
        action = stepped

        return EscalationTrace(
            raw_action=raw.recommended_action,
            final_action=action,
            applied_rules=tuple(rules),
        )

    def decide(self, raw: RawJudgement, recent_violation_count: int) -> ModerationAction:
        """Return the final action for *raw* given the user's recent violation count."""
        return self.explain_steps(raw, recent_violation_count).final_action
