"""Content moderation: classification, violation history and escalation."""
