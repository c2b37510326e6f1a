"""LoopGuard: content moderation decision engine."""

__version__ = "0.1.0"
