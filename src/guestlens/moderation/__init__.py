"""Admin moderation of guest-submitted photos."""

from __future__ import annotations

from .queue import ModerationQueue
from .state import ReviewStateMachine

__all__ = [
    "ModerationQueue",
    "ReviewStateMachine",
]
