from __future__ import annotations

from .scoring import RoundBreakdown, count_syllables, score_round
from .timer import TimerAuthority
from .voting import VoteCounts, VoteTally

__all__ = [
    "RoundBreakdown",
    "TimerAuthority",
    "VoteCounts",
    "VoteTally",
    "count_syllables",
    "score_round",
]
