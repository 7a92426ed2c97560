# tutifrutti/domain/common/types.py
from __future__ import annotations

from typing import Literal

Phase = Literal["lobby", "roundStart", "writing", "review", "results", "ended"]
Decision = Literal["approve", "reject"]
ScoringFlow = Literal["review", "classic"]

# Phases in which a game counts as "in progress" (joins closed, seats kept).
PLAYING_PHASES = ("roundStart", "writing", "review", "results")
