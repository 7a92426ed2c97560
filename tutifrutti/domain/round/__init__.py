from __future__ import annotations

from .handlers import (
    handle_start_game,
    handle_submit_words,
    handle_force_end_round,
    handle_cast_vote,
    handle_confirm_review,
    handle_next_round,
)

__all__ = [
    "handle_start_game",
    "handle_submit_words",
    "handle_force_end_round",
    "handle_cast_vote",
    "handle_confirm_review",
    "handle_next_round",
]
