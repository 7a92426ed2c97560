from __future__ import annotations

from .handlers_start import handle_start_game
from .handlers_words import handle_submit_words, handle_force_end_round
from .handlers_vote import handle_cast_vote
from .handlers_review import handle_confirm_review, handle_next_round

__all__ = [
    "handle_start_game",
    "handle_submit_words",
    "handle_force_end_round",
    "handle_cast_vote",
    "handle_confirm_review",
    "handle_next_round",
]
