# tutifrutti/domain/common/fsm.py
from __future__ import annotations

from tutifrutti.domain.common.types import Phase

_PHASE_TRANSITIONS: dict[Phase, list[Phase]] = {
    "lobby": ["roundStart"],
    "roundStart": ["writing"],
    # writing -> results is the classic flow (prefix validity only, no review)
    "writing": ["review", "results", "ended"],
    "review": ["results", "ended"],
    "results": ["roundStart", "ended"],
    "ended": [],
}


def can_transition_phase(current: Phase, target: Phase) -> bool:
    """
    Validate room phase transitions.
    """
    return target in _PHASE_TRANSITIONS.get(current, [])
