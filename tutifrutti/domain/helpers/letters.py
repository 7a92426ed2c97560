# tutifrutti/domain/helpers/letters.py
from __future__ import annotations

import random
import string
from typing import List, Optional

ALPHABET = string.ascii_uppercase
RARE_LETTERS = frozenset("KQWXYZ")
MEDIUM_LETTERS = frozenset("JV")
HISTORY_KEEP = 10
HISTORY_SHOWN = 5


def pick_letter(history: List[str], *, alphabet: str = ALPHABET, rng: Optional[random.Random] = None) -> str:
    """
    Uniform pick from the room alphabet; appends to history (capped).
    """
    letter = (rng or random).choice(alphabet)
    history.append(letter)
    del history[:-HISTORY_KEEP]
    return letter


def letter_info(letter: str, history: List[str]) -> dict:
    return {
        "letterHistory": list(history[-HISTORY_SHOWN:]),
        "isRare": letter in RARE_LETTERS,
        "isMedium": letter in MEDIUM_LETTERS,
    }
