# tutifrutti/domain/helpers/scoring.py
from __future__ import annotations

import re
from typing import Dict, List, Mapping

from pydantic import BaseModel

REPEATED_POINTS = 1
UNIQUE_POINTS = 2
LONG_WORD_POINTS = 3
LONG_WORD_MIN_SYLLABLES = 4  # "more than 3"

_VOWEL_RUN = re.compile(r"[aeiouáéíóúü]+", re.IGNORECASE)


class RoundBreakdown(BaseModel):
    repeated: int = 0
    unique: int = 0
    long_words: int = 0

    @property
    def total(self) -> int:
        return (
            self.repeated * REPEATED_POINTS
            + self.unique * UNIQUE_POINTS
            + self.long_words * LONG_WORD_POINTS
        )

    def public(self) -> Dict[str, int]:
        return {
            "repeated": self.repeated,
            "unique": self.unique,
            "longWords": self.long_words,
            "total": self.total,
        }


def count_syllables(word: str) -> int:
    """
    Rough Spanish syllable estimate: one per run of vowels, at least 1.
    """
    w = (word or "").strip()
    if not w:
        return 0
    return max(1, len(_VOWEL_RUN.findall(w)))


def score_round(
    words: Mapping[str, Mapping[str, str]],
    validity: Mapping[str, Mapping[str, bool]],
    categories: List[str],
) -> Dict[str, RoundBreakdown]:
    """
    words:    {player: {category: word}}
    validity: {player: {category: bool}}  (final, after review)

    Every submitting player gets a breakdown, possibly all zeros.
    Missing validity or empty words are skipped for that player/category.
    """
    out: Dict[str, RoundBreakdown] = {p: RoundBreakdown() for p in words}

    for category in categories:
        groups: Dict[str, List[str]] = {}
        for player, by_cat in words.items():
            word = (by_cat.get(category) or "").strip()
            if not word:
                continue
            if validity.get(player, {}).get(category) is not True:
                continue
            groups.setdefault(word.lower(), []).append(player)

        for text, players in groups.items():
            long_word = count_syllables(text) >= LONG_WORD_MIN_SYLLABLES
            for player in players:
                b = out[player]
                if len(players) == 1:
                    b.unique += 1
                else:
                    b.repeated += 1
                if long_word:
                    b.long_words += 1

    return out
