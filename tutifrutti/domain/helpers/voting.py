from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from tutifrutti.domain.common.types import Decision
from tutifrutti.domain.common.validation import starts_with_letter

Key = Tuple[str, str]  # (target player, category)


@dataclass(frozen=True)
class VoteCounts:
    approve: int = 0
    reject: int = 0


def _resolution_to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("valid", "approve", "true", "yes"):
            return True
        if v in ("invalid", "reject", "false", "no"):
            return False
    return None


class VoteTally:
    """
    Per-round ballot ledger.
    - A voter never votes on their own word.
    - A ballot per (voter, target, category) is a single mutable choice:
      approving removes any earlier reject, and vice versa.
    """

    def __init__(self) -> None:
        self._approve: Dict[Key, Set[str]] = {}
        self._reject: Dict[Key, Set[str]] = {}

    def cast(self, voter: str, target: str, category: str, decision: Decision) -> bool:
        """
        Record a ballot. Returns False when the ballot is ignored (self-vote).
        """
        if voter.casefold() == target.casefold():
            return False
        key = (target, category)
        approve = self._approve.setdefault(key, set())
        reject = self._reject.setdefault(key, set())
        if decision == "approve":
            reject.discard(voter)
            approve.add(voter)
        else:
            approve.discard(voter)
            reject.add(voter)
        return True

    def counts(self, target: str, category: str) -> VoteCounts:
        key = (target, category)
        return VoteCounts(
            approve=len(self._approve.get(key, ())),
            reject=len(self._reject.get(key, ())),
        )

    def ballot_of(self, voter: str, target: str, category: str) -> Optional[Decision]:
        key = (target, category)
        if voter in self._approve.get(key, ()):
            return "approve"
        if voter in self._reject.get(key, ()):
            return "reject"
        return None

    def drop_voter(self, voter: str) -> None:
        for bucket in (self._approve, self._reject):
            for voters in bucket.values():
                voters.discard(voter)

    def resolve(
        self,
        target: str,
        category: str,
        letter: str,
        word: str,
        resolutions: Optional[Mapping[str, Any]] = None,
        *,
        tie_default_valid: bool = True,
    ) -> bool:
        """
        Final validity of one word:
        prefix rule, then majority, then host tie-break, then the tie default.
        """
        if not word or not starts_with_letter(word, letter):
            return False
        c = self.counts(target, category)
        if c.approve != c.reject:
            return c.approve > c.reject
        if resolutions:
            picked = _resolution_to_bool(resolutions.get(f"{target}:{category}"))
            if picked is not None:
                return picked
        return tie_default_valid

    def snapshot(self) -> Dict[str, Dict[str, Dict[str, int]]]:
        """Counts only, never voter sets: {target: {category: {validCount, invalidCount}}}."""
        out: Dict[str, Dict[str, Dict[str, int]]] = {}
        for key in set(self._approve) | set(self._reject):
            target, category = key
            c = self.counts(target, category)
            out.setdefault(target, {})[category] = {
                "validCount": c.approve,
                "invalidCount": c.reject,
            }
        return out

    def clear(self) -> None:
        self._approve.clear()
        self._reject.clear()
