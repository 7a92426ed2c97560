# tutifrutti/transport/ratelimit.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Mapping, Optional, Tuple

from tutifrutti.domain.common.errors import RateLimitError


@dataclass(frozen=True)
class Rule:
    limit: int
    window_ms: int

    @classmethod
    def parse(cls, text: str) -> "Rule":
        """ "5/60" -> 5 events per 60 seconds """
        count, _, seconds = text.partition("/")
        return cls(limit=int(count), window_ms=int(float(seconds) * 1000))


class SlidingWindowLimiter:
    """
    Per-connection, per-event sliding window.
    Fails closed: a full window raises, the intent is never run.
    """

    def __init__(
        self,
        rules: Mapping[str, Rule],
        default_rule: Optional[Rule],
        *,
        clock: Callable[[], int],
    ) -> None:
        self._rules = dict(rules)
        self._default = default_rule
        self._clock = clock
        self._hits: Dict[Tuple[str, str], Deque[int]] = {}

    def rule_for(self, event: str) -> Optional[Rule]:
        return self._rules.get(event, self._default)

    def check(self, sid: str, event: str) -> None:
        rule = self.rule_for(event)
        if rule is None:
            return
        now = self._clock()
        hits = self._hits.setdefault((sid, event), deque())
        while hits and now - hits[0] >= rule.window_ms:
            hits.popleft()
        if len(hits) >= rule.limit:
            raise RateLimitError("Too many requests, slow down")
        hits.append(now)

    def forget(self, sid: str) -> None:
        for key in [k for k in self._hits if k[0] == sid]:
            del self._hits[key]


def limiter_from_settings(settings, *, clock: Callable[[], int]) -> SlidingWindowLimiter:
    rules = {
        "createRoom": Rule.parse(settings.RATE_LIMIT_CREATE_ROOM),
        "joinRoom": Rule.parse(settings.RATE_LIMIT_JOIN_ROOM),
        "submitWords": Rule.parse(settings.RATE_LIMIT_SUBMIT_WORDS),
    }
    return SlidingWindowLimiter(rules, Rule.parse(settings.RATE_LIMIT_DEFAULT), clock=clock)
