# tutifrutti/domain/helpers/timer.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import structlog

from tutifrutti.util.scheduler import Handle, Scheduler

logger = structlog.get_logger()

TickFn = Callable[[int, int], None]      # (remaining_sec, deadline_ms)
ExpireFn = Callable[[], None]

TICK_SEC = 1.0


@dataclass(eq=False)
class _Countdown:
    deadline: int
    on_tick: TickFn
    on_expire: ExpireFn
    handle: Optional[Handle] = field(default=None)


class TimerAuthority:
    """
    Server-owned countdowns, one per key (room id).

    The absolute deadline is the only source of truth: every tick recomputes
    remaining seconds from it, so late or jittery callbacks never drift.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._running: Dict[str, _Countdown] = {}

    def start(self, key: str, duration_sec: float, on_tick: TickFn, on_expire: ExpireFn) -> int:
        # no orphaned intervals: a new countdown always replaces the old one
        self.cancel(key)
        deadline = self._scheduler.now_ms() + int(duration_sec * 1000)
        cd = _Countdown(deadline=deadline, on_tick=on_tick, on_expire=on_expire)
        self._running[key] = cd
        self._tick(key, cd)
        return deadline

    def cancel(self, key: str) -> None:
        cd = self._running.pop(key, None)
        if cd is not None and cd.handle is not None:
            cd.handle.cancel()

    def remaining(self, key: str) -> Optional[int]:
        cd = self._running.get(key)
        if cd is None:
            return None
        return self._remaining(cd)

    def deadline(self, key: str) -> Optional[int]:
        cd = self._running.get(key)
        return cd.deadline if cd is not None else None

    def is_running(self, key: str) -> bool:
        return key in self._running

    def _remaining(self, cd: _Countdown) -> int:
        return max(0, math.ceil((cd.deadline - self._scheduler.now_ms()) / 1000))

    def _tick(self, key: str, cd: _Countdown) -> None:
        # stale callback from a cancelled or replaced countdown
        if self._running.get(key) is not cd:
            return

        remaining = self._remaining(cd)
        cd.on_tick(remaining, cd.deadline)

        # on_tick may have cancelled or replaced us
        if self._running.get(key) is not cd:
            return

        if remaining <= 0:
            self._running.pop(key, None)
            logger.debug("timer_expired", key=key)
            cd.on_expire()
            return

        cd.handle = self._scheduler.call_later(TICK_SEC, self._tick, key, cd)
