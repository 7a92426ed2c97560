# tutifrutti/util/scheduler.py
from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol

from tutifrutti.util.timeutil import now_ms


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Clock + deferred callbacks.
    Callbacks run to completion on the event loop, so room mutations inside
    them never interleave with intent handlers.
    """

    def now_ms(self) -> int: ...

    def call_later(self, delay_sec: float, callback: Callable[..., Any], *args: Any) -> Handle: ...


class LoopScheduler:
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def now_ms(self) -> int:
        return now_ms()

    def call_later(self, delay_sec: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, delay_sec), callback, *args)
