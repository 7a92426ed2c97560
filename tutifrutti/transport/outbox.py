# tutifrutti/transport/outbox.py
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from tutifrutti.transport.protocols import OutBase
from tutifrutti.transport.ws_manager import WSManager

logger = structlog.get_logger()

Recipients = Callable[[str], List[str]]


class Outbox:
    """
    Ordered delivery of room broadcasts.

    Rooms publish synchronously (from intents and timer callbacks); events
    are serialised at publish time and pumped to sockets by a single task,
    so per-room order is exactly mutation order.
    """

    def __init__(self, wsman: WSManager, recipients: Optional[Recipients] = None) -> None:
        self._wsman = wsman
        self.recipients: Recipients = recipients or (lambda room_id: [])
        self._queue: "asyncio.Queue[Tuple[str, List[Dict[str, Any]]]]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def publish(self, room_id: str, events: List[OutBase]) -> None:
        self._queue.put_nowait((room_id, [e.to_wire() for e in events]))

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._pump())

    async def flush(self) -> None:
        """Wait until everything published so far has been handed to sockets."""
        await self._queue.join()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def deliver(self, room_id: str, events: List[Dict[str, Any]]) -> None:
        for e in events:
            targets = e.pop("targets", None)
            sids = targets if targets is not None else self.recipients(room_id)
            await self._wsman.send_many(sids, e)

    async def _pump(self) -> None:
        while True:
            room_id, events = await self._queue.get()
            try:
                await self.deliver(room_id, events)
            except Exception:
                logger.exception("outbox_delivery_failed", room_id=room_id)
            finally:
                self._queue.task_done()
