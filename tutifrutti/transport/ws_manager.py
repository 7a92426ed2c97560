# tutifrutti/transport/ws_manager.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()


@dataclass
class Conn:
    sid: str
    ws: WebSocket


class WSManager:
    """
    In-memory connection registry: sid -> websocket.
    Room membership lives in the room directory, not here.
    """
    def __init__(self) -> None:
        self._conns: Dict[str, Conn] = {}
        self._lock = asyncio.Lock()

    async def add(self, sid: str, ws: WebSocket) -> None:
        async with self._lock:
            self._conns[sid] = Conn(sid=sid, ws=ws)

    async def remove(self, sid: str) -> None:
        async with self._lock:
            self._conns.pop(sid, None)

    async def send_to(self, sid: str, event: dict) -> None:
        async with self._lock:
            conn = self._conns.get(sid)
        if conn is None:
            return
        try:
            await conn.ws.send_json(event)
        except Exception:
            # dead socket; ws.py cleans up on disconnect
            logger.debug("send_failed", sid=sid, type=event.get("type"))

    async def send_many(self, sids: Iterable[str], event: dict) -> None:
        for sid in list(sids):
            await self.send_to(sid, event)

    async def broadcast_all(self, event: dict) -> None:
        # copy conns under lock, send outside lock
        async with self._lock:
            sids: List[str] = list(self._conns)
        await self.send_many(sids, event)

    async def size(self) -> int:
        async with self._lock:
            return len(self._conns)
