# tutifrutti/domain/room/directory.py
from __future__ import annotations

import random
import string
from typing import Callable, Dict, List, Optional

import structlog

from tutifrutti.domain.common.errors import NoRoom, RoomNotFound
from tutifrutti.domain.helpers.timer import TimerAuthority
from tutifrutti.domain.room.engine import Publish, RoomEngine
from tutifrutti.store.models import RoomConfig
from tutifrutti.util.scheduler import Handle, Scheduler

logger = structlog.get_logger()

ROOM_ID_LEN = 9
_ALPHABET = string.ascii_lowercase + string.digits


def _gen_room_id(rng: random.Random, n: int = ROOM_ID_LEN) -> str:
    return "".join(rng.choice(_ALPHABET) for _ in range(n))


class RoomDirectory:
    """
    Owns every live room of one process, plus the session -> room binding.
    No module-level state: tests build as many directories as they like.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        publish: Publish,
        retention_sec: float = 300,
        rng: Optional[random.Random] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._scheduler = scheduler
        self._publish = publish
        self._retention_sec = retention_sec
        self._rng = rng or random.SystemRandom()
        self._id_factory = id_factory or (lambda: _gen_room_id(self._rng))

        self.timers = TimerAuthority(scheduler)
        self._rooms: Dict[str, RoomEngine] = {}
        self._sessions: Dict[str, str] = {}          # sid -> room_id
        self._gc: Dict[str, Handle] = {}             # room_id -> pending idle check

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    # ---- rooms ----

    def create(self, config: RoomConfig) -> RoomEngine:
        room_id = self._id_factory()
        while room_id in self._rooms:
            room_id = self._id_factory()

        room = RoomEngine(
            room_id,
            config,
            scheduler=self._scheduler,
            timers=self.timers,
            publish=self._publish,
            on_idle=self._room_idle,
            on_empty=self.delete,
            rng=self._rng,
        )
        self._rooms[room_id] = room
        return room

    def get(self, room_id: str) -> Optional[RoomEngine]:
        return self._rooms.get(room_id)

    def require(self, room_id: str) -> RoomEngine:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound("Room not found")
        return room

    def list(self) -> List[dict]:
        """Directory snapshot, connected-player counts only."""
        return [r.listing().model_dump(by_alias=True) for r in self._rooms.values()]

    def delete(self, room_id: str) -> None:
        room = self._rooms.pop(room_id, None)
        self._cancel_gc(room_id)
        if room is None:
            return
        room.close()
        for sid in self.sessions_in(room_id):
            self._sessions.pop(sid, None)
        logger.info("room_deleted", room_id=room_id)

    def close(self) -> None:
        for room_id in list(self._rooms):
            self.delete(room_id)

    # ---- sessions ----

    def bind(self, sid: str, room_id: str) -> None:
        self._sessions[sid] = room_id
        # retention restarts on the next idle episode
        self._cancel_gc(room_id)

    def unbind(self, sid: str) -> Optional[str]:
        return self._sessions.pop(sid, None)

    def room_for(self, sid: str) -> Optional[RoomEngine]:
        room_id = self._sessions.get(sid)
        if room_id is None:
            return None
        return self._rooms.get(room_id)

    def sessions_in(self, room_id: str) -> List[str]:
        return [s for s, rid in self._sessions.items() if rid == room_id]

    def require_room_for(self, sid: str, room_id: Optional[str] = None) -> RoomEngine:
        room = self.room_for(sid)
        if room is None:
            raise NoRoom("You are not in a room")
        if room_id and room_id != room.room_id:
            raise NoRoom("You are not in that room")
        return room

    # ---- idle GC ----

    def _room_idle(self, room_id: str) -> None:
        if room_id in self._gc or room_id not in self._rooms:
            return
        logger.info("room_idle", room_id=room_id, retention_sec=self._retention_sec)
        self._gc[room_id] = self._scheduler.call_later(self._retention_sec, self._gc_check, room_id)

    def _gc_check(self, room_id: str) -> None:
        self._gc.pop(room_id, None)
        room = self._rooms.get(room_id)
        if room is None:
            return
        if room.is_idle:
            self.delete(room_id)

    def _cancel_gc(self, room_id: str) -> None:
        h = self._gc.pop(room_id, None)
        if h is not None:
            h.cancel()
