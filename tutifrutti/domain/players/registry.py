# tutifrutti/domain/players/registry.py
from __future__ import annotations

from typing import Callable, Dict, List, Optional

import structlog

from tutifrutti.domain.common.errors import DuplicateName, PlayerNotFound
from tutifrutti.domain.common.validation import require_name, same_name
from tutifrutti.store.models import PlayerStore
from tutifrutti.util.scheduler import Scheduler

logger = structlog.get_logger()


class PlayerRegistry:
    """
    Roster of one room, in join order.
    Names are unique case-insensitively; the live session id (sid) is
    rebound on reconnect.
    """

    def __init__(self, scheduler: Scheduler, *, grace_period_sec: float = 15) -> None:
        self._scheduler = scheduler
        self._grace_period_sec = grace_period_sec
        self._players: List[PlayerStore] = []

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self):
        return iter(list(self._players))

    def all(self) -> List[PlayerStore]:
        return list(self._players)

    def connected_players(self) -> List[PlayerStore]:
        return [p for p in self._players if p.connected]

    def by_name(self, name: str) -> Optional[PlayerStore]:
        for p in self._players:
            if same_name(p.name, name):
                return p
        return None

    def by_sid(self, sid: str) -> Optional[PlayerStore]:
        for p in self._players:
            if p.sid == sid:
                return p
        return None

    def creator(self) -> Optional[PlayerStore]:
        for p in self._players:
            if p.is_creator:
                return p
        return None

    def add_player(self, name: str, is_creator: bool, sid: str) -> PlayerStore:
        clean = require_name(name)
        if self.by_name(clean) is not None:
            raise DuplicateName("Name already taken in this room")
        p = PlayerStore(
            sid=sid,
            name=clean,
            is_creator=is_creator,
            joined_at=self._scheduler.now_ms(),
        )
        self._players.append(p)
        return p

    def mark_disconnected(self, sid: str, on_expire: Callable[[PlayerStore], None]) -> Optional[PlayerStore]:
        """
        Flip to disconnected and schedule the grace-period callback on the record.
        """
        p = self.by_sid(sid)
        if p is None or not p.connected:
            return None
        p.connected = False
        p.disconnected_at = self._scheduler.now_ms()
        self._cancel_grace(p)
        p._grace = self._scheduler.call_later(self._grace_period_sec, self._grace_expired, p, on_expire)
        return p

    def reconnect(self, name: str, sid: str) -> PlayerStore:
        p = self.by_name(name)
        if p is None:
            raise PlayerNotFound("Player not found in this room")
        self._cancel_grace(p)
        p.sid = sid
        p.connected = True
        p.disconnected_at = None
        return p

    def remove(self, name: str) -> Optional[PlayerStore]:
        p = self.by_name(name)
        if p is None:
            return None
        self._cancel_grace(p)
        self._players.remove(p)
        return p

    def promote_next_creator(self) -> Optional[PlayerStore]:
        """
        Hand the creator flag to the first connected player.
        Returns the new creator, or None when nobody is connected.
        """
        if self.creator() is not None:
            return None
        for p in self._players:
            if p.connected:
                p.is_creator = True
                return p
        return None

    def reset_ready(self) -> None:
        for p in self._players:
            p.ready = False

    def close(self) -> None:
        for p in self._players:
            self._cancel_grace(p)

    def _grace_expired(self, p: PlayerStore, on_expire: Callable[[PlayerStore], None]) -> None:
        p._grace = None
        # reconnected or already removed in the meantime
        if p.connected or not any(x is p for x in self._players):
            return
        on_expire(p)

    @staticmethod
    def _cancel_grace(p: PlayerStore) -> None:
        if p._grace is not None:
            p._grace.cancel()
            p._grace = None
