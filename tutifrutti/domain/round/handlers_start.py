from __future__ import annotations

from typing import List, Tuple

from tutifrutti.transport.protocols import InStartGame

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


async def handle_start_game(*, app, sid: str, msg: InStartGame) -> Result:
    room = app.state.directory.require_room_for(sid, msg.room_id)
    room.start_game(sid)
    return [], []
