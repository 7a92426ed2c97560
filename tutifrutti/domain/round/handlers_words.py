from __future__ import annotations

from typing import List, Tuple

from tutifrutti.transport.protocols import InForceEndRound, InSubmitWords

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


async def handle_submit_words(*, app, sid: str, msg: InSubmitWords) -> Result:
    room = app.state.directory.require_room_for(sid, msg.room_id)
    room.submit_words(sid, msg.words, player_name=msg.player_name)
    return [], []


async def handle_force_end_round(*, app, sid: str, msg: InForceEndRound) -> Result:
    """BASTA."""
    room = app.state.directory.require_room_for(sid, msg.room_id)
    room.force_end_round(sid, player_name=msg.player_name)
    return [], []
