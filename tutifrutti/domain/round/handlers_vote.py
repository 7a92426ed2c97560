from __future__ import annotations

from typing import List, Tuple

from tutifrutti.transport.protocols import InCastVote

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


async def handle_cast_vote(*, app, sid: str, msg: InCastVote) -> Result:
    # Ignored ballots (self-votes, wrong phase) get no reply at all.
    room = app.state.directory.require_room_for(sid, msg.room_id)
    room.cast_vote(
        sid,
        msg.target_player,
        msg.category,
        msg.decision,
        voter_name=msg.voter_name,
    )
    return [], []
