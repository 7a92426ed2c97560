from __future__ import annotations

from typing import List, Tuple, Union

from tutifrutti.transport.protocols import InConfirmReview, InFinishReview, InNextRound

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


async def handle_confirm_review(*, app, sid: str, msg: InConfirmReview) -> Result:
    room = app.state.directory.require_room_for(sid, msg.room_id)
    room.confirm_review(sid)
    return [], []


async def handle_next_round(*, app, sid: str, msg: Union[InNextRound, InFinishReview]) -> Result:
    """
    nextRound and finishReview are the same creator action: close the
    review with optional tie resolutions, score, then move on.
    """
    room = app.state.directory.require_room_for(sid, msg.room_id)
    room.next_round(sid, msg.resolutions)
    return [], []
