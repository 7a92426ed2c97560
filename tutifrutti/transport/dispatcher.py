# tutifrutti/transport/dispatcher.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Tuple

import structlog
from pydantic import ValidationError

from tutifrutti.domain.common.errors import GameError
from tutifrutti.transport.protocols import (
    READ_ONLY_TYPES,
    parse_incoming,
    OutError,
    OutgoingEvent,
    InCreateRoom,
    InJoinRoom,
    InGetRooms,
    InGetRoomState,
    InReconnectPlayer,
    InLeaveRoom,
    InStartGame,
    InSubmitWords,
    InForceEndRound,
    InCastVote,
    InConfirmReview,
    InNextRound,
    InFinishReview,
)
from tutifrutti.domain.lifecycle.handlers import (
    handle_create_room,
    handle_join,
    handle_get_rooms,
    handle_get_room_state,
    handle_reconnect,
    handle_leave,
)
from tutifrutti.domain.round.handlers import (
    handle_start_game,
    handle_submit_words,
    handle_force_end_round,
    handle_cast_vote,
    handle_confirm_review,
    handle_next_round,
)

logger = structlog.get_logger()

DispatchResult = Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]
# (to_sender_events, to_everyone_events), each event is JSON dict
# Room-scoped broadcasts do not pass through here: rooms publish them.

Handler = Callable[..., Awaitable[Tuple[List[OutgoingEvent], List[OutgoingEvent]]]]

_ROUTES: Dict[type, Handler] = {
    InCreateRoom: handle_create_room,
    InJoinRoom: handle_join,
    InGetRooms: handle_get_rooms,
    InGetRoomState: handle_get_room_state,
    InReconnectPlayer: handle_reconnect,
    InLeaveRoom: handle_leave,
    InStartGame: handle_start_game,
    InSubmitWords: handle_submit_words,
    InForceEndRound: handle_force_end_round,
    InCastVote: handle_cast_vote,
    InConfirmReview: handle_confirm_review,
    InNextRound: handle_next_round,
    InFinishReview: handle_next_round,
}


def _error(code: str, message: str) -> DispatchResult:
    return [OutError(code=code, message=message).to_wire()], []


async def dispatch_message(*, app, sid: str, raw: Any) -> DispatchResult:
    """
    Transport layer calls this.
    - Rate-limits mutating intents (before any domain logic)
    - Parses + validates raw JSON
    - Routes to the correct domain handler
    - Turns GameError into a direct error reply
    Returns (to_sender, to_everyone) events as JSON dicts.
    """
    if not isinstance(raw, dict):
        return _error("BAD_MESSAGE", "Message must be a JSON object")

    t = raw.get("type")
    limiter = getattr(app.state, "limiter", None)
    if limiter is not None and isinstance(t, str) and t not in READ_ONLY_TYPES:
        try:
            limiter.check(sid, t)
        except GameError as e:
            logger.warning("rate_limited", sid=sid, type=t)
            return _error(e.code, e.message)

    try:
        msg = parse_incoming(raw)
    except (ValidationError, ValueError) as e:
        logger.warning("bad_message", sid=sid, type=t, error=str(e))
        return _error("BAD_MESSAGE", str(e))

    handler = _ROUTES.get(type(msg))
    if handler is None:
        return _error("NOT_IMPLEMENTED", f"Handler not implemented for type={msg.type}")

    try:
        to_sender, to_everyone = await handler(app=app, sid=sid, msg=msg)
    except GameError as e:
        logger.warning("intent_rejected", sid=sid, type=msg.type, code=e.code, reason=e.message)
        return _error(e.code, e.message)

    return _dump(to_sender), _dump(to_everyone)


def _dump(events: List[OutgoingEvent]) -> List[Dict[str, Any]]:
    """
    Convert pydantic events -> JSON dicts.
    """
    return [e.to_wire() for e in events]
