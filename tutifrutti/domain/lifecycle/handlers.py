# tutifrutti/domain/lifecycle/handlers.py
from __future__ import annotations

from typing import List, Tuple

import structlog

from tutifrutti.domain.common.validation import require_name
from tutifrutti.store.models import RoomConfig
from tutifrutti.transport.protocols import (
    OutgoingEvent,
    OutActiveRooms,
    OutRoomCreated,
    InCreateRoom,
    InJoinRoom,
    InGetRooms,
    InGetRoomState,
    InReconnectPlayer,
    InLeaveRoom,
)

logger = structlog.get_logger()

# Returns: (to_sender, to_everyone)
Result = Tuple[List[OutgoingEvent], List[OutgoingEvent]]


def _detach(app, sid: str) -> None:
    """
    A session sits in at most one room. Creating or joining another one
    leaves the previous room first.
    """
    directory = app.state.directory
    room = directory.room_for(sid)
    if room is None:
        directory.unbind(sid)
        return
    if room.players.by_sid(sid) is not None:
        room.leave(sid)
    directory.unbind(sid)


async def handle_create_room(*, app, sid: str, msg: InCreateRoom) -> Result:
    directory = app.state.directory
    settings = app.state.settings

    # validate before anything exists
    name = require_name(msg.player_name)

    _detach(app, sid)
    config = RoomConfig.from_request(
        creator=name,
        settings=settings,
        room_name=msg.room_name,
        max_players=msg.max_players,
        is_private=msg.is_private,
        password=msg.password,
        rounds=msg.rounds,
        categories_count=msg.categories_count,
        time_limit=msg.time_limit,
        review_time=msg.review_time,
    )
    room = directory.create(config)
    joined = room.add_creator(name, sid)
    directory.bind(sid, room.room_id)

    listing = room.listing().model_dump(by_alias=True)
    return [joined], [OutRoomCreated(room=listing)]


async def handle_join(*, app, sid: str, msg: InJoinRoom) -> Result:
    directory = app.state.directory
    room = directory.require(msg.room_id)

    current = directory.room_for(sid)
    joined = room.join(msg.player_name, sid, password=msg.password)
    # the old seat goes only once the new one is taken
    if current is not None and current is not room:
        _detach(app, sid)
    directory.bind(sid, room.room_id)
    return [joined], []


async def handle_get_rooms(*, app, sid: str, msg: InGetRooms) -> Result:
    return [OutActiveRooms(rooms=app.state.directory.list())], []


async def handle_get_room_state(*, app, sid: str, msg: InGetRoomState) -> Result:
    room = app.state.directory.require(msg.room_id)
    return [room.room_state()], []


async def handle_reconnect(*, app, sid: str, msg: InReconnectPlayer) -> Result:
    directory = app.state.directory
    room = directory.require(msg.room_id)
    current = directory.room_for(sid)
    seat = room.players.by_name(require_name(msg.player_name))
    replaced = seat.sid if seat is not None and seat.sid != sid else None

    replies = room.reconnect(msg.player_name, sid)
    if current is not None and current is not room:
        _detach(app, sid)
    # a seat taken over from a live socket stops feeding that socket
    if replaced is not None and directory.room_for(replaced) is room:
        directory.unbind(replaced)
    directory.bind(sid, room.room_id)
    return replies, []


async def handle_leave(*, app, sid: str, msg: InLeaveRoom) -> Result:
    directory = app.state.directory
    room = directory.require_room_for(sid)
    room.leave(sid)
    directory.unbind(sid)
    return [], []


async def handle_disconnect(*, app, sid: str) -> Result:
    """
    Transport-driven. Not an error, never fails.
    """
    directory = app.state.directory
    room = directory.room_for(sid)
    directory.unbind(sid)
    if room is not None:
        room.disconnect(sid)
    return [], []
