# tutifrutti/transport/rooms.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

router = APIRouter()


@router.get("/activeRooms")
@router.get("/api/rooms")
async def active_rooms(request: Request):
    return request.app.state.directory.list()


@router.get("/api/rooms/{room_id}")
async def room_state(room_id: str, request: Request):
    room = request.app.state.directory.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room.room_state().to_wire()
