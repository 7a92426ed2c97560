import pytest

from tutifrutti.domain.common.errors import NoRoom, RoomNotFound
from tutifrutti.domain.room.directory import RoomDirectory

from conftest import ManualScheduler, Recorder, make_config


def _room_with(directory, *names):
    room = directory.create(make_config())
    room.add_creator("Ana", "s-ana")
    directory.bind("s-ana", room.room_id)
    for name in names:
        sid = f"s-{name.lower()}"
        room.join(name, sid)
        directory.bind(sid, room.room_id)
    return room


def test_room_ids_are_opaque_base36(directory):
    room = directory.create(make_config())
    assert len(room.room_id) == 9
    assert room.room_id.isalnum()
    assert room.room_id == room.room_id.lower()


def test_create_retries_on_collision(scheduler):
    ids = iter(["aaa", "aaa", "bbb"])
    d = RoomDirectory(scheduler=scheduler, publish=Recorder(), id_factory=lambda: next(ids))

    first = d.create(make_config())
    second = d.create(make_config())

    assert (first.room_id, second.room_id) == ("aaa", "bbb")


def test_listing_counts_connected_players_only(directory):
    room = _room_with(directory, "Beto")
    room.disconnect("s-beto")

    [entry] = directory.list()

    assert entry["roomId"] == room.room_id
    assert entry["roomName"] == "Sala"
    assert entry["creator"] == "Ana"
    assert entry["currentPlayers"] == 1
    assert entry["maxPlayers"] == 5
    assert entry["isPrivate"] is False
    assert entry["isPlaying"] is False
    assert entry["createdAt"].endswith("Z") or "+00:00" in entry["createdAt"]


def test_get_and_require(directory):
    assert directory.get("nope") is None
    with pytest.raises(RoomNotFound):
        directory.require("nope")


def test_delete_closes_room_and_drops_sessions(directory, scheduler, recorder):
    room = _room_with(directory, "Beto")
    room.start_game("s-ana")

    directory.delete(room.room_id)
    recorder.clear()
    scheduler.advance(120)

    assert room.closed is True
    assert recorder.events == []
    assert directory.room_for("s-beto") is None
    assert room.room_id not in directory
    directory.delete(room.room_id)


def test_idle_room_is_collected_after_retention(directory, scheduler):
    room = _room_with(directory)
    room.disconnect("s-ana")

    scheduler.advance(15)
    # the player is gone but the shell stays for late arrivals
    assert room.room_id in directory
    assert len(room.players) == 0

    scheduler.advance(284)
    assert room.room_id in directory
    scheduler.advance(2)
    assert room.room_id not in directory


def test_gc_spares_room_that_came_back(directory, scheduler):
    room = _room_with(directory)
    room.disconnect("s-ana")
    scheduler.advance(10)
    room.reconnect("Ana", "s-ana-2")

    scheduler.advance(400)

    assert room.room_id in directory


def test_retention_restarts_when_a_player_comes_back(directory, scheduler):
    room = _room_with(directory)
    room.disconnect("s-ana")
    scheduler.advance(10)
    room.reconnect("Ana", "s-ana-2")
    directory.bind("s-ana-2", room.room_id)

    scheduler.advance(280)
    room.disconnect("s-ana-2")
    # past the first idle episode's deadline
    scheduler.advance(20)
    assert room.room_id in directory

    scheduler.advance(281)
    assert room.room_id not in directory


def test_last_player_leaving_deletes_room(directory):
    room = _room_with(directory)
    room.leave("s-ana")
    assert room.room_id not in directory
    assert room.closed is True


def test_session_binding(directory):
    room = _room_with(directory)

    assert directory.room_for("s-ana") is room
    assert directory.require_room_for("s-ana", room.room_id) is room
    with pytest.raises(NoRoom):
        directory.require_room_for("s-ana", "other-room")
    with pytest.raises(NoRoom):
        directory.require_room_for("s-ghost")

    assert directory.unbind("s-ana") == room.room_id
    assert directory.room_for("s-ana") is None


def test_directories_are_independent():
    clock = ManualScheduler()
    a = RoomDirectory(scheduler=clock, publish=Recorder())
    b = RoomDirectory(scheduler=clock, publish=Recorder())

    room = a.create(make_config())

    assert len(a) == 1
    assert len(b) == 0
    assert b.get(room.room_id) is None
