from fastapi.testclient import TestClient

from tutifrutti.main import create_app
from tutifrutti.settings import Settings
from tutifrutti.store.models import RoomConfig


def _client():
    return TestClient(create_app(Settings(LOG_LEVEL="WARNING")))


def test_health_and_empty_listing():
    with _client() as client:
        assert client.get("/health").json() == {"ok": True, "rooms": 0}
        assert client.get("/activeRooms").json() == []
        assert client.get("/api/rooms").json() == []


def test_listing_and_room_state():
    with _client() as client:
        directory = client.app.state.directory
        room = directory.create(RoomConfig(room_name="Sala de Ana", creator="Ana"))
        room.add_creator("Ana", "s-ana")

        [entry] = client.get("/api/rooms").json()
        assert entry["roomId"] == room.room_id
        assert entry["roomName"] == "Sala de Ana"
        assert entry["currentPlayers"] == 1

        state = client.get(f"/api/rooms/{room.room_id}").json()
        assert state["type"] == "roomState"
        assert state["creator"] == "Ana"

        assert client.get("/api/rooms/nope").status_code == 404


def test_websocket_create_room_and_errors():
    with _client() as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "createRoom", "playerName": "Ana"})
            joined = ws.receive_json()
            assert joined["type"] == "joinedRoom"
            created = ws.receive_json()
            assert created["type"] == "roomCreated"
            assert created["room"]["roomId"] == joined["roomId"]

            ws.send_json({"type": "getRooms"})
            rooms = ws.receive_json()
            assert rooms["type"] == "activeRooms"
            assert len(rooms["rooms"]) == 1

            ws.send_text("x" * 9000)
            assert ws.receive_json()["code"] == "MESSAGE_TOO_LARGE"

            ws.send_text("{not json")
            assert ws.receive_json()["code"] == "BAD_MESSAGE"
