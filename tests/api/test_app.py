"""Tests for src/api/app.py through the FastAPI test client (HTTP endpoints and the WebSocket channel)."""

import random
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from starlette.testclient import WebSocketTestSession

from src.api.app import create_app
from src.checkers.game import GameState
from src.core.config import Settings
from src.core.models import RoomModel
from src.db.database import create_db_engine, session_factory
from src.db.sql_repository import SQLRoomRepository


def _receive_until(websocket: WebSocketTestSession, event: str) -> dict[str, Any]:
    """Broadcasts can arrive before the reply: skip messages until the wanted event."""
    for _ in range(10):
        message = websocket.receive_json()
        if message["event"] == event:
            return message["data"]
    raise AssertionError(f"No {event!r} received")


def _send(websocket: WebSocketTestSession, event: str, data: dict[str, Any]) -> None:
    websocket.send_json({"event": event, "data": data})


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    settings = Settings(sweep_interval_seconds=3600)
    with TestClient(create_app(settings, rng=random.Random(42))) as test_client:
        yield test_client


# --- HTTP ---
def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "rooms": 0, "connections": 0}


def test_unknown_room_status(client: TestClient) -> None:
    response = client.get("/rooms/ZZZ999")
    assert response.status_code == 404
    assert response.json()["exists"] is False


def test_invalid_room_code(client: TestClient) -> None:
    response = client.get("/rooms/ABC")
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_code"


# --- WEBSOCKET ---
def test_connection_gets_an_id(client: TestClient) -> None:
    with client.websocket_connect("/ws") as websocket:
        data = _receive_until(websocket, "connected")
        assert data["connection_id"]


def test_two_players_play_over_the_socket(client: TestClient) -> None:
    with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as guest:
        _send(host, "create-room", {"display_name": "Alice"})
        created = _receive_until(host, "room-created")
        code = created["code"]
        assert created["is_host"] is True
        assert created["invite_link"].endswith(f"/join/{code}")

        response = client.get(f"/rooms/{code.lower()}")
        assert response.status_code == 200
        assert response.json()["phase"] == "awaiting guest"

        _send(guest, "join-room", {"code": code, "display_name": "Bob"})
        start = _receive_until(guest, "game-start")
        assert start["host_name"] == "Alice"
        joined = _receive_until(guest, "room-joined")
        assert joined["color"] != created["color"]
        assert _receive_until(host, "game-start")["guest_name"] == "Bob"

        # Black moves first
        black, white = (host, guest) if created["color"] == "black" else (guest, host)
        move = {"from": {"row": 2, "col": 1}, "to": {"row": 3, "col": 2}}
        _send(white, "make-move", {"code": code, "move": move})
        error = _receive_until(white, "room-error")
        assert error["code"] == "not_your_turn"

        _send(black, "make-move", {"code": code, "move": move})
        accepted = _receive_until(black, "move-accepted")
        update = _receive_until(white, "game-update")
        assert update["game_state"] == accepted["game_state"]
        assert update["move"]["color"] == "black"

        _send(host, "chat-message", {"code": code, "text": "gg"})
        assert _receive_until(host, "chat-message")["text"] == "gg"
        assert _receive_until(guest, "chat-message")["sender"] == "Alice"

    assert client.get("/health").json()["rooms"] == 0


def test_guest_leaving_is_reported(client: TestClient) -> None:
    with client.websocket_connect("/ws") as host:
        _send(host, "create-room", {})
        code = _receive_until(host, "room-created")["code"]

        with client.websocket_connect("/ws") as guest:
            _send(guest, "join-room", {"code": code})
            _receive_until(guest, "room-joined")

        assert _receive_until(host, "player-disconnected") == {"role": "guest"}
        assert client.get(f"/rooms/{code}").json()["phase"] == "partially connected"


def test_bad_messages_are_answered_with_errors(client: TestClient) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("not json at all")
        assert _receive_until(websocket, "room-error")["code"] == "invalid_request"

        _send(websocket, "join-room", {"code": "ZZZ999"})
        assert _receive_until(websocket, "room-error")["code"] == "room_not_found"


# --- PERSISTENCE ---
def test_rooms_survive_a_restart(tmp_path: Path) -> None:
    """Stored rooms come back vacant; whatever happens to them afterwards is written back."""
    database_url = f"sqlite:///{tmp_path / 'rooms.db'}"
    engine = create_db_engine(database_url)
    stamp = datetime.now(timezone.utc)
    with session_factory(engine)() as db:
        repository = SQLRoomRepository(db)
        for code in ("AAA111", "BBB222"):
            repository.save_room(
                RoomModel(
                    code=code,
                    host_color="white",
                    game_state=GameState.new().to_dict(),
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
    engine.dispose()

    settings = Settings(sweep_interval_seconds=3600, database_url=database_url)
    with TestClient(create_app(settings)) as client:
        response = client.get("/rooms/AAA111")
        assert response.status_code == 200
        assert response.json()["phase"] == "vacant"
        assert response.json()["host_color"] == "white"

        with client.websocket_connect("/ws") as host:
            _send(host, "claim-host", {"code": "AAA111", "display_name": "Alice"})
            assert _receive_until(host, "host-claimed")["color"] == "white"
        # the host left again: the room is gone

    engine = create_db_engine(database_url)
    with session_factory(engine)() as db:
        codes = [room.code for room in SQLRoomRepository(db).list_rooms()]
    engine.dispose()
    assert codes == ["BBB222"]
