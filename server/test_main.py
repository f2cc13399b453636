"""
Tests for the FastAPI app: state broadcasts, player departure, health
endpoints and a full WebSocket session.

Run with: pytest test_main.py -v
"""

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

import main
from dice import Die
from game import GameOptions
from room import Room


class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]


@pytest.fixture(autouse=True)
def clean_rooms():
    main.room_manager.rooms.clear()
    yield
    main.room_manager.rooms.clear()


def make_room_with_game():
    room = Room(code="TEST")
    room.add_player("p0", "Player 0", MockWebSocket())
    room.add_player("p1", "Player 1", MockWebSocket())
    room.game.start_game(GameOptions(initial_player_index=0, score_limit=1000))
    main.room_manager.rooms[room.code] = room
    return room


# =============================================================================
# Broadcasts
# =============================================================================

class ScriptedWebSocket(MockWebSocket):
    """Mock WebSocket that replays client frames, then raises `end`."""

    def __init__(self, frames: list, end: BaseException):
        super().__init__()
        self.frames = list(frames)
        self.end = end

    async def accept(self):
        pass

    async def receive_json(self):
        if not self.frames:
            raise self.end
        frame = self.frames.pop(0)
        if isinstance(frame, BaseException):
            raise frame
        return frame


class TestBroadcastGameState:

    @pytest.mark.asyncio
    async def test_each_player_gets_own_view(self):
        room = make_room_with_game()
        await main.broadcast_game_state(room)

        state_0 = room.players["p0"].websocket.messages_of_type("game_state")[0]["game_state"]
        state_1 = room.players["p1"].websocket.messages_of_type("game_state")[0]["game_state"]
        assert state_0["is_your_turn"] is True
        assert state_1["is_your_turn"] is False
        assert not room.players["p0"].websocket.messages_of_type("game_over")

    @pytest.mark.asyncio
    async def test_game_over_sent(self):
        room = make_room_with_game()
        room.game.accumulated_points = 900
        room.game.dice = [Die(value=v) for v in (1, 2, 3, 4, 6, 6)]
        room.game.score("p0", [True, False, False, False, False, False])
        room.game.bank("p0")

        await main.broadcast_game_state(room)

        for player in room.players.values():
            over = player.websocket.messages_of_type("game_over")[0]
            assert over["winner_id"] == "p0"
            assert over["winner_number"] == 1
            assert over["final_scores"][0]["banked_score"] == 1000


class TestHandlePlayerLeave:

    @pytest.mark.asyncio
    async def test_remaining_player_notified(self):
        room = make_room_with_game()
        await main.handle_player_leave(room, "p0")

        ws = room.players["p1"].websocket
        left = ws.messages_of_type("player_left")[0]
        assert left["player_id"] == "p0"
        assert left["player_number"] == 1
        assert ws.messages_of_type("game_state")[0]["game_state"]["is_your_turn"] is True

    @pytest.mark.asyncio
    async def test_empty_room_removed(self):
        room = make_room_with_game()
        await main.handle_player_leave(room, "p0")
        await main.handle_player_leave(room, "p1")
        assert "TEST" not in main.room_manager.rooms


# =============================================================================
# HTTP and WebSocket
# =============================================================================

class TestEndpoints:

    def test_health(self):
        with TestClient(main.app) as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready_and_metrics(self):
        make_room_with_game()
        with TestClient(main.app) as client:
            assert client.get("/ready").json()["status"] == "ok"
            metrics = client.get("/metrics").json()
        assert metrics["active_rooms"] == 1
        assert metrics["total_players"] == 2
        assert metrics["games_in_progress"] == 1

    def test_websocket_session(self):
        with TestClient(main.app) as client:
            with client.websocket_connect("/ws") as ws_a, client.websocket_connect("/ws") as ws_b:
                ws_a.send_json({"type": "join", "player_name": "Alice"})
                assert ws_a.receive_json()["type"] == "player_assigned"
                assert ws_a.receive_json()["type"] == "player_joined"

                ws_b.send_json({"type": "join", "player_name": "Bob"})
                assigned = ws_b.receive_json()
                assert assigned["type"] == "player_assigned"
                assert assigned["player_number"] == 2
                assert ws_b.receive_json()["type"] == "player_joined"
                started_b = ws_b.receive_json()
                assert started_b["type"] == "game_started"

                assert ws_a.receive_json()["type"] == "player_joined"
                started_a = ws_a.receive_json()
                assert started_a["type"] == "game_started"

                waiting = ws_b if started_a["game_state"]["is_your_turn"] else ws_a
                waiting.send_json({"type": "bank"})
                error = waiting.receive_json()
                assert error["type"] == "error"
                assert error["kind"] == "out_of_turn"

    def test_malformed_frames_rejected_and_loop_survives(self):
        with TestClient(main.app) as client:
            with client.websocket_connect("/ws") as ws:
                ws.send_json({"type": "join", "player_name": "Alice"})
                assert ws.receive_json()["type"] == "player_assigned"
                assert ws.receive_json()["type"] == "player_joined"

                ws.send_json([1, 2, 3])
                error = ws.receive_json()
                assert error["type"] == "error"
                assert error["kind"] == "malformed_message"

                ws.send_text("not json")
                assert ws.receive_json()["kind"] == "malformed_message"

                # Still connected and seated: the game just hasn't started
                ws.send_json({"type": "bank"})
                assert ws.receive_json()["kind"] == "illegal_transition"


class TestConnectionCleanup:

    @pytest.mark.asyncio
    async def test_seat_freed_on_disconnect(self):
        ws = ScriptedWebSocket([{"type": "join"}], WebSocketDisconnect())
        await main.websocket_endpoint(ws)
        assert main.room_manager.rooms == {}

    @pytest.mark.asyncio
    async def test_seat_freed_when_loop_dies(self):
        ws = ScriptedWebSocket([{"type": "join"}], RuntimeError("socket torn down"))
        with pytest.raises(RuntimeError):
            await main.websocket_endpoint(ws)
        assert main.room_manager.rooms == {}

    @pytest.mark.asyncio
    async def test_undecodable_frame_answered(self):
        ws = ScriptedWebSocket(
            [{"type": "join"}, ValueError("Expecting value"), "hello"],
            WebSocketDisconnect(),
        )
        await main.websocket_endpoint(ws)

        errors = ws.messages_of_type("error")
        assert [e["kind"] for e in errors] == ["malformed_message", "malformed_message"]
        assert ws.messages_of_type("player_assigned")
        assert main.room_manager.rooms == {}
