"""Tests for the WebSocket gateway."""
import asyncio
import json

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState

from arena_server.main import create_app
from arena_server.services.simulation import Simulation
from arena_server.services.websocket_service import WebSocketService


class FakeWebSocket:
    """Records what the service sends."""

    def __init__(self, open_: bool = True, fail: bool = False):
        state = WebSocketState.CONNECTED if open_ else WebSocketState.DISCONNECTED
        self.client_state = state
        self.application_state = state
        self.fail = fail
        self.sent = []

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(json.loads(data))

    async def send_json(self, data: dict):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)


@pytest.fixture()
def simulation() -> Simulation:
    return Simulation(obstacle_count=3, clock=lambda: 0.0)


@pytest.fixture()
def client(simulation: Simulation) -> TestClient:
    return TestClient(create_app(simulation))


def _sync(websocket) -> None:
    """Round-trip a ping on a joined connection so earlier messages are handled."""
    websocket.send_json({"type": "ping"})
    assert websocket.receive_json() == {"type": "pong"}


def test_join_creates_player_and_welcomes(client, simulation) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "join", "name": "Alpha"})
        welcome = websocket.receive_json()

        assert welcome["type"] == "welcome"
        assert welcome["worldSize"] == {"w": 3000, "h": 2000}
        player = simulation.world.players[welcome["id"]]
        assert player.name == "Alpha"


def test_second_join_is_ignored(client, simulation) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "join", "name": "Alpha"})
        websocket.receive_json()
        websocket.send_json({"type": "join", "name": "Again"})
        _sync(websocket)
        assert len(simulation.world.players) == 1


def test_messages_before_join_are_ignored(client, simulation) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "ping"})
        websocket.send_json({"type": "input", "data": {"up": True}})
        websocket.send_json({"type": "upgrade", "choice": "speed"})
        websocket.send_json({"type": "join", "name": "Alpha"})

        welcome = websocket.receive_json()
        assert welcome["type"] == "welcome"
        player = simulation.world.players[welcome["id"]]
        assert player.inputs.up is False
        assert player.speed == 220


def test_malformed_messages_are_dropped(client, simulation) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("{not json")
        websocket.send_text("[1, 2, 3]")
        websocket.send_bytes(b"\xff\xfe")
        websocket.send_json({"type": "join", "name": "Alpha"})
        assert websocket.receive_json()["type"] == "welcome"
        websocket.send_json({"type": "input", "data": "up"})
        websocket.send_json({"type": "mystery"})
        websocket.send_text("[" * 200000 + "]" * 200000)
        _sync(websocket)
        assert len(simulation.world.players) == 1


def test_non_finite_aim_keeps_snapshot_valid(client, simulation) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "join", "name": "Alpha"})
        player = simulation.world.players[websocket.receive_json()["id"]]
        websocket.send_text('{"type": "input", "data": {"aimX": NaN, "aimY": 5, "firing": true}}')
        _sync(websocket)

        assert player.inputs.aimX == 0.0
        assert player.inputs.aimY == 5.0
        simulation.step(0.05, now=10.0)
        json.dumps(simulation.build_snapshot(), allow_nan=False)


def test_input_and_upgrade_are_applied(client, simulation) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "join", "name": "Alpha"})
        player = simulation.world.players[websocket.receive_json()["id"]]

        websocket.send_json({"type": "input", "data": {"up": True, "aimX": 40}})
        websocket.send_json({"type": "input", "data": {"firing": True}})
        websocket.send_json({"type": "upgrade", "choice": "speed"})
        websocket.send_json({"type": "upgrade", "choice": "warp"})
        _sync(websocket)

        assert player.inputs.up is True
        assert player.inputs.firing is True
        assert player.inputs.aimX == 40
        assert player.speed == 240


def test_disconnect_removes_player(client, simulation) -> None:
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "join", "name": "Alpha"})
        player_id = websocket.receive_json()["id"]
        assert player_id in simulation.world.players

    assert player_id not in simulation.world.players
    service = client.app.state.websocket_service
    assert service.connected_clients == set()
    assert service.player_to_websocket == {}


def test_broadcast_skips_closed_and_drops_failed_connections(simulation) -> None:
    service = WebSocketService(simulation)
    healthy, closed, broken = FakeWebSocket(), FakeWebSocket(open_=False), FakeWebSocket(fail=True)
    for websocket in (healthy, closed, broken):
        service.connected_clients.add(websocket)
    player = simulation.add_player("Broken")
    service.websocket_to_player[broken] = player.id
    service.player_to_websocket[player.id] = broken

    asyncio.run(service.broadcast_state())

    assert len(healthy.sent) == 1
    assert healthy.sent[0]["type"] == "state"
    assert set(healthy.sent[0]) == {"type", "players", "bullets", "obstacles", "leaderboard"}
    assert closed.sent == []
    assert broken not in service.connected_clients
    assert player.id not in simulation.world.players


def test_levelups_go_only_to_the_owner(simulation) -> None:
    service = WebSocketService(simulation)
    owner_socket, other_socket = FakeWebSocket(), FakeWebSocket()
    for player_id, websocket in (("owner", owner_socket), ("other", other_socket)):
        simulation.add_player(player_id, player_id=player_id)
        service.connected_clients.add(websocket)
        service.websocket_to_player[websocket] = player_id
        service.player_to_websocket[player_id] = websocket

    asyncio.run(
        service._deliver(
            [
                {"playerId": "owner", "message": {"type": "levelup", "level": 2}},
                {"playerId": "owner", "message": {"type": "levelup", "level": 3}},
                {"playerId": "gone", "message": {"type": "levelup", "level": 9}},
            ]
        )
    )

    assert owner_socket.sent == [
        {"type": "levelup", "level": 2},
        {"type": "levelup", "level": 3},
    ]
    assert other_socket.sent == []


def test_background_loops_start_and_stop(simulation) -> None:
    service = WebSocketService(simulation)

    async def run_briefly():
        service.start_background_tasks()
        await asyncio.sleep(0.1)
        await service.stop_background_tasks()

    asyncio.run(run_briefly())
    assert service._tick_task is None
    assert service._broadcast_task is None
