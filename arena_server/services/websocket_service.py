# arena_server/services/websocket_service.py
"""WebSocket connection management, message routing and background loops."""

import asyncio
import json
import logging
from typing import Dict, List, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from arena_server.config.settings import (
    BROADCAST_RATE,
    TICK_RATE,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from .simulation import Simulation

logger = logging.getLogger(__name__)


class WebSocketService:
    """Manages WebSocket connections and message routing."""

    def __init__(self, simulation: Simulation):
        self.simulation = simulation
        self.connected_clients: Set[WebSocket] = set()
        self.websocket_to_player: Dict[WebSocket, str] = {}
        self.player_to_websocket: Dict[str, WebSocket] = {}
        self._tick_task: Optional[asyncio.Task] = None
        self._broadcast_task: Optional[asyncio.Task] = None

    def start_background_tasks(self):
        """Start the simulation and broadcast loops."""
        if not self._tick_task:
            self._tick_task = asyncio.create_task(self._tick_loop())
        if not self._broadcast_task:
            self._broadcast_task = asyncio.create_task(self._broadcast_loop())
        logger.info(
            "Background loops started (tick %d Hz, broadcast %d Hz)",
            TICK_RATE,
            BROADCAST_RATE,
        )

    async def stop_background_tasks(self):
        """Cancel the background loops and wait for them to finish."""
        tasks = [t for t in (self._tick_task, self._broadcast_task) if t]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        self._broadcast_task = None
        logger.info("Background loops stopped")

    async def _tick_loop(self):
        """Advance the simulation at a fixed rate.

        An overrunning tick delays the next one; ticks are never skipped.
        """
        loop = asyncio.get_running_loop()
        interval = 1 / TICK_RATE
        self.simulation.last_tick = self.simulation.clock()

        while True:
            started = loop.time()
            try:
                notifications = self.simulation.tick()
            except Exception:
                logger.exception("Simulation tick failed")
                notifications = []
            await self._deliver(notifications)
            await asyncio.sleep(max(0.0, interval - (loop.time() - started)))

    async def _broadcast_loop(self):
        """Send the world snapshot to every client at a fixed rate."""
        interval = 1 / BROADCAST_RATE

        while True:
            await asyncio.sleep(interval)
            if self.connected_clients:
                await self.broadcast_state()

    async def broadcast_state(self):
        """Serialize the world once and send it to all open connections."""
        payload = json.dumps(self.simulation.build_snapshot())
        await self._broadcast_text(payload)

    async def _deliver(self, notifications: List[dict]):
        """Send targeted notifications to the connection owning each player."""
        for notification in notifications:
            websocket = self.player_to_websocket.get(notification["playerId"])
            if websocket is None:
                continue
            if not await self._send_json(websocket, notification["message"]):
                await self._handle_disconnect(websocket)

    async def handle_connection(self, websocket: WebSocket):
        """Handle a new WebSocket connection."""
        await websocket.accept()
        logger.info("WebSocket connection accepted for %s", websocket.client)
        self.connected_clients.add(websocket)

        try:
            await self._handle_client_messages(websocket)
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("WebSocket error for %s", websocket.client)
        finally:
            await self._handle_disconnect(websocket)

    async def _handle_client_messages(self, websocket: WebSocket):
        """Handle incoming messages from a client."""
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            data = self._parse_message(raw)
            if data is not None:
                await self._process_message(websocket, data)

    @staticmethod
    def _parse_message(raw) -> Optional[dict]:
        """Decode a client frame, or None when it is not a JSON object."""
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError):
            return None
        if not isinstance(data, dict):
            return None
        return data

    async def _process_message(self, websocket: WebSocket, data: dict):
        """Process a single message from a client."""
        message_type = data.get("type")
        player_id = self.websocket_to_player.get(websocket)

        if message_type == "join":
            if player_id is None:
                await self._handle_join(websocket, data)
        elif player_id is None:
            return
        elif message_type == "ping":
            await self._send_json(websocket, {"type": "pong"})
        elif message_type == "input":
            self._handle_input(player_id, data)
        elif message_type == "upgrade":
            self.simulation.apply_upgrade(player_id, data.get("choice"))

    async def _handle_join(self, websocket: WebSocket, data: dict):
        """Create the player for a connection and greet it."""
        player = self.simulation.add_player(data.get("name"))
        self.websocket_to_player[websocket] = player.id
        self.player_to_websocket[player.id] = websocket
        logger.info("Player %s joined as %r", player.id, player.name)

        await self._send_json(
            websocket,
            {
                "type": "welcome",
                "id": player.id,
                "worldSize": {"w": WORLD_WIDTH, "h": WORLD_HEIGHT},
            },
        )

    def _handle_input(self, player_id: str, data: dict):
        """Merge an input message into the player's latched inputs."""
        inputs = data.get("data")
        if isinstance(inputs, dict):
            self.simulation.apply_input(player_id, inputs)

    async def _handle_disconnect(self, websocket: WebSocket):
        """Handle client disconnection."""
        self.connected_clients.discard(websocket)
        player_id = self.websocket_to_player.pop(websocket, None)
        if player_id is None:
            return

        self.player_to_websocket.pop(player_id, None)
        self.simulation.remove_player(player_id)
        logger.info("Player %s disconnected", player_id)

    @staticmethod
    def _is_open(websocket: WebSocket) -> bool:
        return (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        )

    async def _send_json(self, websocket: WebSocket, message: dict) -> bool:
        """Send a message to one client. Returns False if the send failed."""
        if not self._is_open(websocket):
            return False
        try:
            await websocket.send_json(message)
        except Exception:
            return False
        return True

    async def _broadcast_text(self, payload: str):
        """Send a serialized payload to all open connections."""
        disconnected = set()

        for client in list(self.connected_clients):
            if not self._is_open(client):
                continue
            try:
                await client.send_text(payload)
            except Exception:
                disconnected.add(client)

        for client in disconnected:
            await self._handle_disconnect(client)
