# arena_server/api/routes.py
"""API routes for the game server."""

from fastapi import APIRouter

from arena_server.config.settings import get_game_config
from arena_server.services.simulation import Simulation


class GameAPI:
    """API routes for game-related endpoints."""

    def __init__(self, simulation: Simulation):
        self.simulation = simulation
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Set up all API routes."""

        @self.router.get("/")
        async def root():
            """Root endpoint."""
            return {"message": "Arena Server Running"}

        @self.router.get("/api/game/config")
        async def get_game_config_endpoint():
            """Get game configuration including world size, rates and tiers."""
            return get_game_config()

        @self.router.get("/api/game/leaderboard")
        async def get_leaderboard():
            """Get the current top players by score."""
            return {"leaderboard": self.simulation.leaderboard()}

        @self.router.get("/api/game/stats")
        async def get_game_stats():
            """Get game statistics."""
            return self.simulation.stats()
