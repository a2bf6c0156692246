# arena_server/main.py
"""FastAPI application wiring the simulation to HTTP and WebSocket clients."""

import logging
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from arena_server.api.routes import GameAPI
from arena_server.config.settings import LOG_LEVEL, SERVER_HOST, SERVER_PORT
from arena_server.services.simulation import Simulation
from arena_server.services.websocket_service import WebSocketService

logger = logging.getLogger(__name__)


def create_app(simulation: Optional[Simulation] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    simulation = simulation or Simulation()
    websocket_service = WebSocketService(simulation)

    app = FastAPI(title="Arena Server")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.simulation = simulation
    app.state.websocket_service = websocket_service
    app.include_router(GameAPI(simulation).router)

    @app.on_event("startup")
    async def startup_event():
        """Start the simulation and broadcast loops."""
        websocket_service.start_background_tasks()

    @app.on_event("shutdown")
    async def shutdown_event():
        await websocket_service.stop_background_tasks()

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await websocket_service.handle_connection(websocket)

    return app


app = create_app()


def run():
    """Serve the app with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=LOG_LEVEL, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    )
    logger.info("Starting arena server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)


if __name__ == "__main__":
    run()
