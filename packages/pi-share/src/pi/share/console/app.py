"""FastAPI application factory for the control console."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, WebSocket
from fastapi.staticfiles import StaticFiles

from pi.share.config import Config
from pi.share.console.api import create_console_router
from pi.share.console.ws import websocket_handler
from pi.share.controller import ShareController
from pi.share.storage.database import Database
from pi.share.storage.preferences import PreferenceStore

logger = logging.getLogger(__name__)


def create_app(config: Config | None = None) -> FastAPI:
    """Create and configure the console application."""
    config = config or Config()
    db = Database(config.db_path)
    controller = ShareController(PreferenceStore(db), log_capacity=config.log_capacity)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        await db.connect()
        logger.info("Database connected at %s", config.db_path)
        await controller.load_preferences()
        yield
        await controller.stop()
        await db.close()
        logger.info("Database closed")

    app = FastAPI(title="pi-share console", lifespan=lifespan)
    app.state.controller = controller

    @app.websocket("/ws")
    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_handler(websocket, controller)

    app.include_router(create_console_router(controller))

    # --- Static files (must be last) ---

    static_dir = Path(config.static_dir)
    if static_dir.exists():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")

    return app
