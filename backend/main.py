"""
Relay Booth — FastAPI application entry point.

Wires the device registry, transfer coordinator and directory relay behind
a single WebSocket endpoint and serves a small read-only REST API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from api.websocket import ConnectionManager
from broker.broadcast import Broadcaster
from broker.dispatcher import MessageDispatcher
from broker.registry import DeviceRegistry
from broker.relay import DirectoryRelay
from config import (
    API_HOST,
    API_PORT,
    APP_NAME,
    CORS_ORIGINS,
    LOG_LEVEL,
    STRICT_FILENAMES,
    UPLOAD_DIR,
)
from storage.blob_store import BlobStore
from transfer.coordinator import TransferCoordinator

# --- Logging ---
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    upload_dir: str = UPLOAD_DIR,
    strict_filenames: bool = STRICT_FILENAMES,
) -> FastAPI:
    """Build the broker services and the FastAPI app around them."""
    blob_store = BlobStore(upload_dir, strict_filenames=strict_filenames)
    registry = DeviceRegistry()
    broadcaster = Broadcaster(registry)
    coordinator = TransferCoordinator(registry, blob_store)
    relay = DirectoryRelay(registry)
    dispatcher = MessageDispatcher(registry, broadcaster, coordinator, relay)
    ws_manager = ConnectionManager(registry, dispatcher, coordinator)

    # Every membership change pushes the device list
    registry.on_change(broadcaster.handle_registry_event)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {APP_NAME} broker...")
        try:
            blob_store.ensure_root()
            logger.info(
                f"{APP_NAME} ready — "
                f"WebSocket: ws://{API_HOST}:{API_PORT}/ws, "
                f"uploads: {blob_store.root}"
            )
            yield
        except Exception as e:
            logger.error(f"Startup failed: {e}", exc_info=True)
            raise
        finally:
            logger.info(
                f"Shutting down {APP_NAME}, {len(registry)} connection(s) open"
            )

    app = FastAPI(
        title=APP_NAME,
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.registry = registry
    app.state.coordinator = coordinator
    app.state.blob_store = blob_store

    app.include_router(router)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await ws_manager.serve(websocket)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=API_HOST,
        port=API_PORT,
        log_level=LOG_LEVEL.lower(),
    )
