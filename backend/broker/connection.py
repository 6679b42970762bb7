"""One live WebSocket session and the broker state attached to it."""

import json
import logging
import uuid

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from broker.errors import ProtocolError
from broker.models import ConnectionState, Device
from config import DEFAULT_DEVICE_NAME
from transfer.models import FileMetadata

logger = logging.getLogger(__name__)


class Connection:
    """A client session.

    ``device`` is set once ``register_device`` completes. ``upload`` holds the
    metadata of an untargeted transfer until its binary frame arrives.
    """

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self.websocket = websocket
        self.connection_id = connection_id or str(uuid.uuid4())
        self.device: Device | None = None
        self.upload: FileMetadata | None = None

    def __repr__(self) -> str:
        return f"Connection({self.connection_id[:8]}, {self.display_name!r})"

    @property
    def display_name(self) -> str:
        return self.device.name if self.device else DEFAULT_DEVICE_NAME

    @property
    def device_id(self) -> str | None:
        return self.device.id if self.device else None

    @property
    def state(self) -> ConnectionState:
        if self.upload is not None:
            return ConnectionState.AWAITING_BINARY
        if self.device is not None:
            return ConnectionState.REGISTERED
        return ConnectionState.UNREGISTERED

    @property
    def is_registered(self) -> bool:
        return self.device is not None

    def require_device_id(self, fallback: str | None = None) -> str:
        """Id peers should reply to: the device id, else a client-supplied one."""
        if self.device is not None:
            return self.device.id
        if fallback:
            return fallback
        raise ProtocolError("Register this device before sending requests")

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_message(self, message: dict) -> None:
        """Send a structured (JSON text) frame."""
        await self.websocket.send_text(json.dumps(message))

    async def send_bytes(self, data: bytes) -> None:
        """Send an opaque binary frame."""
        await self.websocket.send_bytes(data)

    async def send_error(self, message: str) -> None:
        await self.send_message({"type": "error", "message": message})
