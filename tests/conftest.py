"""Shared fixtures: an in-memory broker driven through fake WebSockets."""

from __future__ import annotations

import json
from dataclasses import dataclass

import pytest
from starlette.websockets import WebSocketState

from broker.broadcast import Broadcaster
from broker.connection import Connection
from broker.dispatcher import MessageDispatcher
from broker.registry import DeviceRegistry
from broker.relay import DirectoryRelay
from storage.blob_store import BlobStore
from transfer.coordinator import TransferCoordinator


class FakeWebSocket:
    """Records frames the broker sends; text frames are stored decoded."""

    def __init__(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list = []
        self.fail_sends = False

    async def send_text(self, text: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is closing")
        self.sent.append(json.loads(text))

    async def send_bytes(self, data: bytes) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is closing")
        self.sent.append(data)

    def close(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    def messages(self, msg_type: str | None = None) -> list[dict]:
        return [
            m for m in self.sent
            if isinstance(m, dict) and (msg_type is None or m.get("type") == msg_type)
        ]

    def binary(self) -> list[bytes]:
        return [m for m in self.sent if isinstance(m, bytes)]

    def clear(self) -> None:
        self.sent.clear()


@dataclass
class Broker:
    registry: DeviceRegistry
    broadcaster: Broadcaster
    coordinator: TransferCoordinator
    relay: DirectoryRelay
    dispatcher: MessageDispatcher
    store: BlobStore

    async def connect(self, name: str | None = None, register: bool = True) -> Connection:
        conn = Connection(FakeWebSocket())
        await self.registry.add(conn)
        if register:
            await self.send(conn, {"type": "register_device", "deviceName": name})
        return conn

    async def send(self, conn: Connection, message: dict) -> None:
        await self.dispatcher.dispatch(conn, text=json.dumps(message))

    async def send_bytes(self, conn: Connection, data: bytes) -> None:
        await self.dispatcher.dispatch(conn, data=data)

    async def disconnect(self, conn: Connection) -> None:
        conn.websocket.close()
        self.coordinator.discard(conn)
        await self.registry.remove(conn)

    @staticmethod
    def clear(*conns: Connection) -> None:
        for conn in conns:
            conn.websocket.clear()


@pytest.fixture
def blob_store(tmp_path):
    store = BlobStore(str(tmp_path / "uploads"))
    store.ensure_root()
    return store


@pytest.fixture
def broker(blob_store):
    registry = DeviceRegistry()
    broadcaster = Broadcaster(registry)
    registry.on_change(broadcaster.handle_registry_event)
    coordinator = TransferCoordinator(registry, blob_store)
    relay = DirectoryRelay(registry)
    dispatcher = MessageDispatcher(registry, broadcaster, coordinator, relay)
    return Broker(registry, broadcaster, coordinator, relay, dispatcher, blob_store)
