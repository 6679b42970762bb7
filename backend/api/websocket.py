"""WebSocket handler: one receive loop per client connection."""

import logging

from fastapi import WebSocket, WebSocketDisconnect

from broker.connection import Connection
from broker.dispatcher import MessageDispatcher
from broker.registry import DeviceRegistry
from transfer.coordinator import TransferCoordinator

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Accepts WebSocket clients and feeds their frames to the dispatcher."""

    def __init__(
        self,
        registry: DeviceRegistry,
        dispatcher: MessageDispatcher,
        coordinator: TransferCoordinator,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher
        self._coordinator = coordinator

    async def connect(self, websocket: WebSocket) -> Connection:
        await websocket.accept()
        connection = Connection(websocket)
        await self._registry.add(connection)
        return connection

    async def disconnect(self, connection: Connection) -> None:
        self._coordinator.discard(connection)
        await self._registry.remove(connection)

    async def serve(self, websocket: WebSocket) -> None:
        """Run the receive loop until the client goes away."""
        connection = await self.connect(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break

                if message.get("bytes") is not None:
                    await self._dispatcher.dispatch(connection, data=message["bytes"])
                elif message.get("text") is not None:
                    await self._dispatcher.dispatch(connection, text=message["text"])
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"Connection error for {connection}: {e}", exc_info=True)
        finally:
            await self.disconnect(connection)
