"""Broadcast Fan-out: pushes the device list to every open connection."""

import logging

from broker.connection import Connection
from broker.registry import DeviceRegistry

logger = logging.getLogger(__name__)


class Broadcaster:
    """Sends ``connected_devices`` snapshots of the registry."""

    def __init__(self, registry: DeviceRegistry) -> None:
        self._registry = registry

    def devices_payload(self) -> dict:
        return {
            "type": "connected_devices",
            "devices": [d.summary() for d in self._registry.list_devices()],
        }

    async def send_devices(self, connection: Connection) -> None:
        """Reply to ``get_connected_devices`` on a single connection."""
        if connection.is_open:
            await connection.send_message(self.devices_payload())

    async def broadcast_devices(self) -> int:
        """Send the current list to all open connections. Returns the send count."""
        message = self.devices_payload()
        sent = 0
        for conn in self._registry.connections():
            if not conn.is_open:
                continue
            try:
                await conn.send_message(message)
                sent += 1
            except Exception as e:
                logger.warning(f"Skipping device list for {conn}: {e}")
        return sent

    async def handle_registry_event(self, event: str, connection: Connection) -> None:
        """Callback compatible with DeviceRegistry.on_change()."""
        await self.broadcast_devices()
