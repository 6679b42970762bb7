"""
Connection Registry: tracks live connections and the devices registered on them.

Device ids are allocated from a process-wide counter and never reused.
Every mutation runs without an ``await`` in between, so it is atomic on the
event loop; change callbacks (the device-list broadcast) run afterwards.
"""

import itertools
import logging

from broker.connection import Connection
from broker.models import Device
from config import CLIENT_ID_PREFIX

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Maps live connections to their registered Device identities."""

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}  # connection_id -> Connection
        self._devices: dict[str, Connection] = {}  # device_id -> Connection
        self._counter = itertools.count(1)
        self._change_callbacks: list = []  # async fn(event, connection)

    def on_change(self, callback) -> None:
        """Register callback: async fn(event: str, connection: Connection)."""
        self._change_callbacks.append(callback)

    async def _emit(self, event: str, connection: Connection) -> None:
        for cb in self._change_callbacks:
            try:
                await cb(event, connection)
            except Exception as e:
                logger.error(f"Registry callback error on {event}: {e}", exc_info=True)

    async def add(self, connection: Connection) -> None:
        """Track a freshly accepted, not yet registered, connection."""
        self._connections[connection.connection_id] = connection
        logger.info(f"Client connected: {connection}. Total: {len(self._connections)}")
        await self._emit("connected", connection)

    async def register(self, connection: Connection, proposed_name: str | None) -> Device:
        """Assign a fresh device id to ``connection``.

        Registering an already registered connection replaces its id.
        """
        if connection.device is not None:
            self._devices.pop(connection.device.id, None)

        name = (proposed_name or "").strip() or f"Device-{connection.connection_id[:6]}"
        device = Device(id=f"{CLIENT_ID_PREFIX}{next(self._counter)}", name=name)

        connection.device = device
        self._connections[connection.connection_id] = connection
        self._devices[device.id] = connection
        logger.info(f"Device registered: {device.name} ({device.id})")

        await self._emit("registered", connection)
        return device

    def lookup(self, device_id: str | None) -> Connection | None:
        if not device_id:
            return None
        return self._devices.get(device_id)

    def list_devices(self) -> list[Device]:
        """Registered devices in registration order."""
        return [conn.device for conn in self._devices.values() if conn.device is not None]

    def connections(self) -> list[Connection]:
        """Every live connection, registered or not."""
        return list(self._connections.values())

    def registered_connections(self) -> list[Connection]:
        return list(self._devices.values())

    async def remove(self, connection: Connection) -> bool:
        """Forget ``connection``. Returns False if it was already gone."""
        removed = self._connections.pop(connection.connection_id, None) is not None
        if connection.device is not None:
            if self._devices.get(connection.device.id) is connection:
                del self._devices[connection.device.id]
                removed = True

        if not removed:
            return False

        logger.info(
            f"Client disconnected: {connection.display_name}. "
            f"Total: {len(self._connections)}"
        )
        await self._emit("disconnected", connection)
        return True

    def __len__(self) -> int:
        return len(self._connections)
