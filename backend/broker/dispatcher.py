"""
Message Dispatcher: classifies every inbound frame and routes it to a handler.

Text frames holding a JSON object are decoded through the message catalog.
Binary frames, and text frames that are not JSON objects, are file payload
for the Transfer Coordinator. Handler errors are answered with an ``error``
message to the sender and never leave the dispatcher.
"""

import json
import logging

from broker.broadcast import Broadcaster
from broker.connection import Connection
from broker.errors import BrokerError, ProtocolError
from broker.messages import (
    FileAccessResponse,
    FileListResponse,
    FileMetadataMessage,
    GetConnectedDevices,
    InboundMessage,
    InitialFileListResponse,
    ListFiles,
    Ping,
    RegisterDevice,
    RequestDirectoryListing,
    RequestFile,
    RequestFileAccess,
    UnrecognizedMessage,
    parse_message,
)
from broker.registry import DeviceRegistry
from broker.relay import DirectoryRelay
from transfer.coordinator import TransferCoordinator

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Failed to process message"


def decode_text_frame(text: str) -> InboundMessage | bytes:
    """Classify a text frame as a catalog message or as raw file payload."""
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        if text.lstrip().startswith("{"):
            raise ProtocolError(GENERIC_ERROR) from e
        return text.encode("utf-8")

    if not isinstance(obj, dict):
        return text.encode("utf-8")
    return parse_message(obj)


class MessageDispatcher:
    """Routes frames from one connection to the broker's handlers."""

    def __init__(
        self,
        registry: DeviceRegistry,
        broadcaster: Broadcaster,
        coordinator: TransferCoordinator,
        relay: DirectoryRelay,
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._coordinator = coordinator
        self._relay = relay
        self._handlers = {
            RegisterDevice: self._register_device,
            GetConnectedDevices: self._get_connected_devices,
            Ping: self._ping,
            FileMetadataMessage: coordinator.announce,
            RequestFile: coordinator.request_file,
            ListFiles: relay.list_files,
            RequestDirectoryListing: relay.request_directory_listing,
            FileListResponse: relay.file_list_response,
            RequestFileAccess: relay.request_file_access,
            FileAccessResponse: relay.file_access_response,
            InitialFileListResponse: relay.initial_file_list,
            UnrecognizedMessage: self._echo,
        }

    async def dispatch(
        self, connection: Connection, text: str | None = None, data: bytes | None = None
    ) -> None:
        """Handle one frame. Exactly one of ``text`` / ``data`` is expected."""
        try:
            if data is not None:
                await self._coordinator.receive_payload(connection, data)
                return

            decoded = decode_text_frame(text or "")
            if isinstance(decoded, bytes):
                await self._coordinator.receive_payload(connection, decoded)
                return

            handler = self._handlers[type(decoded)]
            await handler(connection, decoded)

        except BrokerError as e:
            logger.info(f"Rejected frame from {connection}: {e}")
            await self._reply_error(connection, str(e))
        except Exception as e:
            logger.error(f"Error processing message from {connection}: {e}", exc_info=True)
            await self._reply_error(connection, GENERIC_ERROR)

    async def _reply_error(self, connection: Connection, message: str) -> None:
        if not connection.is_open:
            return
        try:
            await connection.send_error(message)
        except Exception as e:
            logger.warning(f"Could not deliver error to {connection}: {e}")

    # --- Handlers ---

    async def _register_device(self, connection: Connection, message: RegisterDevice) -> None:
        device = await self._registry.register(connection, message.device_name)
        await connection.send_message(
            {"type": "device_registered", "deviceId": device.id, "deviceName": device.name}
        )
        await connection.send_message({"type": "request_initial_file_list"})

    async def _get_connected_devices(self, connection: Connection, message: GetConnectedDevices) -> None:
        await self._broadcaster.send_devices(connection)

    async def _ping(self, connection: Connection, message: Ping) -> None:
        await connection.send_message({"type": "pong"})

    async def _echo(self, connection: Connection, message: UnrecognizedMessage) -> None:
        """Acknowledge to the sender and pass the payload on to everyone else."""
        logger.info(f"Received {message.type or 'untyped'} message from {connection}")
        payload = json.dumps(message.raw)

        await connection.send_message({"type": "message", "text": f"You said: {payload}"})

        echoed = {
            "type": "message",
            "text": f"Someone said: {payload}",
            "from": connection.device_id,
        }
        for conn in self._registry.registered_connections():
            if conn is connection or not conn.is_open:
                continue
            try:
                await conn.send_message(echoed)
            except Exception as e:
                logger.warning(f"Could not relay message to {conn}: {e}")
