"""
Transfer Coordinator: store-and-relay of file bytes between devices.

Two protocols share the ``file_metadata`` + binary frame sequence:

* simple: no ``targetId``. The metadata lives on the connection, the bytes are
  stored and every other registered device is notified.
* targeted: a ``PendingTransfer`` is kept for the sender. The bytes are stored
  first and then forwarded to the target, if it is still connected.
"""

import logging

from broker.connection import Connection
from broker.errors import ProtocolError, TargetNotFoundError
from broker.messages import FileMetadataMessage, RequestFile
from broker.registry import DeviceRegistry
from storage.blob_store import BlobStore
from transfer.models import FileMetadata, PendingTransfer

logger = logging.getLogger(__name__)


class TransferCoordinator:
    """Tracks pending handoffs and drives the store-then-forward sequence."""

    def __init__(self, registry: DeviceRegistry, blob_store: BlobStore) -> None:
        self._registry = registry
        self._store = blob_store
        self._pending: dict[str, PendingTransfer] = {}  # sender connection_id -> transfer

    def pending_transfers(self) -> list[PendingTransfer]:
        return list(self._pending.values())

    def pending_for(self, connection: Connection) -> PendingTransfer | None:
        return self._pending.get(connection.connection_id)

    async def announce(self, connection: Connection, message: FileMetadataMessage) -> None:
        """Handle ``file_metadata``: remember what the next binary frame is."""
        metadata = FileMetadata(
            filename=message.filename,
            size=message.size,
            content_type=message.content_type,
        )

        if not message.target_id:
            connection.upload = metadata
            logger.info(f"Expecting file: {metadata.filename} ({metadata.size} bytes)")
            await connection.send_message(
                {"type": "ready_for_file", "filename": metadata.filename}
            )
            return

        previous = self._pending.get(connection.connection_id)
        if previous is not None:
            logger.warning(
                f"Replacing unconsumed transfer of {previous.metadata.filename} "
                f"from {connection}"
            )
        self._pending[connection.connection_id] = PendingTransfer(
            sender_connection_id=connection.connection_id,
            target_id=message.target_id,
            metadata=metadata,
        )
        logger.info(
            f"Expecting file: {metadata.filename} ({metadata.size} bytes) "
            f"for {message.target_id}"
        )
        await connection.send_message({
            "type": "ready_for_file",
            "filename": metadata.filename,
            "targetId": message.target_id,
        })

    async def receive_payload(self, connection: Connection, data: bytes) -> None:
        """Consume a binary frame for the transfer announced on ``connection``."""
        pending = self._pending.pop(connection.connection_id, None)
        if pending is not None:
            await self._relay(connection, pending, data)
            return

        if connection.upload is not None:
            metadata = connection.upload
            connection.upload = None
            await self._store_and_notify(connection, metadata, data)
            return

        logger.warning(f"Received binary data but no file metadata from {connection}")
        raise ProtocolError("Received binary data without metadata")

    async def _relay(self, sender: Connection, pending: PendingTransfer, data: bytes) -> None:
        metadata = pending.metadata
        self._check_size(metadata, data)
        await self._store.write(metadata.filename, data)

        result = {
            "type": "file_transferred",
            "filename": metadata.filename,
            "targetId": pending.target_id,
            "stored": True,
        }

        target = self._registry.lookup(pending.target_id)
        if target is None or not target.is_open:
            logger.warning(
                f"Target {pending.target_id} unavailable, kept {metadata.filename} in storage"
            )
            result["forwarded"] = False
            result["error"] = f"Target device {pending.target_id} not found"
        else:
            try:
                await target.send_message({
                    "type": "file_metadata",
                    "filename": metadata.filename,
                    "size": len(data),
                    "contentType": metadata.content_type,
                    "senderId": sender.device_id,
                    "senderName": sender.display_name,
                })
                await target.send_bytes(data)
                result["forwarded"] = True
                logger.info(f"Forwarded {metadata.filename} to {pending.target_id}")
            except Exception as e:
                logger.warning(f"Forwarding {metadata.filename} to {pending.target_id} failed: {e}")
                result["forwarded"] = False
                result["error"] = f"Failed to forward file to {pending.target_id}"

        await sender.send_message(result)

    async def _store_and_notify(
        self, sender: Connection, metadata: FileMetadata, data: bytes
    ) -> None:
        self._check_size(metadata, data)
        await self._store.write(metadata.filename, data)

        await sender.send_message(
            {"type": "file_received", "filename": metadata.filename, "size": len(data)}
        )

        notification = {
            "type": "file_notification",
            "filename": metadata.filename,
            "from": sender.display_name,
            "fromId": sender.device_id,
        }
        for conn in self._registry.registered_connections():
            if conn is sender or not conn.is_open:
                continue
            try:
                await conn.send_message(notification)
            except Exception as e:
                logger.warning(f"Could not notify {conn} about {metadata.filename}: {e}")

    @staticmethod
    def _check_size(metadata: FileMetadata, data: bytes) -> None:
        if metadata.size != len(data):
            logger.warning(
                f"Size mismatch for {metadata.filename}: "
                f"announced {metadata.size}, received {len(data)} bytes"
            )

    async def request_file(self, connection: Connection, message: RequestFile) -> None:
        """Ask a device to push a file, or serve one from storage when untargeted."""
        if message.target_id:
            target = self._registry.lookup(message.target_id)
            if target is None or not target.is_open:
                raise TargetNotFoundError(message.target_id)
            await target.send_message({
                "type": "request_file",
                "filename": message.filename,
                "requesterId": connection.require_device_id(),
                "requesterName": connection.display_name,
            })
            return

        data = await self._store.read(message.filename)
        await connection.send_message(
            {"type": "file_metadata", "filename": message.filename, "size": len(data)}
        )
        await connection.send_bytes(data)
        logger.info(f"Sent file: {message.filename}")

    def discard(self, connection: Connection) -> None:
        """Drop state left behind by a closing connection."""
        pending = self._pending.pop(connection.connection_id, None)
        if pending is not None:
            logger.info(
                f"Dropped pending transfer of {pending.metadata.filename} from {connection}"
            )
        connection.upload = None
