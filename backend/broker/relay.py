"""
Directory-Listing Relay.

Listing and access requests travel to a target device, responses travel back
to the requester. The broker keeps no correlation state: every message names
the device it is for, so each step is a lookup by id and a forward.
"""

import logging

from broker.connection import Connection
from broker.errors import ProtocolError, TargetNotFoundError
from broker.messages import (
    FileAccessResponse,
    FileListResponse,
    InitialFileListResponse,
    ListFiles,
    RequestDirectoryListing,
    RequestFileAccess,
)
from broker.registry import DeviceRegistry

logger = logging.getLogger(__name__)


class DirectoryRelay:
    """Forwards listing and access messages between devices."""

    def __init__(self, registry: DeviceRegistry) -> None:
        self._registry = registry

    def _target(self, target_id: str) -> Connection:
        target = self._registry.lookup(target_id)
        if target is None or not target.is_open:
            logger.info(f"Target device {target_id} is not available")
            raise TargetNotFoundError(target_id)
        return target

    async def _to_requester(self, requester_id: str, message: dict) -> bool:
        requester = self._registry.lookup(requester_id)
        if requester is None or not requester.is_open:
            logger.warning(
                f"Requester {requester_id} is gone, dropping {message['type']}"
            )
            return False
        try:
            await requester.send_message(message)
        except Exception as e:
            logger.warning(f"Could not deliver {message['type']} to {requester_id}: {e}")
            return False
        return True

    async def list_files(self, connection: Connection, message: ListFiles) -> None:
        target = self._target(message.target_id)
        await target.send_message({
            "type": "request_file_list",
            "requesterId": connection.require_device_id(),
            "requesterName": connection.display_name,
            "path": message.path,
        })

    async def request_directory_listing(
        self, connection: Connection, message: RequestDirectoryListing
    ) -> None:
        target = self._target(message.target_id)
        await target.send_message({
            "type": "directory_listing_request",
            "requesterId": connection.require_device_id(message.requester_id),
            "requesterName": connection.display_name,
            "path": message.path,
        })

    async def file_list_response(self, connection: Connection, message: FileListResponse) -> bool:
        response = {
            "type": "file_list_response",
            "sourceId": connection.device_id,
            "sourceName": connection.display_name,
            "path": message.path,
            "files": message.files,
        }
        if message.error is not None:
            response["error"] = message.error
        return await self._to_requester(message.requester_id, response)

    async def request_file_access(self, connection: Connection, message: RequestFileAccess) -> None:
        target = self._target(message.target_id)
        await target.send_message({
            "type": "file_access_request",
            "requesterId": connection.require_device_id(),
            "requesterName": connection.display_name,
        })

    async def file_access_response(
        self, connection: Connection, message: FileAccessResponse
    ) -> bool:
        return await self._to_requester(message.requester_id, {
            "type": "file_access_response",
            "sourceId": connection.device_id,
            "sourceName": connection.display_name,
            "granted": message.granted,
        })

    async def initial_file_list(
        self, connection: Connection, message: InitialFileListResponse
    ) -> int:
        """Share a newly registered device's files with everyone else."""
        if not connection.is_registered:
            raise ProtocolError("Register this device before sharing files")

        update = {
            "type": "device_files_update",
            "deviceId": connection.device_id,
            "deviceName": connection.display_name,
            "files": message.files,
        }
        sent = 0
        for conn in self._registry.registered_connections():
            if conn is connection or not conn.is_open:
                continue
            try:
                await conn.send_message(update)
                sent += 1
            except Exception as e:
                logger.warning(f"Could not send file list update to {conn}: {e}")
        return sent
