"""
Inbound message catalog.

Every structured frame is a JSON object with a string ``type``. Known types
decode into one of the models below; anything else (unknown tag, missing
required field) becomes an ``UnrecognizedMessage`` carrying the raw object,
which the dispatcher routes to the echo handler.
"""

import logging
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class _Inbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RegisterDevice(_Inbound):
    type: Literal["register_device"] = "register_device"
    device_name: str | None = Field(default=None, alias="deviceName")


class GetConnectedDevices(_Inbound):
    type: Literal["get_connected_devices"] = "get_connected_devices"


class Ping(_Inbound):
    type: Literal["ping"] = "ping"


class FileMetadataMessage(_Inbound):
    """Announces the next binary frame; ``target_id`` makes it a relayed transfer."""
    type: Literal["file_metadata"] = "file_metadata"
    filename: str
    size: int = Field(ge=0)
    content_type: str | None = Field(default=None, alias="contentType")
    target_id: str | None = Field(default=None, alias="targetId")


class RequestFile(_Inbound):
    type: Literal["request_file"] = "request_file"
    filename: str
    target_id: str | None = Field(default=None, alias="targetId")


class ListFiles(_Inbound):
    type: Literal["list_files"] = "list_files"
    target_id: str = Field(alias="targetId")
    path: str = "/"


class RequestDirectoryListing(_Inbound):
    type: Literal["request_directory_listing"] = "request_directory_listing"
    target_id: str = Field(alias="targetId")
    path: str = "/"
    requester_id: str | None = Field(default=None, alias="requesterId")


class FileListResponse(_Inbound):
    type: Literal["file_list_response"] = "file_list_response"
    requester_id: str = Field(alias="requesterId")
    path: str = ""
    files: list[Any] = Field(default_factory=list)
    error: str | None = None


class RequestFileAccess(_Inbound):
    type: Literal["request_file_access"] = "request_file_access"
    target_id: str = Field(alias="targetId")


class FileAccessResponse(_Inbound):
    type: Literal["file_access_response"] = "file_access_response"
    requester_id: str = Field(alias="requesterId")
    granted: bool


class InitialFileListResponse(_Inbound):
    type: Literal["initial_file_list_response"] = "initial_file_list_response"
    files: list[Any]


class UnrecognizedMessage(_Inbound):
    """Fallback for unknown or incomplete messages."""
    type: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


InboundMessage = Union[
    RegisterDevice,
    GetConnectedDevices,
    Ping,
    FileMetadataMessage,
    RequestFile,
    ListFiles,
    RequestDirectoryListing,
    FileListResponse,
    RequestFileAccess,
    FileAccessResponse,
    InitialFileListResponse,
    UnrecognizedMessage,
]

MESSAGE_TYPES: dict[str, type[_Inbound]] = {
    model.model_fields["type"].default: model
    for model in (
        RegisterDevice,
        GetConnectedDevices,
        Ping,
        FileMetadataMessage,
        RequestFile,
        ListFiles,
        RequestDirectoryListing,
        FileListResponse,
        RequestFileAccess,
        FileAccessResponse,
        InitialFileListResponse,
    )
}


def parse_message(obj: dict[str, Any]) -> InboundMessage:
    """Decode a JSON object into its catalog model."""
    tag = obj.get("type")
    model = MESSAGE_TYPES.get(tag) if isinstance(tag, str) else None
    if model is None:
        return UnrecognizedMessage(type=tag if isinstance(tag, str) else None, raw=obj)

    try:
        return model.model_validate(obj)
    except ValidationError as e:
        logger.debug(f"Incomplete {tag} message treated as unrecognized: {e}")
        return UnrecognizedMessage(type=tag, raw=obj)
