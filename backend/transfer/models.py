"""Pydantic models for relayed file transfers."""

import time

from pydantic import BaseModel, ConfigDict, Field


class FileMetadata(BaseModel):
    """Announced file, sent before its binary frame."""
    model_config = ConfigDict(populate_by_name=True)

    filename: str
    size: int = 0
    content_type: str | None = Field(default=None, alias="contentType")


class PendingTransfer(BaseModel):
    """A targeted transfer waiting for the sender's next binary frame."""
    sender_connection_id: str
    target_id: str
    metadata: FileMetadata
    created_at: float = Field(default_factory=time.time)


class StoredFile(BaseModel):
    """A file held by the blob store."""
    filename: str
    size: int
