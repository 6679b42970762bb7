"""Pydantic models for broker-side connection state."""

from enum import Enum

from pydantic import BaseModel


class ConnectionState(str, Enum):
    """Where a connection sits in the register/upload lifecycle."""
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    AWAITING_BINARY = "awaiting_binary"


class Device(BaseModel):
    """The registered identity of a connection."""
    id: str
    name: str

    def summary(self) -> dict:
        return {"id": self.id, "name": self.name}
