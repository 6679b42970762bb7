"""Errors raised by message handlers and reported back to the sender."""


class BrokerError(Exception):
    """Base class; ``str(exc)`` is the message sent to the client."""


class TargetNotFoundError(BrokerError):
    """Raised when a ``targetId`` does not resolve to a registered device."""

    def __init__(self, target_id: str | None):
        super().__init__(f"Target device {target_id} not found")


class ProtocolError(BrokerError):
    """Raised when a client sends a frame that is out of sequence."""


class StorageError(BrokerError):
    """Raised when the blob store cannot write or read a file."""
