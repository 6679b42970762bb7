"""
Durable Blob Store: one file per transfer under a root directory.

Filenames are the sender-supplied names, used verbatim unless strict mode is
enabled. All disk access runs in a worker thread so a slow write does not
stall the event loop.
"""

import asyncio
import logging
import os
from pathlib import Path

from broker.errors import StorageError
from transfer.models import StoredFile

logger = logging.getLogger(__name__)


class BlobStore:
    """Filename-keyed byte store on the local filesystem."""

    def __init__(self, root: str, strict_filenames: bool = False) -> None:
        self._root = Path(root)
        self.strict_filenames = strict_filenames

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> None:
        os.makedirs(self._root, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """Resolve ``filename`` to its storage path."""
        if not filename:
            raise StorageError("Filename is required")

        path = self._root / filename
        if self.strict_filenames:
            root = self._root.resolve()
            try:
                resolved = path.resolve()
            except (OSError, ValueError) as e:
                raise StorageError(f"Rejected filename: {filename!r}") from e
            if root not in resolved.parents:
                raise StorageError(f"Rejected filename: {filename}")
        return path

    async def write(self, filename: str, data: bytes) -> Path:
        path = self.path_for(filename)
        try:
            await asyncio.to_thread(path.write_bytes, data)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to store {filename}: {e}")
            raise StorageError(f"Failed to store file {filename}") from e
        logger.info(f"Saved file: {filename} ({len(data)} bytes)")
        return path

    async def read(self, filename: str) -> bytes:
        path = self.path_for(filename)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise StorageError("File not found") from e
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {filename}: {e}")
            raise StorageError(f"Failed to read file {filename}") from e

    def exists(self, filename: str) -> bool:
        try:
            return self.path_for(filename).is_file()
        except StorageError:
            return False

    async def list_files(self) -> list[StoredFile]:
        """Return every stored file, sorted by name."""
        return await asyncio.to_thread(self._scan)

    def _scan(self) -> list[StoredFile]:
        if not self._root.is_dir():
            return []
        return [
            StoredFile(filename=entry.name, size=entry.stat().st_size)
            for entry in sorted(self._root.iterdir())
            if entry.is_file()
        ]
