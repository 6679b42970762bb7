"""Tests for the filesystem blob store."""

from __future__ import annotations

import pytest

from broker.errors import StorageError
from storage.blob_store import BlobStore


class TestBlobStore:

    @pytest.mark.asyncio
    async def test_write_then_read(self, blob_store):
        path = await blob_store.write("a.txt", b"abc")

        assert path == blob_store.root / "a.txt"
        assert await blob_store.read("a.txt") == b"abc"
        assert blob_store.exists("a.txt")

    @pytest.mark.asyncio
    async def test_overwrite(self, blob_store):
        await blob_store.write("a.txt", b"old")
        await blob_store.write("a.txt", b"new")
        assert await blob_store.read("a.txt") == b"new"

    @pytest.mark.asyncio
    async def test_list_files_sorted(self, blob_store):
        await blob_store.write("b.bin", b"12345")
        await blob_store.write("a.txt", b"abc")
        (blob_store.root / "subdir").mkdir()

        files = await blob_store.list_files()

        assert [(f.filename, f.size) for f in files] == [("a.txt", 3), ("b.bin", 5)]

    @pytest.mark.asyncio
    async def test_list_files_missing_root(self, tmp_path):
        store = BlobStore(str(tmp_path / "never-created"))
        assert await store.list_files() == []

    @pytest.mark.asyncio
    async def test_read_missing(self, blob_store):
        with pytest.raises(StorageError, match="File not found"):
            await blob_store.read("missing.txt")
        assert not blob_store.exists("missing.txt")

    @pytest.mark.asyncio
    async def test_empty_filename(self, blob_store):
        with pytest.raises(StorageError, match="Filename is required"):
            await blob_store.write("", b"abc")

    @pytest.mark.asyncio
    async def test_nul_in_filename(self, blob_store):
        with pytest.raises(StorageError, match="Failed to store file"):
            await blob_store.write("bad\x00name", b"abc")
        with pytest.raises(StorageError, match="Failed to read file"):
            await blob_store.read("bad\x00name")

    @pytest.mark.asyncio
    async def test_nul_in_filename_strict(self, tmp_path):
        store = BlobStore(str(tmp_path / "uploads"), strict_filenames=True)
        store.ensure_root()

        with pytest.raises(StorageError, match="Rejected filename|Failed to store file"):
            await store.write("bad\x00name", b"abc")

    @pytest.mark.asyncio
    async def test_nul_filename_reported_to_sender(self, broker):
        a = await broker.connect("A")
        broker.clear(a)

        await broker.send(a, {"type": "file_metadata", "filename": "bad\x00name", "size": 3})
        await broker.send_bytes(a, b"abc")

        assert a.websocket.sent[-1] == {
            "type": "error",
            "message": "Failed to store file bad\x00name",
        }

    @pytest.mark.asyncio
    async def test_verbatim_names_by_default(self, tmp_path):
        store = BlobStore(str(tmp_path / "uploads"))
        store.ensure_root()

        await store.write("../outside.txt", b"abc")

        assert (tmp_path / "outside.txt").read_bytes() == b"abc"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["../outside.txt", "/etc/passwd", "a/../../x"])
    async def test_strict_mode_rejects_escaping_names(self, tmp_path, name):
        store = BlobStore(str(tmp_path / "uploads"), strict_filenames=True)
        store.ensure_root()

        with pytest.raises(StorageError, match="Rejected filename"):
            await store.write(name, b"abc")
        assert not store.exists(name)

    @pytest.mark.asyncio
    async def test_strict_mode_accepts_plain_names(self, tmp_path):
        store = BlobStore(str(tmp_path / "uploads"), strict_filenames=True)
        store.ensure_root()

        await store.write("report.pdf", b"%PDF")

        assert await store.read("report.pdf") == b"%PDF"
