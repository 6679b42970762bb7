"""Tests for the inbound message catalog and text-frame classification."""

from __future__ import annotations

import pytest

from broker.dispatcher import GENERIC_ERROR, decode_text_frame
from broker.errors import ProtocolError
from broker.messages import (
    FileAccessResponse,
    FileListResponse,
    FileMetadataMessage,
    ListFiles,
    Ping,
    RegisterDevice,
    RequestDirectoryListing,
    UnrecognizedMessage,
    parse_message,
)


class TestParseMessage:

    def test_camel_case_fields(self):
        msg = parse_message({
            "type": "file_metadata",
            "filename": "a.txt",
            "size": 3,
            "contentType": "text/plain",
            "targetId": "client_2",
        })
        assert isinstance(msg, FileMetadataMessage)
        assert msg.content_type == "text/plain"
        assert msg.target_id == "client_2"

    def test_optional_fields_default(self):
        msg = parse_message({"type": "file_metadata", "filename": "a.txt", "size": 3})
        assert isinstance(msg, FileMetadataMessage)
        assert msg.target_id is None
        assert msg.content_type is None

        assert parse_message({"type": "register_device"}) == RegisterDevice()
        assert isinstance(parse_message({"type": "ping", "extra": 1}), Ping)

    def test_listing_messages(self):
        msg = parse_message({"type": "list_files", "targetId": "client_1"})
        assert isinstance(msg, ListFiles)
        assert msg.path == "/"

        msg = parse_message({
            "type": "request_directory_listing",
            "targetId": "client_1",
            "path": "/x",
            "requesterId": "client_7",
        })
        assert isinstance(msg, RequestDirectoryListing)
        assert msg.requester_id == "client_7"

        msg = parse_message({
            "type": "file_list_response",
            "requesterId": "client_1",
            "files": [{"name": "a"}],
            "error": "denied",
        })
        assert isinstance(msg, FileListResponse)
        assert msg.files == [{"name": "a"}]
        assert msg.error == "denied"

        msg = parse_message({"type": "file_access_response", "requesterId": "client_1", "granted": True})
        assert isinstance(msg, FileAccessResponse)
        assert msg.granted is True

    def test_unknown_type_is_unrecognized(self):
        raw = {"type": "chat", "text": "hi"}
        msg = parse_message(raw)
        assert isinstance(msg, UnrecognizedMessage)
        assert msg.type == "chat"
        assert msg.raw == raw

    @pytest.mark.parametrize("raw", [
        {"type": "list_files", "path": "/x"},
        {"type": "request_file_access"},
        {"type": "file_metadata", "size": 3},
        {"type": "file_metadata", "filename": "a", "size": -1},
    ])
    def test_missing_required_field_is_unrecognized(self, raw):
        msg = parse_message(raw)
        assert isinstance(msg, UnrecognizedMessage)
        assert msg.type == raw["type"]

    @pytest.mark.parametrize("raw", [{}, {"type": 5}, {"type": ["ping"]}])
    def test_missing_or_non_string_type(self, raw):
        msg = parse_message(raw)
        assert isinstance(msg, UnrecognizedMessage)
        assert msg.type is None


class TestDecodeTextFrame:

    def test_object_decodes_to_message(self):
        assert isinstance(decode_text_frame('{"type": "ping"}'), Ping)

    @pytest.mark.parametrize("text", ["hello", "[1, 2]", "42", ""])
    def test_non_object_is_payload(self, text):
        assert decode_text_frame(text) == text.encode("utf-8")

    def test_malformed_object_raises(self):
        with pytest.raises(ProtocolError, match=GENERIC_ERROR):
            decode_text_frame('{"type": "ping"')
