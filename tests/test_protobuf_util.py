"""Tests for protobuf framing helpers."""

from __future__ import annotations

import pytest

from androidtv_remote import protobuf_util
from androidtv_remote.errors import RemoteDecodeError, RemoteSchemaError


class TestVarint:
    """Tests for varint encoding."""

    @pytest.mark.parametrize(
        ("value", "encoded"),
        [(0, b"\x00"), (1, b"\x01"), (127, b"\x7f"), (128, b"\x80\x01"), (300, b"\xac\x02")],
    )
    def test_encode(self, value, encoded):
        assert protobuf_util.encode_varint(value) == encoded

    def test_encode_negative(self):
        with pytest.raises(ValueError):
            protobuf_util.encode_varint(-1)

    def test_decode_with_offset(self):
        assert protobuf_util.decode_varint(b"\xff\xac\x02\x10", 1) == (300, 3)

    def test_decode_incomplete(self):
        """Test a varint cut mid-way is reported as incomplete."""
        assert protobuf_util.decode_varint(b"\x80\x80") is None
        assert protobuf_util.decode_varint(b"") is None

    def test_decode_too_long(self):
        with pytest.raises(RemoteDecodeError):
            protobuf_util.decode_varint(b"\xff" * 11)


class TestTakeDelimitedFrame:
    """Tests for take_delimited_frame()."""

    def test_takes_frames_in_order(self):
        buffer = bytearray(b"\x02ab\x01c\x03de")

        assert protobuf_util.take_delimited_frame(buffer) == b"\x02ab"
        assert protobuf_util.take_delimited_frame(buffer) == b"\x01c"
        assert protobuf_util.take_delimited_frame(buffer) is None
        # Partial frame stays buffered
        assert buffer == bytearray(b"\x03de")

    def test_empty_frame(self):
        buffer = bytearray(b"\x00")
        assert protobuf_util.take_delimited_frame(buffer) == b"\x00"
        assert buffer == bytearray()


class TestMessages:
    """Tests for building and decoding messages."""

    def test_build_requires_a_payload(self, remote_codec):
        with pytest.raises(RemoteSchemaError, match="exactly one payload"):
            protobuf_util.build_message(remote_codec.RemoteMessage, {})

    def test_build_rejects_unknown_field(self, remote_codec):
        with pytest.raises(RemoteSchemaError):
            protobuf_util.build_message(
                remote_codec.RemoteMessage, {"remote_bogus": {}}
            )

    def test_deserialize_truncated(self, remote_codec):
        frame = remote_codec.remote_set_active(622)
        with pytest.raises(RemoteDecodeError, match="Truncated"):
            protobuf_util.deserialize_delimited(remote_codec.RemoteMessage, frame[:-1])

    def test_deserialize_missing_prefix(self, remote_codec):
        with pytest.raises(RemoteDecodeError):
            protobuf_util.deserialize_delimited(remote_codec.RemoteMessage, b"")

    def test_get_message_type(self, remote_codec):
        message = remote_codec.parse(remote_codec.remote_ping_response(5))
        assert protobuf_util.get_message_type(message) == "remote_ping_response"
        assert protobuf_util.message_to_dict(message) == {
            "remote_ping_response": {"val1": 5}
        }
