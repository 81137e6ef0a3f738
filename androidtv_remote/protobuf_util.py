"""Protocol Buffer serialization helpers shared by both codecs.

Handles conversion between Python dictionaries and protobuf messages, and the
varint length-delimited framing used on the wire.
"""

from __future__ import annotations

from typing import Any

from google.protobuf import json_format
from google.protobuf.message import DecodeError, Message

from .errors import RemoteDecodeError, RemoteSchemaError

PAYLOAD_ONEOF = "payload"


def encode_varint(value: int) -> bytes:
    """Encode an unsigned integer as a protobuf base-128 varint."""
    if value < 0:
        raise ValueError("Varint length must not be negative")
    out = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            return bytes(out)


def decode_varint(data: bytes | bytearray, pos: int = 0) -> tuple[int, int] | None:
    """Decode a varint starting at pos.

    Returns:
        (value, position after the varint), or None if data ends mid-varint

    Raises:
        RemoteDecodeError: If the varint is longer than 64 bits
    """
    result = 0
    shift = 0
    while pos < len(data):
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
        if shift >= 64:
            raise RemoteDecodeError("Varint too long")
    return None


def take_delimited_frame(buffer: bytearray) -> bytes | None:
    """Remove and return the first complete length-delimited frame.

    The returned bytes include the length prefix. The buffer is left untouched
    when it does not yet hold a complete frame.
    """
    header = decode_varint(buffer)
    if header is None:
        return None
    length, offset = header
    end = offset + length
    if len(buffer) < end:
        return None
    frame = bytes(buffer[:end])
    del buffer[:end]
    return frame


def build_message(message_cls: type[Message], payload: dict[str, Any]) -> Message:
    """Validate a dict payload against the schema and build the message.

    Args:
        message_cls: Envelope message class
        payload: Field values keyed by proto field name

    Returns:
        Populated protobuf message

    Raises:
        RemoteSchemaError: Unknown field, wrong value type, unknown enum name
            or more than one payload variant
    """
    message = message_cls()
    try:
        json_format.ParseDict(payload, message)
    except json_format.ParseError as err:
        raise RemoteSchemaError(str(err)) from err
    if message.DESCRIPTOR.oneofs_by_name.get(PAYLOAD_ONEOF) is not None:
        if message.WhichOneof(PAYLOAD_ONEOF) is None:
            raise RemoteSchemaError(
                f"{message.DESCRIPTOR.full_name} requires exactly one payload variant"
            )
    return message


def serialize_delimited(message: Message) -> bytes:
    """Serialize a message prefixed with its varint length."""
    data = message.SerializeToString()
    return encode_varint(len(data)) + data


def deserialize_delimited(message_cls: type[Message], data: bytes) -> Message:
    """Decode exactly one length-delimited message.

    Raises:
        RemoteDecodeError: If the frame is truncated or the payload is invalid
    """
    header = decode_varint(data)
    if header is None:
        raise RemoteDecodeError("Missing length prefix")
    length, offset = header
    body = data[offset : offset + length]
    if len(body) != length:
        raise RemoteDecodeError(
            f"Truncated frame: expected {length} bytes, got {len(body)}"
        )
    message = message_cls()
    try:
        message.ParseFromString(body)
    except DecodeError as err:
        raise RemoteDecodeError(str(err)) from err
    return message


def get_message_type(message: Message) -> str | None:
    """Get the name of the populated payload variant."""
    return message.WhichOneof(PAYLOAD_ONEOF)


def message_to_dict(message: Message) -> dict[str, Any]:
    """Convert a message to a dict keyed by proto field names."""
    return json_format.MessageToDict(message, preserving_proto_field_name=True)
