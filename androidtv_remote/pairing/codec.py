"""Pairing protocol schema and message builders."""

from __future__ import annotations

import base64
import logging
from enum import IntEnum
from typing import Any

from google.protobuf import descriptor_pb2
from google.protobuf.message import Message

from .. import protobuf_util, schema
from ..device_info import DeviceInfo
from ..errors import RemoteSchemaError

_LOGGER = logging.getLogger(__name__)

PROTOCOL_VERSION = 2
SYMBOL_LENGTH = 6

_PACKAGE = "pairing"


class PairingStatus(IntEnum):
    """PairingMessage.Status values."""

    STATUS_UNKNOWN = 0
    STATUS_OK = 200
    STATUS_ERROR = 400
    STATUS_BAD_CONFIGURATION = 401
    STATUS_BAD_SECRET = 402


class RoleType(IntEnum):
    """Which side of the pairing enters the secret."""

    ROLE_TYPE_UNKNOWN = 0
    ROLE_TYPE_INPUT = 1
    ROLE_TYPE_OUTPUT = 2


class EncodingType(IntEnum):
    """How the shared secret is displayed and typed."""

    ENCODING_TYPE_UNKNOWN = 0
    ENCODING_TYPE_ALPHANUMERIC = 1
    ENCODING_TYPE_NUMERIC = 2
    ENCODING_TYPE_HEXADECIMAL = 3
    ENCODING_TYPE_QRCODE = 4


def build_pairing_file() -> descriptor_pb2.FileDescriptorProto:
    """Declare pairingmessage.proto."""
    file_proto = schema.new_file("pairingmessage.proto", _PACKAGE)
    messages = file_proto.message_type

    schema.add_enum(file_proto.enum_type, RoleType)

    schema.add_message(
        messages,
        "PairingRequest",
        [
            schema.scalar("service_name", 1, "string"),
            schema.scalar("client_name", 2, "string"),
        ],
    )
    schema.add_message(
        messages, "PairingRequestAck", [schema.scalar("server_name", 1, "string")]
    )

    encoding = schema.add_message(
        messages,
        "PairingEncoding",
        [
            schema.enum("type", 1, ".pairing.PairingEncoding.EncodingType"),
            schema.scalar("symbol_length", 2, "uint32"),
        ],
    )
    schema.add_enum(encoding.enum_type, EncodingType)

    schema.add_message(
        messages,
        "PairingOption",
        [
            schema.message(
                "input_encodings", 1, ".pairing.PairingEncoding", repeated=True
            ),
            schema.message(
                "output_encodings", 2, ".pairing.PairingEncoding", repeated=True
            ),
            schema.enum("preferred_role", 3, ".pairing.RoleType"),
        ],
    )
    schema.add_message(
        messages,
        "PairingConfiguration",
        [
            schema.message("encoding", 1, ".pairing.PairingEncoding"),
            schema.enum("client_role", 2, ".pairing.RoleType"),
        ],
    )
    schema.add_message(messages, "PairingConfigurationAck")
    schema.add_message(messages, "PairingSecret", [schema.scalar("secret", 1, "bytes")])
    schema.add_message(
        messages, "PairingSecretAck", [schema.scalar("secret", 1, "bytes")]
    )

    envelope = schema.add_message(
        messages,
        "PairingMessage",
        [
            schema.scalar("protocol_version", 1, "int32"),
            schema.enum("status", 2, ".pairing.PairingMessage.Status"),
            schema.scalar("request_case", 3, "int32"),
        ],
        oneof=protobuf_util.PAYLOAD_ONEOF,
        oneof_fields=[
            schema.message("pairing_request", 10, ".pairing.PairingRequest"),
            schema.message("pairing_request_ack", 11, ".pairing.PairingRequestAck"),
            schema.message("pairing_option", 20, ".pairing.PairingOption"),
            schema.message(
                "pairing_configuration", 30, ".pairing.PairingConfiguration"
            ),
            schema.message(
                "pairing_configuration_ack", 31, ".pairing.PairingConfigurationAck"
            ),
            schema.message("pairing_secret", 40, ".pairing.PairingSecret"),
            schema.message("pairing_secret_ack", 41, ".pairing.PairingSecretAck"),
        ],
    )
    schema.add_enum(envelope.enum_type, PairingStatus, "Status")
    return file_proto


class PairingCodec:
    """Builds and parses PairingMessage frames.

    The schema is compiled once per codec instance; construct one codec at
    startup and hand it to every PairingSession.
    """

    Status = PairingStatus
    RoleType = RoleType
    EncodingType = EncodingType

    def __init__(self, device_info: DeviceInfo | None = None) -> None:
        self._pool = schema.compile_schema(build_pairing_file())
        self.PairingMessage = schema.message_class(
            self._pool, f"{_PACKAGE}.PairingMessage"
        )
        self.device_info = device_info or DeviceInfo()

    def create(self, payload: dict[str, Any]) -> bytes:
        """Validate payload and return the length-delimited frame.

        Raises:
            RemoteSchemaError: If payload does not match the schema
        """
        message = protobuf_util.build_message(self.PairingMessage, payload)
        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug("Sending %s", protobuf_util.message_to_dict(message))
        return protobuf_util.serialize_delimited(message)

    def _envelope(self, variant: str, body: dict[str, Any]) -> dict[str, Any]:
        return {
            variant: body,
            "status": PairingStatus.STATUS_OK.name,
            "protocol_version": PROTOCOL_VERSION,
        }

    @staticmethod
    def _hex_encoding() -> dict[str, Any]:
        return {
            "type": EncodingType.ENCODING_TYPE_HEXADECIMAL.name,
            "symbol_length": SYMBOL_LENGTH,
        }

    def pairing_request(self, service_name: str) -> bytes:
        body: dict[str, Any] = {"service_name": service_name}
        if self.device_info.model is not None:
            body["client_name"] = self.device_info.model
        return self.create(self._envelope("pairing_request", body))

    def pairing_option(self) -> bytes:
        return self.create(
            self._envelope(
                "pairing_option",
                {
                    "preferred_role": RoleType.ROLE_TYPE_INPUT.name,
                    "input_encodings": [self._hex_encoding()],
                },
            )
        )

    def pairing_configuration(self) -> bytes:
        return self.create(
            self._envelope(
                "pairing_configuration",
                {
                    "client_role": RoleType.ROLE_TYPE_INPUT.name,
                    "encoding": self._hex_encoding(),
                },
            )
        )

    def pairing_secret(self, secret: bytes) -> bytes:
        if not isinstance(secret, (bytes, bytearray)):
            raise RemoteSchemaError("pairing secret must be bytes")
        # json_format carries bytes fields as base64 text
        encoded = base64.b64encode(bytes(secret)).decode("ascii")
        return self.create(self._envelope("pairing_secret", {"secret": encoded}))

    def parse(self, data: bytes) -> Message:
        """Decode one length-delimited PairingMessage.

        Raises:
            RemoteDecodeError: If the frame is malformed
        """
        return protobuf_util.deserialize_delimited(self.PairingMessage, data)
