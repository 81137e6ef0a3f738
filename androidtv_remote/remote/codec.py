"""Remote-control protocol schema and message builders."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, TypedDict

from google.protobuf import descriptor_pb2
from google.protobuf.message import Message

from .. import __version__, protobuf_util, schema
from ..device_info import DeviceInfo
from ..errors import RemoteSchemaError
from .keycodes import RemoteDirection, RemoteKeyCode

_LOGGER = logging.getLogger(__name__)

# Fixed values the TV expects in configure and set-active messages
CONFIGURE_CODE = 622
SET_ACTIVE_CODE = 622

DEFAULT_PACKAGE_NAME = "androidtv-remote"

_PACKAGE = "remote"


class VolumeInfo(TypedDict):
    """Volume state reported by the TV."""

    level: int
    maximum: int
    muted: bool
    playerModel: str


def _ref(name: str) -> str:
    return f".{_PACKAGE}.{name}"


def build_remote_file() -> descriptor_pb2.FileDescriptorProto:
    """Declare remotemessage.proto."""
    file_proto = schema.new_file("remotemessage.proto", _PACKAGE)
    messages = file_proto.message_type

    schema.add_enum(file_proto.enum_type, RemoteKeyCode)
    schema.add_enum(file_proto.enum_type, RemoteDirection)

    schema.add_message(
        messages, "RemoteAppLinkLaunchRequest", [schema.scalar("app_link", 1, "string")]
    )
    schema.add_message(messages, "RemoteResetPreferredAudioDevice")
    schema.add_message(messages, "RemoteSetPreferredAudioDevice")
    schema.add_message(messages, "RemoteAdjustVolumeLevel")
    schema.add_message(
        messages,
        "RemoteSetVolumeLevel",
        [
            schema.scalar("unknown1", 1, "uint32"),
            schema.scalar("unknown2", 2, "uint32"),
            schema.scalar("player_model", 3, "string"),
            schema.scalar("unknown4", 4, "uint32"),
            schema.scalar("unknown5", 5, "uint32"),
            schema.scalar("volume_max", 6, "uint32"),
            schema.scalar("volume_level", 7, "uint32"),
            schema.scalar("volume_muted", 8, "bool"),
        ],
    )
    schema.add_message(messages, "RemoteStart", [schema.scalar("started", 1, "bool")])
    schema.add_message(messages, "RemoteVoiceBegin")
    schema.add_message(messages, "RemoteVoicePayload")
    schema.add_message(messages, "RemoteVoiceEnd")
    schema.add_message(
        messages,
        "RemoteTextFieldStatus",
        [
            schema.scalar("counter_field", 1, "int32"),
            schema.scalar("value", 2, "string"),
            schema.scalar("start", 3, "int32"),
            schema.scalar("end", 4, "int32"),
            schema.scalar("int5", 5, "int32"),
            schema.scalar("label", 6, "string"),
        ],
    )
    schema.add_message(
        messages,
        "RemoteImeShowRequest",
        [
            schema.message(
                "remote_text_field_status", 2, _ref("RemoteTextFieldStatus")
            )
        ],
    )
    schema.add_message(
        messages,
        "RemoteImeObject",
        [
            schema.scalar("start", 1, "int32"),
            schema.scalar("end", 2, "int32"),
            schema.scalar("value", 3, "string"),
        ],
    )
    schema.add_message(
        messages,
        "RemoteEditInfo",
        [
            schema.scalar("insert", 1, "int32"),
            schema.message("text_field_status", 2, _ref("RemoteImeObject")),
        ],
    )
    schema.add_message(
        messages,
        "RemoteImeBatchEdit",
        [
            schema.scalar("ime_counter", 1, "int32"),
            schema.scalar("field_counter", 2, "int32"),
            schema.message("edit_info", 3, _ref("RemoteEditInfo"), repeated=True),
        ],
    )
    schema.add_message(
        messages,
        "RemoteAppInfo",
        [
            schema.scalar("counter", 1, "int32"),
            schema.scalar("int2", 2, "int32"),
            schema.scalar("int3", 3, "int32"),
            schema.scalar("int4", 4, "string"),
            schema.scalar("int7", 7, "int32"),
            schema.scalar("int8", 8, "int32"),
            schema.scalar("label", 10, "string"),
            schema.scalar("app_package", 12, "string"),
            schema.scalar("int13", 13, "int32"),
        ],
    )
    schema.add_message(
        messages,
        "RemoteImeKeyInject",
        [
            schema.message("app_info", 1, _ref("RemoteAppInfo")),
            schema.message("text_field_status", 2, _ref("RemoteTextFieldStatus")),
        ],
    )
    schema.add_message(
        messages,
        "RemoteKeyInject",
        [
            schema.enum("key_code", 1, _ref("RemoteKeyCode")),
            schema.enum("direction", 2, _ref("RemoteDirection")),
        ],
    )
    schema.add_message(
        messages, "RemotePingResponse", [schema.scalar("val1", 1, "int32")]
    )
    schema.add_message(
        messages,
        "RemotePingRequest",
        [schema.scalar("val1", 1, "int32"), schema.scalar("val2", 2, "int32")],
    )
    schema.add_message(
        messages, "RemoteSetActive", [schema.scalar("active", 1, "int32")]
    )
    schema.add_message(
        messages,
        "RemoteDeviceInfo",
        [
            schema.scalar("model", 1, "string"),
            schema.scalar("vendor", 2, "string"),
            schema.scalar("unknown1", 3, "int32"),
            schema.scalar("unknown2", 4, "string"),
            schema.scalar("package_name", 5, "string"),
            schema.scalar("app_version", 6, "string"),
        ],
    )
    schema.add_message(
        messages,
        "RemoteConfigure",
        [
            schema.scalar("code1", 1, "int32"),
            schema.message("device_info", 2, _ref("RemoteDeviceInfo")),
        ],
    )
    schema.add_message(
        messages,
        "RemoteError",
        [
            schema.scalar("value", 1, "bool"),
            schema.message("message", 2, _ref("RemoteMessage")),
        ],
    )

    schema.add_message(
        messages,
        "RemoteMessage",
        oneof=protobuf_util.PAYLOAD_ONEOF,
        oneof_fields=[
            schema.message("remote_configure", 1, _ref("RemoteConfigure")),
            schema.message("remote_set_active", 2, _ref("RemoteSetActive")),
            schema.message("remote_error", 3, _ref("RemoteError")),
            schema.message("remote_ping_request", 8, _ref("RemotePingRequest")),
            schema.message("remote_ping_response", 9, _ref("RemotePingResponse")),
            schema.message("remote_key_inject", 10, _ref("RemoteKeyInject")),
            schema.message("remote_ime_key_inject", 20, _ref("RemoteImeKeyInject")),
            schema.message("remote_ime_batch_edit", 21, _ref("RemoteImeBatchEdit")),
            schema.message(
                "remote_ime_show_request", 22, _ref("RemoteImeShowRequest")
            ),
            schema.message("remote_voice_begin", 30, _ref("RemoteVoiceBegin")),
            schema.message("remote_voice_payload", 31, _ref("RemoteVoicePayload")),
            schema.message("remote_voice_end", 32, _ref("RemoteVoiceEnd")),
            schema.message("remote_start", 40, _ref("RemoteStart")),
            schema.message(
                "remote_set_volume_level", 50, _ref("RemoteSetVolumeLevel")
            ),
            schema.message(
                "remote_adjust_volume_level", 51, _ref("RemoteAdjustVolumeLevel")
            ),
            schema.message(
                "remote_set_preferred_audio_device",
                60,
                _ref("RemoteSetPreferredAudioDevice"),
            ),
            schema.message(
                "remote_reset_preferred_audio_device",
                61,
                _ref("RemoteResetPreferredAudioDevice"),
            ),
            schema.message(
                "remote_app_link_launch_request",
                90,
                _ref("RemoteAppLinkLaunchRequest"),
            ),
        ],
    )
    return file_proto


def _coerce_enum(enum_cls: type[IntEnum], value: Any) -> str:
    """Return the enum member name for a member, number or name."""
    try:
        if isinstance(value, str):
            return enum_cls[value].name
        return enum_cls(value).name
    except (KeyError, ValueError) as err:
        raise RemoteSchemaError(f"Invalid {enum_cls.__name__}: {value!r}") from err


class RemoteCodec:
    """Builds and parses RemoteMessage frames.

    The schema is compiled once per codec instance; construct one codec at
    startup and hand it to the RemoteChannel.
    """

    KeyCode = RemoteKeyCode
    Direction = RemoteDirection

    def __init__(
        self,
        device_info: DeviceInfo | None = None,
        *,
        package_name: str = DEFAULT_PACKAGE_NAME,
        app_version: str = __version__,
    ) -> None:
        self._pool = schema.compile_schema(build_remote_file())
        self.RemoteMessage = schema.message_class(
            self._pool, f"{_PACKAGE}.RemoteMessage"
        )
        self.device_info = device_info or DeviceInfo()
        self.package_name = package_name
        self.app_version = app_version

    def create(self, payload: dict[str, Any]) -> bytes:
        """Validate payload and return the length-delimited frame.

        Ping responses are not traced, they arrive every few seconds.

        Raises:
            RemoteSchemaError: If payload does not match the schema
        """
        message = protobuf_util.build_message(self.RemoteMessage, payload)
        if "remote_ping_response" not in payload and _LOGGER.isEnabledFor(
            logging.DEBUG
        ):
            _LOGGER.debug("Sending %s", protobuf_util.message_to_dict(message))
        return protobuf_util.serialize_delimited(message)

    def remote_configure(self) -> bytes:
        device_info = {
            "model": self.device_info.model,
            "vendor": self.device_info.manufacturer,
            "unknown1": 1,
            "unknown2": "1",
            "package_name": self.package_name,
            "app_version": self.app_version,
        }
        return self.create(
            {
                "remote_configure": {
                    "code1": CONFIGURE_CODE,
                    "device_info": {
                        key: value
                        for key, value in device_info.items()
                        if value is not None
                    },
                }
            }
        )

    def remote_set_active(self, active: int) -> bytes:
        return self.create({"remote_set_active": {"active": active}})

    def remote_ping_response(self, val1: int) -> bytes:
        return self.create({"remote_ping_response": {"val1": val1}})

    def remote_key_inject(
        self,
        direction: RemoteDirection | int | str,
        key_code: RemoteKeyCode | int | str,
    ) -> bytes:
        return self.create(
            {
                "remote_key_inject": {
                    "key_code": _coerce_enum(RemoteKeyCode, key_code),
                    "direction": _coerce_enum(RemoteDirection, direction),
                }
            }
        )

    def remote_adjust_volume_level(self) -> bytes:
        return self.create({"remote_adjust_volume_level": {}})

    def remote_reset_preferred_audio_device(self) -> bytes:
        return self.create({"remote_reset_preferred_audio_device": {}})

    def remote_ime_key_inject(
        self,
        app_package: str,
        text_field_status: dict[str, Any] | None = None,
    ) -> bytes:
        body: dict[str, Any] = {"app_info": {"app_package": app_package}}
        if text_field_status is not None:
            body["text_field_status"] = text_field_status
        return self.create({"remote_ime_key_inject": body})

    def remote_app_link_launch_request(self, app_link: str) -> bytes:
        return self.create({"remote_app_link_launch_request": {"app_link": app_link}})

    def parse(self, data: bytes) -> Message:
        """Decode one length-delimited RemoteMessage.

        Raises:
            RemoteDecodeError: If the frame is malformed
        """
        return protobuf_util.deserialize_delimited(self.RemoteMessage, data)
