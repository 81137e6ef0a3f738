"""Tests for the remote-control message codec."""

from __future__ import annotations

import logging

import pytest

from androidtv_remote.errors import RemoteSchemaError
from androidtv_remote.protobuf_util import get_message_type, message_to_dict
from androidtv_remote.remote.codec import RemoteCodec
from androidtv_remote.remote.keycodes import RemoteDirection, RemoteKeyCode


class TestRemoteConfigure:
    """Tests for the configure payload."""

    def test_configure_payload(self, remote_codec):
        message = remote_codec.parse(remote_codec.remote_configure())

        assert message_to_dict(message) == {
            "remote_configure": {
                "code1": 622,
                "device_info": {
                    "model": "Living Room Box",
                    "vendor": "Acme",
                    "unknown1": 1,
                    "unknown2": "1",
                    "package_name": "androidtv-remote",
                    "app_version": "1.0.0",
                },
            }
        }

    def test_configure_without_device_info(self):
        """Test model and vendor are left out when unknown."""
        codec = RemoteCodec(package_name="my-remote", app_version="2.0")
        device_info = codec.parse(codec.remote_configure()).remote_configure.device_info

        assert device_info.model == ""
        assert device_info.vendor == ""
        assert device_info.package_name == "my-remote"
        assert device_info.app_version == "2.0"


class TestRemoteKeyInject:
    """Tests for key injection."""

    def test_power_short_press(self, remote_codec):
        message = remote_codec.parse(
            remote_codec.remote_key_inject(
                RemoteDirection.SHORT, RemoteKeyCode.KEYCODE_POWER
            )
        )

        assert message.remote_key_inject.key_code == 26
        assert message.remote_key_inject.direction == RemoteDirection.SHORT

    @pytest.mark.parametrize(
        ("direction", "key_code"),
        [
            ("START_LONG", "KEYCODE_DPAD_UP"),
            (1, 19),
            (RemoteDirection.START_LONG, RemoteKeyCode.KEYCODE_DPAD_UP),
        ],
    )
    def test_accepts_names_and_numbers(self, remote_codec, direction, key_code):
        message = remote_codec.parse(remote_codec.remote_key_inject(direction, key_code))

        assert message.remote_key_inject.key_code == RemoteKeyCode.KEYCODE_DPAD_UP
        assert message.remote_key_inject.direction == RemoteDirection.START_LONG

    @pytest.mark.parametrize(
        ("direction", "key_code"),
        [("SHORT", "KEYCODE_NOPE"), ("SIDEWAYS", 26), (3, 9999)],
    )
    def test_invalid_values_rejected(self, remote_codec, direction, key_code):
        with pytest.raises(RemoteSchemaError):
            remote_codec.remote_key_inject(direction, key_code)


class TestRemoteBuilders:
    """Tests for the remaining builders."""

    def test_set_active(self, remote_codec):
        message = remote_codec.parse(remote_codec.remote_set_active(622))
        assert message.remote_set_active.active == 622

    def test_ping_response(self, remote_codec):
        message = remote_codec.parse(remote_codec.remote_ping_response(17))
        assert message.remote_ping_response.val1 == 17

    def test_app_link(self, remote_codec):
        message = remote_codec.parse(
            remote_codec.remote_app_link_launch_request("https://www.netflix.com/title")
        )
        assert (
            message.remote_app_link_launch_request.app_link
            == "https://www.netflix.com/title"
        )

    def test_adjust_volume_level(self, remote_codec):
        message = remote_codec.parse(remote_codec.remote_adjust_volume_level())
        assert get_message_type(message) == "remote_adjust_volume_level"

    def test_reset_preferred_audio_device(self, remote_codec):
        message = remote_codec.parse(remote_codec.remote_reset_preferred_audio_device())
        assert get_message_type(message) == "remote_reset_preferred_audio_device"

    def test_ime_key_inject(self, remote_codec):
        message = remote_codec.parse(
            remote_codec.remote_ime_key_inject(
                "com.google.android.youtube.tv",
                {"counter_field": 2, "value": "cats", "start": 4, "end": 4},
            )
        )
        inject = message.remote_ime_key_inject

        assert inject.app_info.app_package == "com.google.android.youtube.tv"
        assert inject.text_field_status.value == "cats"
        assert inject.text_field_status.counter_field == 2

    def test_set_volume_level_parses(self, remote_codec):
        frame = remote_codec.create(
            {
                "remote_set_volume_level": {
                    "volume_level": 5,
                    "volume_max": 10,
                    "volume_muted": True,
                    "player_model": "Player",
                }
            }
        )
        volume = remote_codec.parse(frame).remote_set_volume_level

        assert (volume.volume_level, volume.volume_max) == (5, 10)
        assert volume.volume_muted is True
        assert volume.player_model == "Player"

    def test_remote_error_nests_message(self, remote_codec):
        frame = remote_codec.create(
            {
                "remote_error": {
                    "value": True,
                    "message": {"remote_set_active": {"active": 1}},
                }
            }
        )
        error = remote_codec.parse(frame).remote_error

        assert error.value is True
        assert error.message.remote_set_active.active == 1

    def test_enum_values_match_python_enums(self, remote_codec):
        enum_type = remote_codec.RemoteMessage.DESCRIPTOR.file.enum_types_by_name[
            "RemoteKeyCode"
        ]
        assert len(enum_type.values) == len(RemoteKeyCode)
        assert enum_type.values_by_name["KEYCODE_ENTER"].number == 66


class TestRemoteTracing:
    """Tests for debug tracing of outbound frames."""

    def test_ping_response_not_traced(self, remote_codec, caplog):
        with caplog.at_level(logging.DEBUG, logger="androidtv_remote.remote.codec"):
            remote_codec.remote_ping_response(1)

        assert caplog.records == []

    def test_other_messages_traced(self, remote_codec, caplog):
        with caplog.at_level(logging.DEBUG, logger="androidtv_remote.remote.codec"):
            remote_codec.remote_set_active(622)

        assert len(caplog.records) == 1
        assert "remote_set_active" in caplog.text
