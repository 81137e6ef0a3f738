"""Remote-control channel: codec, key codes and the persistent channel."""

from .channel import RemoteChannel, ReconnectAction, classify_failure
from .codec import RemoteCodec, VolumeInfo
from .keycodes import RemoteDirection, RemoteKeyCode

__all__ = [
    "ReconnectAction",
    "RemoteChannel",
    "RemoteCodec",
    "RemoteDirection",
    "RemoteKeyCode",
    "VolumeInfo",
    "classify_failure",
]
