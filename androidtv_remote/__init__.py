"""Android TV remote protocol engine."""

__version__ = "0.1.0"

from .certificate import Identity, generate_full, load_identity  # noqa: E402
from .config import RemoteOptions, SettingsStore  # noqa: E402
from .device_info import DeviceInfo, resolve_device_info  # noqa: E402
from .errors import (  # noqa: E402
    AndroidTVRemoteError,
    BadPairingCodeError,
    MissingCertificateError,
    PairingError,
    RemoteConnectionError,
    RemoteDecodeError,
    RemoteHandshakeError,
    RemoteSchemaError,
    RemoteTimeout,
)
from .events import EventSource, RemoteEvent  # noqa: E402
from .pairing import PairingCodec, PairingSession, PairingState  # noqa: E402
from .remote import (  # noqa: E402
    ReconnectAction,
    RemoteChannel,
    RemoteCodec,
    RemoteDirection,
    RemoteKeyCode,
    VolumeInfo,
)
from .session import AndroidRemote  # noqa: E402

__all__ = [
    "AndroidRemote",
    "AndroidTVRemoteError",
    "BadPairingCodeError",
    "DeviceInfo",
    "EventSource",
    "Identity",
    "MissingCertificateError",
    "PairingCodec",
    "PairingError",
    "PairingSession",
    "PairingState",
    "ReconnectAction",
    "RemoteChannel",
    "RemoteCodec",
    "RemoteConnectionError",
    "RemoteDecodeError",
    "RemoteDirection",
    "RemoteEvent",
    "RemoteHandshakeError",
    "RemoteKeyCode",
    "RemoteOptions",
    "RemoteSchemaError",
    "RemoteTimeout",
    "SettingsStore",
    "VolumeInfo",
    "__version__",
    "generate_full",
    "load_identity",
    "resolve_device_info",
]
