"""Connection options and persisted settings."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import __version__
from .certificate import Identity

_LOGGER = logging.getLogger(__name__)

DEFAULT_PAIRING_PORT = 6467
DEFAULT_REMOTE_PORT = 6466
DEFAULT_SERVICE_NAME = "androidtv-remote"
DEFAULT_SETTINGS_PATH = "~/.config/androidtv/settings.json"


@dataclass(frozen=True)
class RemoteOptions:
    """Tunables shared by the pairing session and the remote channel."""

    pairing_port: int = DEFAULT_PAIRING_PORT
    remote_port: int = DEFAULT_REMOTE_PORT
    service_name: str = DEFAULT_SERVICE_NAME
    package_name: str = DEFAULT_SERVICE_NAME
    app_version: str = __version__
    connect_timeout: float = 15.0
    idle_timeout: float = 10.0
    reconnect_delay: float = 1.0
    max_reconnect_attempts: int | None = None


class SettingsStore:
    """JSON file holding the TV host and the paired identity.

    Usage:
        store = SettingsStore()
        store.set("host", "192.168.1.20")
        identity = store.load_identity()
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or DEFAULT_SETTINGS_PATH).expanduser()

    def _read(self) -> dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as err:
            _LOGGER.warning("Ignoring unreadable settings %s: %s", self.path, err)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def load_identity(self) -> Identity | None:
        """Stored identity, None until one has been saved."""
        return Identity.from_dict(self._read())

    def save_identity(self, identity: Identity) -> None:
        data = self._read()
        data.update(identity.to_dict())
        self._write(data)
        _LOGGER.debug("Saved identity to %s", self.path)
