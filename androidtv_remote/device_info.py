"""Local device metadata advertised to the TV during pairing and configure."""

from __future__ import annotations

import asyncio
import logging
import platform
from dataclasses import dataclass
from pathlib import Path

_LOGGER = logging.getLogger(__name__)

_DMI_ROOT = Path("/sys/class/dmi/id")


@dataclass(frozen=True)
class DeviceInfo:
    """Manufacturer and model of the machine running the remote."""

    manufacturer: str | None = None
    model: str | None = None


def _read_dmi(name: str, root: Path) -> str | None:
    try:
        value = (root / name).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return value or None


def detect_device_info(dmi_root: Path = _DMI_ROOT) -> DeviceInfo:
    """Probe the local machine for manufacturer and model.

    DMI data is used where the platform exposes it, otherwise the values fall
    back to what :mod:`platform` reports.
    """
    manufacturer = _read_dmi("sys_vendor", dmi_root) or platform.system() or None
    model = _read_dmi("product_name", dmi_root) or platform.machine() or None
    return DeviceInfo(manufacturer=manufacturer, model=model)


async def resolve_device_info() -> DeviceInfo:
    """Resolve device metadata without blocking the event loop."""
    info = await asyncio.to_thread(detect_device_info)
    _LOGGER.debug("Local device: %s %s", info.manufacturer, info.model)
    return info
