"""High-level Android TV remote session.

Ties the pairing handshake and the remote-control channel together:
- Generates a client identity on first use
- Pairs with the TV when no identity is known
- Keeps the remote-control channel connected and forwards its events
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .certificate import Identity, generate_full
from .config import RemoteOptions, SettingsStore
from .device_info import DeviceInfo, resolve_device_info
from .errors import AndroidTVRemoteError, MissingCertificateError, RemoteConnectionError
from .events import EventSource, RemoteEvent
from .pairing.codec import PairingCodec
from .pairing.session import PairingSession
from .remote.channel import RemoteChannel
from .remote.codec import RemoteCodec
from .remote.keycodes import RemoteDirection, RemoteKeyCode

_LOGGER = logging.getLogger(__name__)

# Subject fields other than CN of generated certificates
_SUBJECT = ("CNT", "ST", "LOC", "O", "OU")

_CHANNEL_EVENTS = (
    RemoteEvent.READY,
    RemoteEvent.UNPAIRED,
    RemoteEvent.ERROR,
    RemoteEvent.VOLUME,
    RemoteEvent.CURRENT_APP,
    RemoteEvent.POWERED,
)


class AndroidRemote(EventSource):
    """Android TV remote for one host.

    Usage:
        remote = AndroidRemote("192.168.1.20")
        remote.subscribe(RemoteEvent.SECRET, lambda: ...)   # then send_code()
        remote.subscribe(RemoteEvent.READY, on_ready)
        await remote.start()
        await remote.send_power()
        await remote.stop()
    """

    def __init__(
        self,
        host: str,
        options: RemoteOptions | None = None,
        *,
        identity: Identity | None = None,
        device_info: DeviceInfo | None = None,
    ) -> None:
        super().__init__()
        self.host = host
        self.options = options or RemoteOptions()

        self._identity = identity
        self._device_info = device_info
        self._codecs: tuple[PairingCodec, RemoteCodec] | None = None
        self._pairing: PairingSession | None = None
        self._channel: RemoteChannel | None = None
        self._unforward_channel: Callable[[], None] | None = None
        self._stopped = False

    @classmethod
    def from_settings(
        cls,
        settings: SettingsStore | None = None,
        host: str | None = None,
        options: RemoteOptions | None = None,
    ) -> AndroidRemote:
        """Build a remote from stored settings, saving the identity once ready.

        Raises:
            ValueError: No host given and none stored
        """
        settings = settings or SettingsStore()
        if host is None:
            host = settings.get("host")
        else:
            settings.set("host", host)
        if not host:
            raise ValueError("No Android TV host configured")

        remote = cls(host, options, identity=settings.load_identity())

        def _persist_identity() -> None:
            identity = remote.get_certificate()
            if identity is not None:
                settings.save_identity(identity)

        remote.subscribe(RemoteEvent.READY, _persist_identity)
        return remote

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def start(self) -> bool:
        """Pair if needed, then connect the remote-control channel.

        Failures are logged rather than raised; the channel keeps retrying on
        its own where its policy allows.

        Returns:
            True when the remote-control channel connected
        """
        self._stopped = False
        pairing_codec, remote_codec = await self._ensure_codecs()
        if self._stopped:
            return False

        if self._identity is None:
            if not await self._pair(pairing_codec):
                return False
        if self._stopped or self._identity is None:
            return False

        channel = RemoteChannel(
            self.host,
            self.options.remote_port,
            self._identity,
            remote_codec,
            connect_timeout=self.options.connect_timeout,
            idle_timeout=self.options.idle_timeout,
            reconnect_delay=self.options.reconnect_delay,
            max_reconnect_attempts=self.options.max_reconnect_attempts,
        )
        await self._drop_channel()
        if self._stopped:
            return False
        self._unforward_channel = self.forward(channel, *_CHANNEL_EVENTS)
        self._channel = channel

        try:
            return await channel.start()
        except AndroidTVRemoteError as err:
            _LOGGER.error("[%s] Remote channel start failed: %s", self.host, err)
            return False

    async def stop(self) -> None:
        """Stop pairing and the remote channel. Safe to call repeatedly."""
        self._stopped = True
        if self._pairing is not None:
            await self._pairing.stop()
        if self._channel is not None:
            await self._channel.stop()

    async def send_code(self, code: str) -> bool:
        """Submit the code shown on the TV while pairing.

        Raises:
            MissingCertificateError: No pairing in progress
        """
        if self._pairing is None:
            raise MissingCertificateError("No Certificate")
        return await self._pairing.send_code(code)

    async def send_power(self) -> None:
        await self._require_channel().send_power()

    async def send_key(
        self,
        key_code: RemoteKeyCode | int | str,
        direction: RemoteDirection | int | str = RemoteDirection.SHORT,
    ) -> None:
        await self._require_channel().send_key(key_code, direction)

    async def send_app_link(self, app_link: str) -> None:
        await self._require_channel().send_app_link(app_link)

    def get_certificate(self) -> Identity | None:
        """Paired identity, None before pairing succeeded."""
        return self._identity

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _ensure_codecs(self) -> tuple[PairingCodec, RemoteCodec]:
        if self._codecs is None:
            if self._device_info is None:
                self._device_info = await resolve_device_info()
            self._codecs = (
                PairingCodec(self._device_info),
                RemoteCodec(
                    self._device_info,
                    package_name=self.options.package_name,
                    app_version=self.options.app_version,
                ),
            )
        return self._codecs

    async def _pair(self, codec: PairingCodec) -> bool:
        _LOGGER.info("[%s] No identity, generating one and pairing", self.host)
        identity = await asyncio.to_thread(
            generate_full, self.options.service_name, *_SUBJECT
        )
        if self._stopped:
            _LOGGER.debug("[%s] Stopped during identity generation", self.host)
            return False

        pairing = PairingSession(
            self.host,
            self.options.pairing_port,
            identity,
            codec,
            service_name=self.options.service_name,
            connect_timeout=self.options.connect_timeout,
        )
        unsubscribe = self.forward(pairing, RemoteEvent.SECRET)
        self._pairing = pairing
        try:
            paired = await pairing.start()
        except AndroidTVRemoteError as err:
            _LOGGER.error("[%s] Pairing failed: %s", self.host, err)
            return False
        finally:
            unsubscribe()
            self._pairing = None

        if not paired:
            return False
        self._identity = identity
        return True

    async def _drop_channel(self) -> None:
        """Stop a channel left over from an earlier start()."""
        channel = self._channel
        self._channel = None
        if self._unforward_channel is not None:
            self._unforward_channel()
            self._unforward_channel = None
        if channel is not None:
            await channel.stop()

    def _require_channel(self) -> RemoteChannel:
        if self._channel is None:
            raise RemoteConnectionError("ENOTCONN", "Remote channel is not started")
        return self._channel
