"""Persistent remote-control channel with its reconnection policy."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum

from google.protobuf.message import Message

from .. import protobuf_util
from ..certificate import Identity
from ..errors import (
    AndroidTVRemoteError,
    RemoteConnectionError,
    RemoteHandshakeError,
    RemoteTimeout,
)
from ..events import EventSource, RemoteEvent
from ..transport import TlsClient, TlsMessageType
from .codec import SET_ACTIVE_CODE, RemoteCodec, VolumeInfo
from .keycodes import RemoteDirection, RemoteKeyCode

_LOGGER = logging.getLogger(__name__)

# Messages ignored beyond a debug trace
_TRACE_ONLY = frozenset(
    {
        "remote_ime_batch_edit",
        "remote_ime_show_request",
        "remote_voice_begin",
        "remote_voice_payload",
        "remote_voice_end",
        "remote_set_preferred_audio_device",
    }
)


class ReconnectAction(Enum):
    """What to do after the channel closed."""

    RETRY = "retry"
    UNPAIRED = "unpaired"
    HOST_DOWN = "host_down"


def classify_failure(code: str | None) -> ReconnectAction:
    """Map a close reason to the reconnection policy.

    A reset means the TV dropped our certificate, a host down means it is
    off the network. Everything else, including a clean close, is retried.
    """
    if code == "ECONNRESET":
        return ReconnectAction.UNPAIRED
    if code == "EHOSTDOWN":
        return ReconnectAction.HOST_DOWN
    return ReconnectAction.RETRY


def _failure_code(err: AndroidTVRemoteError) -> str:
    if isinstance(err, RemoteConnectionError):
        return err.code
    if isinstance(err, RemoteTimeout):
        return "ETIMEDOUT"
    if isinstance(err, RemoteHandshakeError):
        return "EPROTO"
    return "EIO"


class RemoteChannel(EventSource):
    """Remote-control connection to a paired TV.

    Usage:
        channel = RemoteChannel("192.168.1.20", 6466, identity, codec)
        channel.subscribe(RemoteEvent.READY, on_ready)
        await channel.start()
        await channel.send_power()
        await channel.stop()
    """

    def __init__(
        self,
        host: str,
        port: int,
        identity: Identity,
        codec: RemoteCodec,
        *,
        connect_timeout: float = 15.0,
        idle_timeout: float = 10.0,
        reconnect_delay: float = 1.0,
        max_reconnect_attempts: int | None = None,
    ) -> None:
        """Initialize channel.

        Args:
            host: Device hostname or IP
            port: Remote-control port
            identity: Paired client identity
            codec: Shared RemoteCodec
            connect_timeout: Connect and handshake timeout (seconds)
            idle_timeout: Reconnect when nothing arrives for this long (seconds)
            reconnect_delay: Wait before each reconnect attempt (seconds)
            max_reconnect_attempts: Give up after this many attempts, None retries forever
        """
        super().__init__()
        self.host = host
        self.port = port
        self.identity = identity

        self._codec = codec
        self._connect_timeout = connect_timeout
        self._idle_timeout = idle_timeout
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_attempts = max_reconnect_attempts

        self._client: TlsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._buffer = bytearray()
        self._stopped = False
        self.last_failure: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.connected

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def start(self) -> bool:
        """Connect to the remote-control port.

        Returns:
            True once connected, False when stop() ran while connecting

        Raises:
            RemoteConnectionError: Connect failed, code holds the errno name.
                A reconnect is already scheduled when the policy allows it.
        """
        self._stopped = False
        try:
            connected = await self._connect()
        except AndroidTVRemoteError as err:
            code = _failure_code(err)
            _LOGGER.warning("[%s] Connection failed: %s", self.host, err)
            self._handle_failure(code)
            if isinstance(err, RemoteConnectionError):
                raise
            raise RemoteConnectionError(code, str(err)) from err
        return connected

    async def stop(self) -> None:
        """Close the channel, no reconnect is scheduled afterwards."""
        _LOGGER.info("[%s] Closing remote channel", self.host)
        self._stopped = True

        if self._reconnect_task:
            self._reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconnect_task
            self._reconnect_task = None

        await self._close_client()

    # -------------------------------------------------------------------------
    # Public API: Commands
    # -------------------------------------------------------------------------

    async def send_power(self) -> None:
        await self.send_key(RemoteKeyCode.KEYCODE_POWER, RemoteDirection.SHORT)

    async def send_key(
        self,
        key_code: RemoteKeyCode | int | str,
        direction: RemoteDirection | int | str = RemoteDirection.SHORT,
    ) -> None:
        """Inject a key press; a long press is START_LONG then END_LONG."""
        await self._send(self._codec.remote_key_inject(direction, key_code))

    async def send_app_link(self, app_link: str) -> None:
        """Ask the TV to open a deep link or app URI."""
        await self._send(self._codec.remote_app_link_launch_request(app_link))

    # -------------------------------------------------------------------------
    # Internal: Connection
    # -------------------------------------------------------------------------

    async def _connect(self) -> bool:
        await self._close_client()

        _LOGGER.info("[%s] Connecting to remote port %s", self.host, self.port)
        client = TlsClient()
        await client.connect(
            self.host,
            self.port,
            self.identity,
            timeout=self._connect_timeout,
            idle_timeout=self._idle_timeout,
        )
        if self._stopped:
            _LOGGER.debug("[%s] Stopped while connecting, dropping stream", self.host)
            await client.close()
            return False
        self._client = client
        self._buffer.clear()
        self._listen_task = asyncio.create_task(self._listen(client))
        return True

    async def _close_client(self) -> None:
        task = self._listen_task
        self._listen_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        client = self._client
        self._client = None
        if client is not None:
            await client.close()

    async def _send(self, frame: bytes) -> None:
        if self._client is None or not self._client.connected:
            raise RemoteConnectionError("ENOTCONN", "Remote channel is not connected")
        await self._client.send(frame)

    def _handle_failure(self, code: str | None) -> None:
        """Apply the reconnection policy to a close reason."""
        self.last_failure = code
        if self._stopped:
            return

        action = classify_failure(code)
        if action is ReconnectAction.UNPAIRED:
            _LOGGER.warning("[%s] Connection reset, certificate no longer paired", self.host)
            self._emit(RemoteEvent.UNPAIRED)
            return
        if action is ReconnectAction.HOST_DOWN:
            _LOGGER.warning("[%s] Host is down, not reconnecting", self.host)
            return
        if self._reconnect_task is not None:
            return
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        """Reconnect until connected, stopped, or the policy says stop."""
        attempts = 0
        try:
            while not self._stopped:
                if (
                    self._max_reconnect_attempts is not None
                    and attempts >= self._max_reconnect_attempts
                ):
                    _LOGGER.error(
                        "[%s] Giving up after %d reconnect attempts", self.host, attempts
                    )
                    self._emit(
                        RemoteEvent.ERROR,
                        {"error": f"Reconnect failed after {attempts} attempts"},
                    )
                    return

                attempts += 1
                _LOGGER.info(
                    "[%s] Reconnecting in %ss (attempt %d)",
                    self.host,
                    self._reconnect_delay,
                    attempts,
                )
                await asyncio.sleep(self._reconnect_delay)
                if self._stopped:
                    return

                try:
                    await self._connect()
                except AndroidTVRemoteError as err:
                    code = _failure_code(err)
                    self.last_failure = code
                    _LOGGER.error("[%s] Reconnect failed: %s", self.host, err)
                    action = classify_failure(code)
                    if action is ReconnectAction.UNPAIRED:
                        self._emit(RemoteEvent.UNPAIRED)
                        return
                    if action is ReconnectAction.HOST_DOWN:
                        return
                    continue
                return
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Reconnect cancelled", self.host)
        finally:
            self._reconnect_task = None

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, client: TlsClient) -> None:
        message_count = 0
        reconnect_required = False
        failure_code: str | None = None

        try:
            async for msg in client:
                if msg.type is TlsMessageType.DATA and msg.data is not None:
                    self._buffer.extend(msg.data)
                    while (frame := protobuf_util.take_delimited_frame(self._buffer)) is not None:
                        message_count += 1
                        await self._handle_message(self._codec.parse(frame))

                elif msg.type is TlsMessageType.TIMEOUT:
                    _LOGGER.info("[%s] Remote channel idle, reconnecting", self.host)
                    reconnect_required = True
                    break

                elif msg.type is TlsMessageType.CLOSED:
                    _LOGGER.info("[%s] Remote channel closed by device", self.host)
                    reconnect_required = True
                    break

                elif msg.type is TlsMessageType.ERROR:
                    _LOGGER.error("[%s] Remote channel error: %s", self.host, msg.code)
                    failure_code = msg.code
                    reconnect_required = True
                    break

        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)", self.host, message_count
            )
            raise
        except AndroidTVRemoteError as err:
            _LOGGER.warning("[%s] Client error: %s", self.host, err)
            failure_code = _failure_code(err)
            reconnect_required = True
        finally:
            if reconnect_required and not self._stopped:
                if self._client is client:
                    self._client = None
                    self._listen_task = None
                    await client.close()
                self._handle_failure(failure_code)

    async def _handle_message(self, message: Message) -> None:
        kind = protobuf_util.get_message_type(message)
        if kind != "remote_ping_request" and _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug(
                "[%s] Received %s", self.host, protobuf_util.message_to_dict(message)
            )

        if kind == "remote_configure":
            await self._send(self._codec.remote_configure())
            _LOGGER.info("[%s] Remote channel ready", self.host)
            self._emit(RemoteEvent.READY)
        elif kind == "remote_set_active":
            await self._send(self._codec.remote_set_active(SET_ACTIVE_CODE))
        elif kind == "remote_ping_request":
            await self._send(
                self._codec.remote_ping_response(message.remote_ping_request.val1)
            )
        elif kind == "remote_ime_key_inject":
            self._emit(
                RemoteEvent.CURRENT_APP,
                message.remote_ime_key_inject.app_info.app_package,
            )
        elif kind == "remote_start":
            self._emit(RemoteEvent.POWERED, message.remote_start.started)
        elif kind == "remote_set_volume_level":
            volume = message.remote_set_volume_level
            self._emit(
                RemoteEvent.VOLUME,
                VolumeInfo(
                    level=volume.volume_level,
                    maximum=volume.volume_max,
                    muted=volume.volume_muted,
                    playerModel=volume.player_model,
                ),
            )
        elif kind == "remote_error":
            self._emit(
                RemoteEvent.ERROR,
                {"error": protobuf_util.message_to_dict(message.remote_error)},
            )
        elif kind in _TRACE_ONLY:
            return
        else:
            _LOGGER.debug("[%s] Unhandled remote message %s", self.host, kind)
