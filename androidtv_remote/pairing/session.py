"""Pairing handshake with an Android TV.

The TV shows a six digit hexadecimal code once the configuration exchange
completes. The code is checked locally against both certificates and, when it
matches, turned into the pairing secret sent back to the TV.
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import logging
from enum import Enum

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from google.protobuf.message import Message

from .. import protobuf_util
from ..certificate import Identity
from ..errors import (
    AndroidTVRemoteError,
    BadPairingCodeError,
    MissingCertificateError,
    PairingError,
    RemoteConnectionError,
)
from ..events import EventSource, RemoteEvent
from ..transport import TlsClient, TlsMessageType
from .codec import PairingCodec, PairingStatus

_LOGGER = logging.getLogger(__name__)


class PairingState(Enum):
    """Progress of the pairing handshake."""

    CONNECTING = "connecting"
    REQUEST_SENT = "request_sent"
    AWAITING_OPTION = "awaiting_option"
    CONFIG_SENT = "config_sent"
    AWAITING_SECRET = "awaiting_secret"
    SECRET_SENT = "secret_sent"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def hex_to_signed_bytes(hex_string: str) -> list[int]:
    """Decode hex pairs into two's complement bytes (``"FF"`` is -1).

    Raises:
        ValueError: If hex_string is not an even run of hex digits
    """
    return [byte - 256 if byte > 127 else byte for byte in bytes.fromhex(hex_string)]


def _rsa_numbers(certificate: x509.Certificate) -> rsa.RSAPublicNumbers:
    public_key = certificate.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise MissingCertificateError("No Certificate")
    return public_key.public_numbers()


def _int_to_bytes(value: int) -> bytes:
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _exponent_to_bytes(value: int) -> bytes:
    digits = format(value, "x")
    if len(digits) % 2:
        digits = "0" + digits
    return bytes.fromhex(digits)


def compute_pairing_secret(
    client_certificate: x509.Certificate,
    server_certificate: x509.Certificate,
    code: str,
) -> bytes:
    """SHA-256 over both RSA public keys and the code without its check byte.

    Raises:
        ValueError: If code is not hexadecimal
    """
    client = _rsa_numbers(client_certificate)
    server = _rsa_numbers(server_certificate)

    digest = hashlib.sha256()
    digest.update(_int_to_bytes(client.n))
    digest.update(_exponent_to_bytes(client.e))
    digest.update(_int_to_bytes(server.n))
    digest.update(_exponent_to_bytes(server.e))
    digest.update(bytes.fromhex(code[2:]))
    return digest.digest()


class PairingSession(EventSource):
    """One pairing attempt against the TV's pairing port.

    Usage:
        session = PairingSession("192.168.1.20", 6467, identity, codec)
        session.subscribe(RemoteEvent.SECRET, ask_user_for_code)
        paired = await session.start()   # resolves after send_code()
    """

    def __init__(
        self,
        host: str,
        port: int,
        identity: Identity,
        codec: PairingCodec,
        *,
        service_name: str = "androidtv-remote",
        connect_timeout: float = 15.0,
    ) -> None:
        super().__init__()
        self.host = host
        self.port = port
        self.identity = identity
        self.service_name = service_name

        self._codec = codec
        self._connect_timeout = connect_timeout

        self._client: TlsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._outcome: asyncio.Future[bool] | None = None
        self._buffer = bytearray()
        self._state = PairingState.CONNECTING

    @property
    def state(self) -> PairingState:
        return self._state

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def start(self) -> bool:
        """Run the handshake until the TV acknowledges the secret.

        Returns:
            True once paired

        Raises:
            PairingError: The TV rejected a message, the code was wrong, or
                the session was stopped
            AndroidTVRemoteError: Connection failures
        """
        self._outcome = asyncio.get_running_loop().create_future()
        self._buffer.clear()
        self._set_state(PairingState.CONNECTING)

        _LOGGER.info("[%s] Pairing on port %s", self.host, self.port)
        client = TlsClient()
        try:
            await client.connect(
                self.host, self.port, self.identity, timeout=self._connect_timeout
            )
        except AndroidTVRemoteError:
            self._set_state(PairingState.FAILED)
            raise
        if self._outcome.done():
            _LOGGER.debug("[%s] Stopped while connecting, dropping stream", self.host)
            await client.close()
            return await self._outcome
        self._client = client
        self._listen_task = asyncio.create_task(self._listen(client))

        try:
            await self._send(self._codec.pairing_request(self.service_name))
            self._set_state(PairingState.REQUEST_SENT)
            return await self._outcome
        except AndroidTVRemoteError as err:
            self._finish(err)
            raise
        finally:
            if self._outcome.done() and not self._outcome.cancelled():
                # Mark the failure as retrieved when it was raised directly
                self._outcome.exception()
            await self._shutdown()

    async def send_code(self, code: str) -> bool:
        """Check the code shown on the TV and send the pairing secret.

        Returns:
            True if the secret was sent, False if the code was rejected and
            the session closed

        Raises:
            MissingCertificateError: Not connected, or a certificate is missing
        """
        client = self._client
        if client is None or not client.connected:
            raise MissingCertificateError("No Certificate")
        client_certificate = client.local_certificate()
        server_certificate = client.peer_certificate()
        if client_certificate is None or server_certificate is None:
            raise MissingCertificateError("No Certificate")

        try:
            secret = compute_pairing_secret(
                client_certificate, server_certificate, code
            )
            expected = hex_to_signed_bytes(code)
            if not expected:
                raise ValueError("empty code")
        except ValueError:
            _LOGGER.warning("[%s] Pairing code %r is not hexadecimal", self.host, code)
            self._finish(BadPairingCodeError("Bad Code"))
            return False

        if hex_to_signed_bytes(secret.hex())[0] != expected[0]:
            _LOGGER.warning("[%s] Pairing code does not match", self.host)
            self._finish(BadPairingCodeError("Bad Code"))
            return False

        await self._send(self._codec.pairing_secret(secret))
        self._set_state(PairingState.SECRET_SENT)
        return True

    async def stop(self) -> None:
        """Abort the handshake, start() raises PairingError."""
        self._finish(PairingError("Pairing stopped"))
        await self._shutdown()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _set_state(self, state: PairingState) -> None:
        if self._state is not state:
            _LOGGER.debug("[%s] State: %s -> %s", self.host, self._state.value, state.value)
            self._state = state

    def _finish(self, error: Exception | None) -> None:
        """Settle the outcome once, success when error is None."""
        if self._outcome is None or self._outcome.done():
            return
        if error is None:
            _LOGGER.info("[%s] Pairing succeeded", self.host)
            self._set_state(PairingState.SUCCEEDED)
            self._outcome.set_result(True)
        else:
            _LOGGER.error("[%s] Pairing failed: %s", self.host, error)
            self._set_state(PairingState.FAILED)
            self._outcome.set_exception(error)

    async def _send(self, frame: bytes) -> None:
        if self._client is None:
            raise RemoteConnectionError("ENOTCONN", "Pairing session is not connected")
        await self._client.send(frame)

    async def _shutdown(self) -> None:
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

    async def _listen(self, client: TlsClient) -> None:
        try:
            async for msg in client:
                if msg.type is TlsMessageType.DATA and msg.data is not None:
                    self._buffer.extend(msg.data)
                    # Pairing frames carry a single length byte
                    if len(self._buffer) - 1 != self._buffer[0]:
                        continue
                    frame = bytes(self._buffer)
                    self._buffer.clear()
                    await self._handle_message(self._codec.parse(frame))
                elif msg.type is TlsMessageType.ERROR:
                    self._finish(RemoteConnectionError(msg.code or "EIO"))
                    return
                else:
                    _LOGGER.debug("[%s] Pairing connection closed", self.host)
                    self._finish(None)
                    return
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Pairing listener cancelled", self.host)
            raise
        except AndroidTVRemoteError as err:
            self._finish(err)

    async def _handle_message(self, message: Message) -> None:
        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug(
                "[%s] Received %s", self.host, protobuf_util.message_to_dict(message)
            )

        if message.status != PairingStatus.STATUS_OK:
            try:
                status = PairingStatus(message.status).name
            except ValueError:
                status = str(message.status)
            self._finish(PairingError(status))
            return

        kind = protobuf_util.get_message_type(message)
        if kind == "pairing_request_ack":
            await self._send(self._codec.pairing_option())
            self._set_state(PairingState.AWAITING_OPTION)
        elif kind == "pairing_option":
            await self._send(self._codec.pairing_configuration())
            self._set_state(PairingState.CONFIG_SENT)
        elif kind == "pairing_configuration_ack":
            self._set_state(PairingState.AWAITING_SECRET)
            self._emit(RemoteEvent.SECRET)
        elif kind == "pairing_secret_ack":
            self._finish(None)
        else:
            _LOGGER.debug("[%s] Ignoring pairing message %s", self.host, kind)
