"""TLS stream client wrapper for the Android TV ports."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from cryptography import x509

from ..certificate import Identity, load_certificate
from ..errors import RemoteConnectionError
from .tls import create_ssl_context, errno_code, open_tls_connection

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)

READ_SIZE = 64 * 1024


class TlsMessageType(Enum):
    """Normalized stream events."""

    DATA = "data"
    CLOSED = "closed"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class TlsMessage:
    """Normalized stream event.

    ``data`` is set for DATA, ``code`` (errno name) for ERROR.
    """

    type: TlsMessageType
    data: bytes | None = None
    code: str | None = None


class TlsClient:
    """Wrapper around an asyncio TLS stream."""

    def __init__(self) -> None:
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._identity: Identity | None = None
        self._idle_timeout: float | None = None

    async def connect(
        self,
        host: str,
        port: int,
        identity: Identity,
        *,
        timeout: float = 15.0,
        idle_timeout: float | None = None,
    ) -> None:
        """Connect to the device presenting identity.

        With idle_timeout set, iteration ends with a TIMEOUT message when no
        bytes arrive for that many seconds.
        """
        context = create_ssl_context(identity)
        self._reader, self._writer = await open_tls_connection(
            host, port, context, timeout=timeout
        )
        self._identity = identity
        self._idle_timeout = idle_timeout

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def close(self) -> None:
        """Close the stream."""
        writer = self._writer
        if writer is None:
            return
        self._writer = None
        self._reader = None
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as err:
            _LOGGER.debug("Stream closed with error: %s", err)

    def write(self, data: bytes) -> None:
        """Queue bytes on the stream."""
        if self._writer is None:
            raise RemoteConnectionError("ENOTCONN", "TLS stream is not connected")
        self._writer.write(data)

    async def drain(self) -> None:
        """Wait until the write buffer is flushed."""
        if self._writer is None:
            raise RemoteConnectionError("ENOTCONN", "TLS stream is not connected")
        try:
            await self._writer.drain()
        except OSError as err:
            raise RemoteConnectionError(errno_code(err), str(err)) from err

    async def send(self, data: bytes) -> None:
        """Write bytes and wait for them to be flushed.

        Raises:
            RemoteConnectionError: If not connected or the write fails
        """
        self.write(data)
        await self.drain()

    def local_certificate(self) -> x509.Certificate | None:
        """Certificate presented by this client."""
        if self._identity is None:
            return None
        return load_certificate(self._identity)

    def peer_certificate(self) -> x509.Certificate | None:
        """Certificate presented by the device, None when unavailable."""
        if self._writer is None:
            return None
        ssl_object = self._writer.get_extra_info("ssl_object")
        if ssl_object is None:
            return None
        der = ssl_object.getpeercert(binary_form=True)
        if not der:
            return None
        return x509.load_der_x509_certificate(der)

    def __aiter__(self) -> AsyncIterator[TlsMessage]:
        if self._reader is None:
            raise RemoteConnectionError("ENOTCONN", "TLS stream is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[TlsMessage]:
        reader = self._reader
        if reader is None:
            raise RemoteConnectionError("ENOTCONN", "TLS stream is not connected")

        while True:
            try:
                if self._idle_timeout is None:
                    data = await reader.read(READ_SIZE)
                else:
                    data = await asyncio.wait_for(
                        reader.read(READ_SIZE), timeout=self._idle_timeout
                    )
            except TimeoutError:
                yield TlsMessage(type=TlsMessageType.TIMEOUT)
                return
            except OSError as err:
                yield TlsMessage(type=TlsMessageType.ERROR, code=errno_code(err))
                return

            if not data:
                # EOF, the peer closed the stream
                yield TlsMessage(type=TlsMessageType.CLOSED)
                return
            yield TlsMessage(type=TlsMessageType.DATA, data=data)
