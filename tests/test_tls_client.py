"""Tests for the TLS transport."""

from __future__ import annotations

import asyncio
import errno
import ssl
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from cryptography.hazmat.primitives import serialization

from androidtv_remote.certificate import load_certificate
from androidtv_remote.errors import (
    RemoteConnectionError,
    RemoteHandshakeError,
    RemoteTimeout,
)
from androidtv_remote.transport import (
    TlsClient,
    TlsMessage,
    TlsMessageType,
    create_ssl_context,
    open_tls_connection,
)


def make_writer(ssl_object=None) -> MagicMock:
    writer = MagicMock()
    writer.is_closing.return_value = False
    writer.drain = AsyncMock()
    writer.wait_closed = AsyncMock()
    writer.get_extra_info.return_value = ssl_object
    return writer


async def connected_client(identity, reader=None, writer=None, **kwargs) -> TlsClient:
    reader = reader or asyncio.StreamReader()
    writer = writer or make_writer()
    with (
        patch("androidtv_remote.transport.tls_client.create_ssl_context"),
        patch(
            "androidtv_remote.transport.tls_client.open_tls_connection",
            return_value=(reader, writer),
        ),
    ):
        client = TlsClient()
        await client.connect("192.168.1.20", 6466, identity, **kwargs)
    return client


async def collect(client: TlsClient) -> list[TlsMessage]:
    return [msg async for msg in client]


class TestTlsMessage:
    """Tests for TlsMessage dataclass."""

    def test_defaults(self):
        msg = TlsMessage(type=TlsMessageType.CLOSED)
        assert msg.data is None
        assert msg.code is None

    def test_message_is_frozen(self):
        msg = TlsMessage(type=TlsMessageType.DATA, data=b"x")
        with pytest.raises(AttributeError):
            msg.data = b"y"  # type: ignore[misc]


class TestCreateSslContext:
    """Tests for create_ssl_context()."""

    def test_peer_not_verified(self, client_identity):
        context = create_ssl_context(client_identity)

        assert context.verify_mode == ssl.CERT_NONE
        assert context.check_hostname is False


class TestOpenTlsConnection:
    """Tests for open_tls_connection() error mapping."""

    @pytest.mark.asyncio
    async def test_success(self):
        streams = (MagicMock(), MagicMock())
        context = MagicMock()
        with patch(
            "androidtv_remote.transport.tls.asyncio.open_connection",
            AsyncMock(return_value=streams),
        ) as mock_open:
            result = await open_tls_connection("192.168.1.20", 6467, context)

        assert result == streams
        mock_open.assert_called_once_with("192.168.1.20", 6467, ssl=context)

    @pytest.mark.asyncio
    async def test_refused(self):
        with patch(
            "androidtv_remote.transport.tls.asyncio.open_connection",
            AsyncMock(side_effect=ConnectionRefusedError(errno.ECONNREFUSED, "refused")),
        ):
            with pytest.raises(RemoteConnectionError) as exc_info:
                await open_tls_connection("192.168.1.20", 6467, MagicMock())

        assert exc_info.value.code == "ECONNREFUSED"

    @pytest.mark.asyncio
    async def test_host_down(self):
        with patch(
            "androidtv_remote.transport.tls.asyncio.open_connection",
            AsyncMock(side_effect=OSError(errno.EHOSTDOWN, "host is down")),
        ):
            with pytest.raises(RemoteConnectionError) as exc_info:
                await open_tls_connection("192.168.1.20", 6467, MagicMock())

        assert exc_info.value.code == "EHOSTDOWN"

    @pytest.mark.asyncio
    async def test_handshake_failure(self):
        with patch(
            "androidtv_remote.transport.tls.asyncio.open_connection",
            AsyncMock(side_effect=ssl.SSLError(1, "handshake failure")),
        ):
            with pytest.raises(RemoteHandshakeError):
                await open_tls_connection("192.168.1.20", 6467, MagicMock())

    @pytest.mark.asyncio
    async def test_timeout(self):
        with patch(
            "androidtv_remote.transport.tls.asyncio.open_connection",
            AsyncMock(side_effect=TimeoutError()),
        ):
            with pytest.raises(RemoteTimeout):
                await open_tls_connection("192.168.1.20", 6467, MagicMock())


class TestTlsClientConnect:
    """Tests for TlsClient.connect()."""

    @pytest.mark.asyncio
    async def test_connect_passes_timeout(self, client_identity):
        reader, writer = asyncio.StreamReader(), make_writer()
        with (
            patch(
                "androidtv_remote.transport.tls_client.create_ssl_context"
            ) as mock_context,
            patch(
                "androidtv_remote.transport.tls_client.open_tls_connection",
                return_value=(reader, writer),
            ) as mock_open,
        ):
            client = TlsClient()
            await client.connect("192.168.1.20", 6466, client_identity, timeout=5.0)

        mock_context.assert_called_once_with(client_identity)
        mock_open.assert_called_once_with(
            "192.168.1.20", 6466, mock_context.return_value, timeout=5.0
        )
        assert client.connected

    @pytest.mark.asyncio
    async def test_connect_propagates_errors(self, client_identity):
        with (
            patch("androidtv_remote.transport.tls_client.create_ssl_context"),
            patch(
                "androidtv_remote.transport.tls_client.open_tls_connection",
                side_effect=RemoteConnectionError("ECONNREFUSED"),
            ),
        ):
            client = TlsClient()
            with pytest.raises(RemoteConnectionError):
                await client.connect("192.168.1.20", 6466, client_identity)

        assert not client.connected


class TestTlsClientSend:
    """Tests for writing."""

    @pytest.mark.asyncio
    async def test_send(self, client_identity):
        writer = make_writer()
        client = await connected_client(client_identity, writer=writer)

        await client.send(b"\x02\x10\x01")

        writer.write.assert_called_once_with(b"\x02\x10\x01")
        writer.drain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_send_not_connected(self):
        client = TlsClient()
        with pytest.raises(RemoteConnectionError, match="not connected") as exc_info:
            await client.send(b"data")
        assert exc_info.value.code == "ENOTCONN"

    @pytest.mark.asyncio
    async def test_drain_error_mapped(self, client_identity):
        writer = make_writer()
        writer.drain.side_effect = BrokenPipeError(errno.EPIPE, "broken pipe")
        client = await connected_client(client_identity, writer=writer)

        with pytest.raises(RemoteConnectionError) as exc_info:
            await client.send(b"data")
        assert exc_info.value.code == "EPIPE"


class TestTlsClientClose:
    """Tests for TlsClient.close()."""

    @pytest.mark.asyncio
    async def test_close_connected(self, client_identity):
        writer = make_writer()
        client = await connected_client(client_identity, writer=writer)

        await client.close()

        writer.close.assert_called_once()
        writer.wait_closed.assert_awaited_once()
        assert not client.connected

    @pytest.mark.asyncio
    async def test_close_not_connected(self):
        client = TlsClient()
        await client.close()

    @pytest.mark.asyncio
    async def test_close_tolerates_reset(self, client_identity):
        writer = make_writer()
        writer.wait_closed.side_effect = ConnectionResetError(errno.ECONNRESET, "reset")
        client = await connected_client(client_identity, writer=writer)

        await client.close()

        assert not client.connected


class TestTlsClientIteration:
    """Tests for async iteration."""

    @pytest.mark.asyncio
    async def test_data_then_closed(self, client_identity):
        reader = asyncio.StreamReader()
        reader.feed_data(b"\x01\x02")
        reader.feed_eof()
        client = await connected_client(client_identity, reader=reader)

        messages = await collect(client)

        assert messages == [
            TlsMessage(type=TlsMessageType.DATA, data=b"\x01\x02"),
            TlsMessage(type=TlsMessageType.CLOSED),
        ]

    @pytest.mark.asyncio
    async def test_idle_timeout(self, client_identity):
        client = await connected_client(client_identity, idle_timeout=0.01)

        messages = await collect(client)

        assert messages == [TlsMessage(type=TlsMessageType.TIMEOUT)]

    @pytest.mark.asyncio
    async def test_reset_reports_code(self, client_identity):
        reader = asyncio.StreamReader()
        reader.set_exception(ConnectionResetError(errno.ECONNRESET, "reset"))
        client = await connected_client(client_identity, reader=reader)

        messages = await collect(client)

        assert messages == [TlsMessage(type=TlsMessageType.ERROR, code="ECONNRESET")]

    def test_iterate_not_connected(self):
        client = TlsClient()
        with pytest.raises(RemoteConnectionError, match="not connected"):
            client.__aiter__()


class TestCertificates:
    """Tests for local and peer certificates."""

    @pytest.mark.asyncio
    async def test_local_certificate(self, client_identity):
        client = await connected_client(client_identity)
        assert client.local_certificate() == load_certificate(client_identity)

    @pytest.mark.asyncio
    async def test_peer_certificate(self, client_identity, server_identity):
        server_cert = load_certificate(server_identity)
        ssl_object = MagicMock()
        ssl_object.getpeercert.return_value = server_cert.public_bytes(
            serialization.Encoding.DER
        )
        client = await connected_client(client_identity, writer=make_writer(ssl_object))

        assert client.peer_certificate() == server_cert
        ssl_object.getpeercert.assert_called_once_with(binary_form=True)

    @pytest.mark.asyncio
    async def test_peer_certificate_missing(self, client_identity):
        client = await connected_client(client_identity)
        assert client.peer_certificate() is None

    def test_not_connected(self):
        client = TlsClient()
        assert client.local_certificate() is None
        assert client.peer_certificate() is None
