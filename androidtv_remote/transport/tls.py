"""TLS helpers for the pairing and remote-control ports."""

from __future__ import annotations

import asyncio
import errno
import ssl
import tempfile
from pathlib import Path

from ..certificate import Identity
from ..errors import RemoteConnectionError, RemoteHandshakeError, RemoteTimeout


def errno_code(err: OSError) -> str:
    """Symbolic errno name of an OSError (``ECONNRESET``...), ``EIO`` if unknown."""
    return errno.errorcode.get(err.errno or 0, "EIO")


def create_ssl_context(identity: Identity) -> ssl.SSLContext:
    """Build a client context presenting identity.

    The TV serves a self-signed certificate, so the peer chain and hostname
    are not verified. Trust comes from the pairing exchange instead.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    # load_cert_chain only reads from files
    with tempfile.TemporaryDirectory() as tmp:
        cert_path = Path(tmp) / "client.crt"
        key_path = Path(tmp) / "client.key"
        cert_path.write_text(identity.cert, encoding="ascii")
        key_path.write_text(identity.key, encoding="ascii")
        context.load_cert_chain(cert_path, key_path)
    return context


async def open_tls_connection(
    host: str,
    port: int,
    ssl_context: ssl.SSLContext,
    *,
    timeout: float = 15.0,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open a TLS stream to the device.

    Args:
        host: Device hostname or IP
        port: Device port
        ssl_context: Context from create_ssl_context
        timeout: Connect and handshake timeout (seconds)

    Raises:
        RemoteTimeout: Connect did not finish within timeout
        RemoteHandshakeError: TLS negotiation failed
        RemoteConnectionError: Socket level failure, code holds the errno name
    """
    try:
        return await asyncio.wait_for(
            asyncio.open_connection(host, port, ssl=ssl_context),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise RemoteTimeout(f"Connection to {host}:{port} timed out") from err
    except ssl.SSLError as err:
        raise RemoteHandshakeError(f"TLS handshake with {host}:{port} failed") from err
    except OSError as err:
        raise RemoteConnectionError(
            errno_code(err), f"Connection to {host}:{port} failed: {err}"
        ) from err
