"""Client error types for Android TV pairing and remote-control interactions."""

from __future__ import annotations


class AndroidTVRemoteError(Exception):
    """Base error for Android TV remote client failures."""


class RemoteTimeout(AndroidTVRemoteError):
    """Timeout while communicating with the device."""


class RemoteConnectionError(AndroidTVRemoteError):
    """Network connection to the device failed.

    ``code`` carries the symbolic errno name (``ECONNRESET``, ``EHOSTDOWN``...)
    used by the reconnection policy.
    """

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code


class RemoteHandshakeError(AndroidTVRemoteError):
    """TLS handshake with the device failed."""


class RemoteSchemaError(AndroidTVRemoteError, ValueError):
    """Message payload does not match the compiled protocol schema."""


class RemoteDecodeError(AndroidTVRemoteError):
    """Received bytes could not be decoded into a protocol message."""


class PairingError(AndroidTVRemoteError):
    """Pairing handshake ended in failure."""


class BadPairingCodeError(PairingError):
    """Pairing code checksum did not match the certificates."""


class MissingCertificateError(AndroidTVRemoteError):
    """Client or server certificate unavailable for the pairing secret."""
