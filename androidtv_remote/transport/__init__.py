"""Transport layer for the Android TV remote.

Components:
- tls: SSL context and TLS connect with error mapping
- tls_client: TLS stream iteration
"""

from .tls import create_ssl_context, errno_code, open_tls_connection
from .tls_client import TlsClient, TlsMessage, TlsMessageType

__all__ = [
    "TlsClient",
    "TlsMessage",
    "TlsMessageType",
    "create_ssl_context",
    "errno_code",
    "open_tls_connection",
]
