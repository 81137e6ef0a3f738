"""Pairing channel: codec and handshake session."""

from .codec import EncodingType, PairingCodec, PairingStatus, RoleType
from .session import (
    PairingSession,
    PairingState,
    compute_pairing_secret,
    hex_to_signed_bytes,
)

__all__ = [
    "EncodingType",
    "PairingCodec",
    "PairingSession",
    "PairingState",
    "PairingStatus",
    "RoleType",
    "compute_pairing_secret",
    "hex_to_signed_bytes",
]
