"""Self-signed client identity used for both TLS channels."""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
NOT_AFTER_YEAR = 2099


@dataclass(frozen=True)
class Identity:
    """PEM encoded certificate and private key."""

    cert: str
    key: str

    def to_dict(self) -> dict[str, str]:
        return {"cert": self.cert, "key": self.key}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Identity | None:
        """Build an identity from stored values, None when incomplete."""
        cert = data.get("cert")
        key = data.get("key")
        if not cert or not key:
            return None
        return cls(cert=cert, key=key)


def generate_serial_number() -> int:
    """Return a serial number of the form ``01`` followed by 19 random bytes."""
    return int("01" + os.urandom(19).hex(), 16)


def generate_full(
    common_name: str,
    country: str,
    state: str,
    locality: str,
    organisation: str,
    org_unit: str,
) -> Identity:
    """Generate a fresh RSA key pair and a self-signed certificate for it.

    Args:
        common_name: Subject CN, usually the service name
        country: Subject C (two letters are expected by most parsers)
        state: Subject ST
        locality: Subject L
        organisation: Subject O
        org_unit: Subject OU

    Returns:
        Identity with PEM certificate and PEM (PKCS#1) private key
    """
    private_key = rsa.generate_private_key(
        public_exponent=PUBLIC_EXPONENT,
        key_size=KEY_SIZE,
    )

    with warnings.catch_warnings():
        # The default subject uses a three letter placeholder the TV accepts,
        # cryptography only allows it with its private _validate switch
        warnings.simplefilter("ignore", UserWarning)
        country_attribute = x509.NameAttribute(
            NameOID.COUNTRY_NAME, country, _validate=len(country) == 2
        )

    subject = issuer = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            country_attribute,
            x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, state),
            x509.NameAttribute(NameOID.LOCALITY_NAME, locality),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, organisation),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, org_unit),
        ]
    )

    not_before = datetime.now(tz=UTC).replace(microsecond=0)
    try:
        not_after = not_before.replace(year=NOT_AFTER_YEAR)
    except ValueError:
        # Feb 29th has no counterpart in 2099
        not_after = not_before.replace(year=NOT_AFTER_YEAR, day=28)

    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(generate_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(private_key, hashes.SHA256())
    )

    cert_pem = certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")
    key_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode("ascii")

    return Identity(cert=cert_pem, key=key_pem)


def load_identity(cert_pem: str, key_pem: str) -> Identity:
    """Validate stored PEM material and wrap it as an Identity.

    Raises:
        ValueError: If either PEM block cannot be parsed
    """
    x509.load_pem_x509_certificate(cert_pem.encode("ascii"))
    serialization.load_pem_private_key(key_pem.encode("ascii"), password=None)
    return Identity(cert=cert_pem, key=key_pem)


def load_certificate(identity: Identity) -> x509.Certificate:
    """Parse the identity's certificate."""
    return x509.load_pem_x509_certificate(identity.cert.encode("ascii"))
