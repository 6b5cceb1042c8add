# loyalty_wallet/wallet_pass/signing/credentials.py

"""
Signing Credentials

Loads the pass certificate, its private key and the WWDR authority
certificate from configuration. Values may be base64-encoded PEM/DER blobs
(the usual shape for container secrets) or file paths. Credentials are only
held for the duration of a `with` block.
"""

import base64
import binascii
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from ..errors import ConfigurationError
from ...config import WalletSettings

logger = logging.getLogger(__name__)


@dataclass
class SigningCredential:
    """Pass certificate, private key and authority certificate for one signing call."""
    certificate: x509.Certificate
    private_key: object
    wwdr_certificate: x509.Certificate

    def certificate_pem(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.PEM)

    def wwdr_pem(self) -> bytes:
        return self.wwdr_certificate.public_bytes(serialization.Encoding.PEM)

    def private_key_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )


def _read_source(encoded: Optional[str], path: Optional[str], label: str) -> Optional[bytes]:
    if encoded:
        try:
            return base64.b64decode(encoded, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(f"{label} is not valid base64: {e}", missing=[label])
    if path:
        if not os.path.exists(path):
            raise ConfigurationError(f"{label} file not found at {path}", missing=[label])
        with open(path, 'rb') as f:
            return f.read()
    return None


def load_certificate(data: bytes, label: str) -> x509.Certificate:
    """Load a certificate in PEM or DER form."""
    try:
        if b'-----BEGIN' in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise ConfigurationError(f"{label} could not be parsed: {e}", missing=[label])


def load_private_key(data: bytes, password: Optional[str], label: str = 'APPLE_KEY_BASE64'):
    """Load a private key in PEM or DER form, decrypting with `password` if set."""
    password_bytes = password.encode() if password else None
    try:
        if b'-----BEGIN' in data:
            return serialization.load_pem_private_key(data, password=password_bytes)
        return serialization.load_der_private_key(data, password=password_bytes)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"{label} could not be loaded: {e}", missing=[label])


def _load_pkcs12(data: bytes, password: Optional[str]) -> Tuple[object, x509.Certificate]:
    try:
        key, cert, _ = pkcs12.load_key_and_certificates(
            data, password.encode() if password else None
        )
    except ValueError as e:
        raise ConfigurationError(
            f"APPLE_CERT_PATH PKCS#12 bundle could not be opened: {e}",
            missing=['APPLE_CERT_PASSWORD']
        )
    if key is None or cert is None:
        raise ConfigurationError('PKCS#12 bundle has no key or certificate', missing=['APPLE_CERT_BASE64'])
    return key, cert


def missing_apple_credentials(settings: WalletSettings) -> List[str]:
    """Names of the Apple credential variables that are not configured."""
    missing = []
    if not (settings.apple_cert_base64 or settings.apple_cert_path):
        missing.append('APPLE_CERT_BASE64')
    if not (settings.apple_key_base64 or settings.apple_key_path or settings.apple_cert_is_p12):
        missing.append('APPLE_KEY_BASE64')
    if not (settings.apple_wwdr_base64 or settings.apple_wwdr_path):
        missing.append('APPLE_WWDR_BASE64')
    if not settings.apple_team_identifier:
        missing.append('APPLE_TEAM_IDENTIFIER')
    if not settings.apple_pass_type_identifier:
        missing.append('APPLE_PASS_TYPE_IDENTIFIER')
    return missing


def load_signing_credential(settings: WalletSettings) -> SigningCredential:
    """
    Build a SigningCredential from settings.

    A certificate value that is a PKCS#12 bundle (.p12) carries its own key;
    APPLE_CERT_PASSWORD then unlocks the bundle rather than the key file.

    Raises:
        ConfigurationError: if a value is missing or cannot be parsed
    """
    cert_data = _read_source(settings.apple_cert_base64, settings.apple_cert_path, 'APPLE_CERT_BASE64')
    key_data = _read_source(settings.apple_key_base64, settings.apple_key_path, 'APPLE_KEY_BASE64')
    wwdr_data = _read_source(settings.apple_wwdr_base64, settings.apple_wwdr_path, 'APPLE_WWDR_BASE64')

    missing = [
        name for name, value in (
            ('APPLE_CERT_BASE64', cert_data),
            ('APPLE_WWDR_BASE64', wwdr_data),
        ) if not value
    ]
    is_p12 = settings.apple_cert_is_p12
    if not key_data and not is_p12:
        missing.append('APPLE_KEY_BASE64')
    if missing:
        raise ConfigurationError(
            f"Apple signing credentials missing: {', '.join(missing)}", missing=missing
        )

    if is_p12:
        private_key, certificate = _load_pkcs12(cert_data, settings.apple_cert_password)
    else:
        certificate = load_certificate(cert_data, 'APPLE_CERT_BASE64')
        private_key = load_private_key(key_data, settings.apple_cert_password)

    return SigningCredential(
        certificate=certificate,
        private_key=private_key,
        wwdr_certificate=load_certificate(wwdr_data, 'APPLE_WWDR_BASE64'),
    )


@contextmanager
def signing_credential(settings: WalletSettings) -> Iterator[SigningCredential]:
    """
    Scope a SigningCredential to a `with` block.

    The credential object is dropped on exit so key material never outlives
    the signing call.
    """
    credential = load_signing_credential(settings)
    try:
        yield credential
    finally:
        logger.debug("Released Apple signing credential")
        del credential
