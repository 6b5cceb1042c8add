# loyalty_wallet/wallet_pass/signing/apple.py

"""
Apple Wallet Signing Service

Produces the detached PKCS#7 signature over manifest.json. The primary
strategy shells out to the openssl binary; when that is unavailable or
fails, the signature is built in-process with the cryptography library.
Both produce a DER SignedData carrying the pass certificate and the WWDR
certificate.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7

from ..errors import SigningError
from .credentials import SigningCredential, signing_credential
from ...config import WalletSettings

logger = logging.getLogger(__name__)


class ManifestSigner(ABC):
    """Signs manifest bytes and returns a DER-encoded detached signature."""

    strategy = 'abstract'

    @abstractmethod
    def sign(self, manifest_bytes: bytes) -> bytes:
        pass


class OpenSSLSigner(ManifestSigner):
    """
    Signs by running `openssl smime -sign` in a private scratch directory.

    The directory (holding the unencrypted key) is removed on every path,
    including timeouts and non-zero exits.
    """

    strategy = 'openssl'

    def __init__(self, credential: SigningCredential, openssl_bin: str = 'openssl',
                 timeout: float = 5.0):
        self.credential = credential
        self.openssl_bin = openssl_bin
        self.timeout = timeout

    def sign(self, manifest_bytes: bytes) -> bytes:
        scratch = tempfile.mkdtemp(prefix='pkpass-sign-')
        try:
            paths = {
                'manifest': os.path.join(scratch, 'manifest.json'),
                'cert': os.path.join(scratch, 'cert.pem'),
                'key': os.path.join(scratch, 'key.pem'),
                'wwdr': os.path.join(scratch, 'wwdr.pem'),
                'signature': os.path.join(scratch, 'signature'),
            }
            contents = {
                'manifest': manifest_bytes,
                'cert': self.credential.certificate_pem(),
                'key': self.credential.private_key_pem(),
                'wwdr': self.credential.wwdr_pem(),
            }
            for name, data in contents.items():
                fd = os.open(paths[name], os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
                with os.fdopen(fd, 'wb') as f:
                    f.write(data)

            command = [
                self.openssl_bin, 'smime', '-sign', '-binary',
                '-signer', paths['cert'],
                '-inkey', paths['key'],
                '-certfile', paths['wwdr'],
                '-in', paths['manifest'],
                '-out', paths['signature'],
                '-outform', 'DER',
                '-md', 'sha256',
            ]
            try:
                result = subprocess.run(command, capture_output=True, timeout=self.timeout)
            except FileNotFoundError:
                raise SigningError(f"openssl binary not found: {self.openssl_bin}")
            except subprocess.TimeoutExpired:
                raise SigningError(f"openssl signing timed out after {self.timeout}s")

            if result.returncode != 0:
                stderr = result.stderr.decode('utf-8', errors='replace').strip()
                raise SigningError(f"openssl signing failed (exit {result.returncode}): {stderr}")

            with open(paths['signature'], 'rb') as f:
                signature = f.read()
            if not signature:
                raise SigningError('openssl produced an empty signature')

            logger.debug(f"Signed manifest with openssl ({len(signature)} bytes)")
            return signature
        finally:
            shutil.rmtree(scratch, ignore_errors=True)


class CryptographySigner(ManifestSigner):
    """In-process PKCS#7 signing with the cryptography library."""

    strategy = 'cryptography'

    def __init__(self, credential: SigningCredential):
        self.credential = credential

    def sign(self, manifest_bytes: bytes) -> bytes:
        options = [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary]
        try:
            signature = (
                pkcs7.PKCS7SignatureBuilder()
                .set_data(manifest_bytes)
                .add_signer(self.credential.certificate, self.credential.private_key, hashes.SHA256())
                .add_certificate(self.credential.wwdr_certificate)
                .sign(serialization.Encoding.DER, options)
            )
        except (TypeError, ValueError) as e:
            raise SigningError(f"In-process PKCS#7 signing failed: {e}")

        logger.debug(f"Signed manifest with cryptography ({len(signature)} bytes)")
        return signature


class FallbackSigner(ManifestSigner):
    """Tries the primary signer once, then the fallback once."""

    strategy = 'fallback'

    def __init__(self, primary: ManifestSigner, fallback: ManifestSigner):
        self.primary = primary
        self.fallback = fallback
        self.used_strategy: Optional[str] = None

    def sign(self, manifest_bytes: bytes) -> bytes:
        try:
            signature = self.primary.sign(manifest_bytes)
            self.used_strategy = self.primary.strategy
            return signature
        except SigningError as primary_error:
            logger.warning(
                f"{self.primary.strategy} signing failed, falling back to "
                f"{self.fallback.strategy}: {primary_error}"
            )
            try:
                signature = self.fallback.sign(manifest_bytes)
            except SigningError as fallback_error:
                raise SigningError(
                    f"All signing strategies failed. {self.primary.strategy}: {primary_error}; "
                    f"{self.fallback.strategy}: {fallback_error}"
                )
            self.used_strategy = self.fallback.strategy
            return signature


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AppleSigningService(ManifestSigner):
    """
    Signs pass manifests with freshly loaded credentials.

    Every call loads the credential, refuses to sign with an expired pass or
    WWDR certificate, and releases the credential afterwards.
    """

    strategy = 'service'

    def __init__(self, settings: WalletSettings, clock: Callable[[], datetime] = None,
                 signer_factory: Callable[[SigningCredential], ManifestSigner] = None):
        """
        Args:
            settings: WalletSettings with the Apple credential values
            clock: Returns the current UTC time (injectable for tests)
            signer_factory: Builds the ManifestSigner for a credential;
                defaults to openssl with the cryptography fallback
        """
        self.settings = settings
        self.clock = clock or _utc_now
        self.signer_factory = signer_factory or self._default_signer
        self.last_strategy: Optional[str] = None

    def _default_signer(self, credential: SigningCredential) -> ManifestSigner:
        return FallbackSigner(
            OpenSSLSigner(
                credential,
                openssl_bin=self.settings.openssl_bin,
                timeout=self.settings.apple_signing_timeout
            ),
            CryptographySigner(credential)
        )

    def check_expiry(self, credential: SigningCredential) -> None:
        """
        Raises:
            SigningError: if either certificate is past its notAfter date
        """
        now = self.clock()
        for label, cert in (
            ('Pass certificate', credential.certificate),
            ('WWDR certificate', credential.wwdr_certificate),
        ):
            expires = cert.not_valid_after_utc
            if expires < now:
                raise SigningError(f"{label} expired on {expires.isoformat()}")

    def sign(self, manifest_bytes: bytes) -> bytes:
        """
        Sign manifest.json bytes.

        Returns:
            DER-encoded detached PKCS#7 signature

        Raises:
            ConfigurationError: if credentials are missing or unreadable
            SigningError: if a certificate is expired or every strategy fails
        """
        with signing_credential(self.settings) as credential:
            self.check_expiry(credential)
            signer = self.signer_factory(credential)
            signature = signer.sign(manifest_bytes)
            self.last_strategy = getattr(signer, 'used_strategy', None) or signer.strategy

        logger.info(f"Signed pass manifest using {self.last_strategy}")
        return signature
