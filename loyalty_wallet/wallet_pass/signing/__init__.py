# loyalty_wallet/wallet_pass/signing/__init__.py

"""
Wallet Pass Signing

- Apple: detached PKCS#7 signature over manifest.json (openssl, with an
  in-process cryptography fallback)
- Google: RS256 save-to-wallet JWT
"""

from .credentials import SigningCredential, load_signing_credential, signing_credential
from .apple import (
    AppleSigningService, CryptographySigner, FallbackSigner, ManifestSigner, OpenSSLSigner
)
from .save_link import SaveLink, SaveLinkSigner

__all__ = [
    'SigningCredential',
    'load_signing_credential',
    'signing_credential',
    'AppleSigningService',
    'CryptographySigner',
    'FallbackSigner',
    'ManifestSigner',
    'OpenSSLSigner',
    'SaveLink',
    'SaveLinkSigner',
]
