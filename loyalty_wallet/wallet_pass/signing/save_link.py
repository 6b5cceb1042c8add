# loyalty_wallet/wallet_pass/signing/save_link.py

"""
Google Wallet Save-Link Signer

Signs the "save to wallet" JWT with the issuer's service account key
(RS256) and wraps it in the pay.google.com deep link.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import jwt

from ..errors import ConfigurationError, SigningError, SizeLimitError
from ...config import WalletSettings, normalize_private_key

logger = logging.getLogger(__name__)

SAVE_URL_PREFIX = 'https://pay.google.com/gp/v/save/'
MAX_PAYLOAD_BYTES = 100 * 1024
TOKEN_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class SaveLink:
    url: str
    token: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SaveLinkSigner:
    """Builds and signs save-to-wallet tokens."""

    def __init__(self, settings: WalletSettings, clock: Callable[[], datetime] = None):
        self.settings = settings
        self.clock = clock or _utc_now
        self._service_account: Optional[Dict[str, str]] = None

    def _load_service_account(self) -> Dict[str, str]:
        if self._service_account is not None:
            return self._service_account

        email = self.settings.google_service_account_email
        private_key = normalize_private_key(self.settings.google_service_account_private_key)
        if not (email and private_key) and self.settings.google_service_account_file:
            with open(self.settings.google_service_account_file, 'r', encoding='utf-8') as f:
                info = json.load(f)
            email = email or info.get('client_email')
            private_key = private_key or info.get('private_key')

        missing = []
        if not email:
            missing.append('GOOGLE_SERVICE_ACCOUNT_EMAIL')
        if not private_key:
            missing.append('GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY')
        if missing:
            raise ConfigurationError(
                f"Google service account not configured: {', '.join(missing)}", missing=missing
            )

        self._service_account = {'client_email': email, 'private_key': private_key}
        return self._service_account

    @property
    def origins(self) -> List[str]:
        origins = [o.strip() for o in (self.settings.google_origins or '').split(',') if o.strip()]
        return origins or [self.settings.base_url]

    def build_claims(self, object_refs: List[Dict[str, Any]],
                     class_refs: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Args:
            object_refs: Loyalty object references, e.g. [{'id': ..., 'classId': ...}]
            class_refs: Optional loyalty class references

        Returns:
            JWT claim set for a savetowallet token
        """
        account = self._load_service_account()
        issued_at = int(self.clock().timestamp())

        payload: Dict[str, Any] = {'loyaltyObjects': list(object_refs)}
        if class_refs:
            payload['loyaltyClasses'] = list(class_refs)

        return {
            'iss': account['client_email'],
            'aud': 'google',
            'typ': 'savetowallet',
            'iat': issued_at,
            'exp': issued_at + TOKEN_LIFETIME_SECONDS,
            'origins': self.origins,
            'payload': payload,
        }

    @staticmethod
    def check_size(claims: Dict[str, Any]) -> int:
        """
        Returns:
            Size of the compact JSON serialization in bytes

        Raises:
            SizeLimitError: if it exceeds 100 KB
        """
        size = len(json.dumps(claims, separators=(',', ':')).encode('utf-8'))
        if size > MAX_PAYLOAD_BYTES:
            raise SizeLimitError(
                f"Save-link payload is {size} bytes, limit is {MAX_PAYLOAD_BYTES}",
                size=size, limit=MAX_PAYLOAD_BYTES
            )
        return size

    def sign(self, claims: Dict[str, Any]) -> str:
        """
        Sign a claim set with RS256.

        Raises:
            SizeLimitError: serialized claims exceed 100 KB (checked before signing)
            SigningError: the key is unusable
        """
        size = self.check_size(claims)

        account = self._load_service_account()
        try:
            token = jwt.encode(claims, account['private_key'], algorithm='RS256')
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise SigningError(f"Failed to sign save-link token: {e}")

        logger.debug(f"Signed save-link token {token[:16]}... ({size} byte payload)")
        return token

    def claims_for_object(self, object_id: str, class_id: Optional[str] = None) -> Dict[str, Any]:
        object_ref: Dict[str, Any] = {'id': object_id}
        if class_id:
            object_ref['classId'] = class_id
        return self.build_claims([object_ref])

    def save_link(self, claims: Dict[str, Any]) -> SaveLink:
        token = self.sign(claims)
        return SaveLink(url=f'{SAVE_URL_PREFIX}{token}', token=token)

    def create_save_link(self, object_id: str, class_id: Optional[str] = None) -> SaveLink:
        return self.save_link(self.claims_for_object(object_id, class_id))
