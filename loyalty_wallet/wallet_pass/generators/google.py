# loyalty_wallet/wallet_pass/generators/google.py

"""
Google Wallet Loyalty Object Manager

Builds loyalty class/object bodies from a PassDescriptor and upserts them
against the Google Wallet Objects API (walletobjects v1). Class and object
ids are derived deterministically, so repeated syncs of the same card
update the existing resources instead of duplicating them.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..errors import ConfigurationError, NetworkError, ValidationError
from ..formatting import format_percent
from ..models import Business, CardType, PassDescriptor
from ...config import WalletSettings

logger = logging.getLogger(__name__)

WALLET_SCOPES = ['https://www.googleapis.com/auth/wallet_object.issuer']

LOYALTY_CLASS = 'loyaltyclass'
LOYALTY_OBJECT = 'loyaltyobject'

MIN_ID_PART_LENGTH = 3

# google_auth_httplib2 wraps httplib2 failures in TransportError; token
# fetches fail with RefreshError. Both are GoogleAuthError.
TRANSPORT_ERRORS = (GoogleAuthError, httplib2.HttpLib2Error, OSError)


class ResourceState(str, Enum):
    ABSENT = 'ABSENT'
    PRESENT = 'PRESENT'


@dataclass(frozen=True)
class UpsertResult:
    resource_id: str
    created: bool


@dataclass(frozen=True)
class LoyaltySyncResult:
    class_id: str
    object_id: str
    class_result: UpsertResult
    object_result: UpsertResult
    object_body: Dict[str, Any] = field(default_factory=dict)


def sanitize_class_suffix(text: str) -> str:
    """
    Normalize free text into a class id suffix.

    Lowercases, replaces anything outside [a-z0-9_] with '_', collapses
    repeats and trims underscores from both ends.

    Raises:
        ValidationError: if fewer than 3 characters remain
    """
    suffix = re.sub(r'[^a-z0-9_]', '_', (text or '').lower())
    suffix = re.sub(r'_+', '_', suffix).strip('_')
    if len(suffix) < MIN_ID_PART_LENGTH:
        raise ValidationError(
            f"Class suffix {text!r} is too short after sanitizing", fields=['class_suffix']
        )
    return suffix


def sanitize_object_token(text: str) -> str:
    """
    Strip an identifier down to lowercase alphanumerics.

    Raises:
        ValidationError: if fewer than 3 characters remain
    """
    token = re.sub(r'[^a-zA-Z0-9]', '', text or '').lower()
    if len(token) < MIN_ID_PART_LENGTH:
        raise ValidationError(
            f"Object id {text!r} is too short after sanitizing", fields=['customer_card_id']
        )
    return token


def derive_class_id(issuer_id: str, business: Business, card_type: CardType,
                    suffix_override: Optional[str] = None) -> str:
    """Return '{issuer}.{suffix}' for a business's card program."""
    if not issuer_id:
        raise ConfigurationError('Google Wallet issuer id is not configured', missing=['GOOGLE_WALLET_ISSUER_ID'])
    raw = suffix_override or f'{business.name}_{card_type.value}_{business.id}'
    return f'{issuer_id}.{sanitize_class_suffix(raw)}'


def derive_object_id(class_id: str, customer_card_id: str) -> str:
    return f'{class_id}.{sanitize_object_token(customer_card_id)}'


def _localized(value: str, locale: str) -> Dict[str, Any]:
    return {'defaultValue': {'language': locale, 'value': value}}


def build_loyalty_class(descriptor: PassDescriptor, class_id: str) -> Dict[str, Any]:
    """Loyalty class body for the card's program."""
    business = descriptor.business
    body: Dict[str, Any] = {
        'id': class_id,
        'issuerName': business.name,
        'programName': descriptor.card_name,
        'reviewStatus': 'UNDER_REVIEW',
        'hexBackgroundColor': descriptor.background_color,
        'multipleDevicesAndHoldersAllowedStatus': 'ONE_USER_ALL_DEVICES',
        'localizedIssuerName': _localized(business.name, descriptor.locale),
        'localizedProgramName': _localized(descriptor.card_name, descriptor.locale),
    }
    if business.logo_url:
        body['programLogo'] = {
            'sourceUri': {'uri': business.logo_url},
            'contentDescription': _localized(f'{business.name} logo', descriptor.locale),
        }
    if business.latitude is not None and business.longitude is not None:
        body['locations'] = [{'latitude': business.latitude, 'longitude': business.longitude}]
    return body


def build_loyalty_object(descriptor: PassDescriptor, class_id: str, object_id: str) -> Dict[str, Any]:
    """Loyalty object body for one customer card."""
    fields = descriptor.fields
    primary = fields.primary[0] if fields.primary else None

    text_modules = []
    for display_field in fields.auxiliary + fields.back:
        if display_field.value in (None, ''):
            continue
        text_modules.append({
            'id': display_field.key,
            'header': display_field.label,
            'body': str(display_field.value),
        })

    body: Dict[str, Any] = {
        'id': object_id,
        'classId': class_id,
        'state': descriptor.state.value,
        'accountId': descriptor.serial_number,
        'accountName': descriptor.customer_name or descriptor.card_name,
        'hexBackgroundColor': descriptor.background_color,
        'loyaltyPoints': {
            'label': primary.label if primary else 'Progress',
            'balance': {'string': descriptor.primary_value},
        },
        'secondaryLoyaltyPoints': {
            'label': 'Progress',
            'balance': {'string': format_percent(descriptor.progress)},
        },
        'barcode': {
            'type': 'QR_CODE',
            'value': descriptor.barcode.value,
            'alternateText': descriptor.barcode.alt_text,
        },
        'textModulesData': text_modules,
    }
    if descriptor.expiry_date:
        body['validTimeInterval'] = {
            'end': {'date': f'{descriptor.expiry_date.isoformat()}T23:59:59Z'}
        }
    return body


def build_wallet_client(settings: WalletSettings):
    """
    Build an authorized walletobjects v1 client.

    Credentials come from the inline service account email/key or a
    service account JSON file. Requests use an explicit timeout.
    """
    if settings.google_service_account_email and settings.google_service_account_private_key:
        info = {
            'type': 'service_account',
            'client_email': settings.google_service_account_email,
            'private_key': settings.google_service_account_private_key,
            'token_uri': 'https://oauth2.googleapis.com/token',
        }
        credentials = service_account.Credentials.from_service_account_info(info, scopes=WALLET_SCOPES)
    elif settings.google_service_account_file:
        credentials = service_account.Credentials.from_service_account_file(
            settings.google_service_account_file, scopes=WALLET_SCOPES
        )
    else:
        raise ConfigurationError(
            'Google service account credentials are not configured',
            missing=['GOOGLE_SERVICE_ACCOUNT_EMAIL', 'GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY']
        )

    http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=settings.google_api_timeout))
    return build('walletobjects', 'v1', http=http, cache_discovery=False)


class LoyaltyObjectManager:
    """
    Idempotent create-or-update of loyalty classes and objects.

    The client is built lazily so that id derivation and body building work
    without credentials.
    """

    def __init__(self, settings: WalletSettings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = build_wallet_client(self.settings)
        return self._client

    def class_id_for(self, descriptor: PassDescriptor) -> str:
        override = (
            self.settings.google_class_suffix_membership if descriptor.is_membership
            else self.settings.google_class_suffix_stamp
        )
        return derive_class_id(self.settings.google_issuer_id, descriptor.business,
                               descriptor.card_type, override)

    def _resource(self, resource_name: str):
        return getattr(self.client, resource_name)()

    def fetch_state(self, resource_name: str, resource_id: str) -> ResourceState:
        """
        Raises:
            NetworkError: for any non-404 HTTP error or transport failure
        """
        try:
            self._resource(resource_name).get(resourceId=resource_id).execute()
            return ResourceState.PRESENT
        except HttpError as e:
            if e.resp.status == 404:
                return ResourceState.ABSENT
            raise NetworkError(
                f"Google Wallet {resource_name} lookup failed for {resource_id}: {e}",
                status=e.resp.status
            )
        except TRANSPORT_ERRORS as e:
            raise NetworkError(f"Google Wallet API unreachable: {e}")

    def upsert(self, resource_name: str, resource_id: str, body: Dict[str, Any]) -> UpsertResult:
        """
        Create the resource, or update it if it already exists.

        Args:
            resource_name: 'loyaltyclass' or 'loyaltyobject'
            resource_id: Fully qualified resource id
            body: Request body

        Returns:
            UpsertResult with created=True when the resource was inserted

        Raises:
            NetworkError: non-404 HTTP status or transport failure (not retried)
        """
        state = self.fetch_state(resource_name, resource_id)
        resource = self._resource(resource_name)
        try:
            if state == ResourceState.PRESENT:
                resource.update(resourceId=resource_id, body=body).execute()
                logger.debug(f"Updated Google Wallet {resource_name}: {resource_id}")
                return UpsertResult(resource_id=resource_id, created=False)

            resource.insert(body=body).execute()
            logger.info(f"Created Google Wallet {resource_name}: {resource_id}")
            return UpsertResult(resource_id=resource_id, created=True)
        except HttpError as e:
            raise NetworkError(
                f"Google Wallet {resource_name} write failed for {resource_id}: {e}",
                status=e.resp.status
            )
        except TRANSPORT_ERRORS as e:
            raise NetworkError(f"Google Wallet API unreachable: {e}")

    def sync(self, descriptor: PassDescriptor) -> LoyaltySyncResult:
        """Upsert the loyalty class, then the customer's loyalty object."""
        class_id = self.class_id_for(descriptor)
        object_id = derive_object_id(class_id, descriptor.serial_number)
        object_body = build_loyalty_object(descriptor, class_id, object_id)

        class_result = self.upsert(LOYALTY_CLASS, class_id, build_loyalty_class(descriptor, class_id))
        object_result = self.upsert(LOYALTY_OBJECT, object_id, object_body)

        return LoyaltySyncResult(
            class_id=class_id,
            object_id=object_id,
            class_result=class_result,
            object_result=object_result,
            object_body=object_body,
        )
