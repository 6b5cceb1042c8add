# loyalty_wallet/wallet_pass/models.py

"""
Wallet Pass Data Model

Card records arrive fully resolved from the card store (read-only input).
Everything else here is transient: rebuilt on every request and discarded
after the response.
"""

import base64
import binascii
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import ValidationError


class CardType(str, Enum):
    STAMP = 'stamp'
    MEMBERSHIP = 'membership'


class CardState(str, Enum):
    """Derived pass state. EXPIRED wins over COMPLETED, which wins over ACTIVE."""
    ACTIVE = 'ACTIVE'
    COMPLETED = 'COMPLETED'
    EXPIRED = 'EXPIRED'


@dataclass(frozen=True)
class Business:
    """The business that owns a card program."""
    id: str
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    logo_bytes: Optional[bytes] = None
    contact_email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    brand_color: Optional[str] = None


@dataclass(frozen=True)
class CardRecord(ABC):
    """Common fields of a customer's card instance."""
    customer_card_id: str
    card_id: str
    card_name: str
    business: Business
    customer_name: Optional[str] = None
    card_color: Optional[str] = None
    expiry_date: Optional[date] = None
    locale: Optional[str] = None

    card_type = None

    @property
    @abstractmethod
    def used(self) -> int:
        """Stamps collected or sessions consumed."""

    @property
    @abstractmethod
    def required(self) -> Optional[int]:
        """Stamps or sessions needed to complete the card."""


@dataclass(frozen=True)
class StampCardRecord(CardRecord):
    current_stamps: int = 0
    stamps_required: Optional[int] = None
    reward_description: str = ''

    card_type = CardType.STAMP

    @property
    def used(self) -> int:
        return self.current_stamps or 0

    @property
    def required(self) -> Optional[int]:
        return self.stamps_required


@dataclass(frozen=True)
class MembershipCardRecord(CardRecord):
    sessions_used: int = 0
    total_sessions: Optional[int] = None
    cost: Optional[float] = None
    currency: str = 'KRW'
    membership_type: str = 'gym'

    card_type = CardType.MEMBERSHIP

    @property
    def used(self) -> int:
        return self.sessions_used or 0

    @property
    def required(self) -> Optional[int]:
        return self.total_sessions


@dataclass(frozen=True)
class DisplayField:
    key: str
    label: str
    value: Any
    alignment: str = 'natural'


@dataclass(frozen=True)
class FieldGroups:
    """Ordered display slots, named after the Apple pass field groups."""
    header: Tuple[DisplayField, ...] = ()
    primary: Tuple[DisplayField, ...] = ()
    secondary: Tuple[DisplayField, ...] = ()
    auxiliary: Tuple[DisplayField, ...] = ()
    back: Tuple[DisplayField, ...] = ()

    def find(self, key: str) -> Optional[DisplayField]:
        for group in (self.header, self.primary, self.secondary, self.auxiliary, self.back):
            for display_field in group:
                if display_field.key == key:
                    return display_field
        return None


@dataclass(frozen=True)
class BarcodeSpec:
    value: str
    format: str = 'QR'
    alt_text: str = ''
    message_encoding: str = 'iso-8859-1'


@dataclass(frozen=True)
class PassDescriptor:
    """Platform-neutral view of one card, consumed by both pipelines."""
    serial_number: str
    card_type: CardType
    card_id: str
    card_name: str
    business: Business
    description: str
    fields: FieldGroups
    barcode: BarcodeSpec
    used: int
    required: int
    remaining_count: int
    progress: float
    state: CardState
    expiry_date: Optional[date] = None
    customer_name: Optional[str] = None
    background_color: str = '#10b981'
    foreground_color: str = '#ffffff'
    label_color: str = '#ffffff'
    locale: str = 'en-US'

    @property
    def is_membership(self) -> bool:
        return self.card_type == CardType.MEMBERSHIP

    @property
    def primary_value(self) -> str:
        return f'{self.used}/{self.required}'

    @property
    def progress_percent(self) -> int:
        return int(round(self.progress * 100))


@dataclass
class PassBundle:
    """
    In-memory .pkpass aggregate.

    Holds the serialized pass document, the generated assets, the manifest
    and the detached signature, plus the finished archive. Lives for one
    request only.
    """
    pass_json: bytes
    assets: Dict[str, bytes]
    manifest: Dict[str, str]
    signature: bytes
    archive: bytes = b''
    filename: str = 'pass.pkpass'

    @property
    def manifest_json(self) -> bytes:
        return json.dumps(self.manifest, indent=2, sort_keys=True).encode('utf-8')

    def bundled_files(self) -> Dict[str, bytes]:
        """Files covered by the manifest (everything except manifest and signature)."""
        files = {'pass.json': self.pass_json}
        files.update(self.assets)
        return files


def _optional_int(value, field_name: str) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer, got {value!r}", fields=[field_name])


def _parse_date(value, field_name: str = 'expiry_date') -> Optional[date]:
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).date()
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO date, got {value!r}", fields=[field_name])


def business_from_dict(data: Dict[str, Any]) -> Business:
    logo_base64 = data.get('logo_base64')
    try:
        logo_bytes = base64.b64decode(logo_base64) if logo_base64 else None
    except (binascii.Error, ValueError):
        raise ValidationError('business.logo_base64 is not valid base64', fields=['business.logo_base64'])

    return Business(
        id=str(data.get('id', '')),
        name=data.get('name', ''),
        description=data.get('description'),
        logo_url=data.get('logo_url'),
        logo_bytes=logo_bytes,
        contact_email=data.get('contact_email'),
        phone=data.get('phone'),
        address=data.get('address'),
        latitude=data.get('latitude'),
        longitude=data.get('longitude'),
        brand_color=data.get('brand_color'),
    )


def card_record_from_dict(data: Dict[str, Any]) -> CardRecord:
    """
    Build a card record from its JSON representation.

    Args:
        data: Mapping with a 'type' discriminator ('stamp' or 'membership'),
            the card fields and a nested 'business' mapping.

    Returns:
        StampCardRecord or MembershipCardRecord
    """
    card_type = data.get('type')
    common = {
        'customer_card_id': str(data.get('customer_card_id') or data.get('id') or ''),
        'card_id': str(data.get('card_id', '')),
        'card_name': data.get('card_name') or data.get('name') or '',
        'business': business_from_dict(data.get('business') or {}),
        'customer_name': data.get('customer_name'),
        'card_color': data.get('card_color'),
        'expiry_date': _parse_date(data.get('expiry_date')),
        'locale': data.get('locale'),
    }

    if card_type == CardType.STAMP.value:
        return StampCardRecord(
            current_stamps=_optional_int(data.get('current_stamps'), 'current_stamps') or 0,
            stamps_required=_optional_int(
                data.get('stamps_required', data.get('total_stamps')), 'stamps_required'
            ),
            reward_description=data.get('reward_description') or '',
            **common
        )
    if card_type == CardType.MEMBERSHIP.value:
        return MembershipCardRecord(
            sessions_used=_optional_int(data.get('sessions_used'), 'sessions_used') or 0,
            total_sessions=_optional_int(data.get('total_sessions'), 'total_sessions'),
            cost=data.get('cost'),
            currency=data.get('currency') or 'KRW',
            membership_type=data.get('membership_type') or 'gym',
            **common
        )
    raise ValidationError(f"Unknown card type: {card_type!r}", fields=['type'])
