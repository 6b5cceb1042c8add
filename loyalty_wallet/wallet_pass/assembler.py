# loyalty_wallet/wallet_pass/assembler.py

"""
Pass Data Assembler

Maps a resolved card record (stamp or membership variant, joined with its
business) to the platform-neutral PassDescriptor that both wallet pipelines
consume. No I/O happens here.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from .errors import ValidationError
from .formatting import format_currency, format_date, format_percent, resolve_locale
from .models import (
    BarcodeSpec, CardRecord, CardState, DisplayField, FieldGroups,
    MembershipCardRecord, PassDescriptor, StampCardRecord
)

logger = logging.getLogger(__name__)

STAMP_COLOR = '#10b981'
MEMBERSHIP_COLOR = '#6366f1'
EXPIRED_COLOR = '#ef4444'
COMPLETED_COLOR = '#22c55e'

COPY = {
    'labels': {
        'progress': 'Progress',
        'remaining': 'Remaining',
        'membership_header': 'Membership',
        'stamp_header': 'Stamp Card',
        'business': 'Business',
        'reward': 'Reward',
        'value': 'Value',
        'status': 'Status',
        'expires': 'Expires',
        'about': 'About',
        'how_to_use': 'How to Use',
        'expires_on': 'Expires on',
        'questions': 'Questions?',
    },
    'status': {
        CardState.ACTIVE: 'Active',
        CardState.COMPLETED: 'Completed!',
        CardState.EXPIRED: 'Expired',
    },
    'instructions': {
        'membership': (
            'Show this pass at the gym to mark session usage. Your pass will '
            'automatically update when sessions are used.'
        ),
        'stamp': (
            'Show this pass to collect stamps at participating locations. Your pass '
            'will automatically update when new stamps are added.'
        ),
    },
    'support': 'Contact the business directly or visit rewardjar.com for support.',
}


def compute_progress(used: int, required: int) -> float:
    """Fraction of the card used, clamped to [0, 1]."""
    if required <= 0:
        return 0.0
    return min(1.0, max(0.0, used / required))


def derive_card_state(used: int, required: int, expiry_date: Optional[date],
                      today: Optional[date] = None) -> CardState:
    """
    Derive the card state.

    An expiry date in the past always yields EXPIRED, even for a full card.
    """
    today = today or datetime.now(timezone.utc).date()
    if expiry_date is not None and expiry_date < today:
        return CardState.EXPIRED
    if used >= required:
        return CardState.COMPLETED
    return CardState.ACTIVE


def _validate_record(record: CardRecord) -> None:
    invalid: List[str] = []
    if not record.customer_card_id:
        invalid.append('customer_card_id')

    required_field = 'total_sessions' if isinstance(record, MembershipCardRecord) else 'stamps_required'
    required = record.required
    if required is None or required <= 0:
        invalid.append(required_field)

    if invalid:
        raise ValidationError(
            f"Card record is missing required values: {', '.join(invalid)}",
            fields=invalid
        )


def _background_color(record: CardRecord, state: CardState) -> str:
    if isinstance(record, MembershipCardRecord):
        if state == CardState.EXPIRED:
            return EXPIRED_COLOR
        if state == CardState.COMPLETED:
            return COMPLETED_COLOR
        return record.card_color or record.business.brand_color or MEMBERSHIP_COLOR
    return record.card_color or record.business.brand_color or STAMP_COLOR


def _build_fields(record: CardRecord, state: CardState, progress: float,
                  remaining: int, locale: str) -> FieldGroups:
    labels = COPY['labels']
    is_membership = isinstance(record, MembershipCardRecord)
    unit = 'sessions' if is_membership else 'stamps'

    header = (
        DisplayField(
            'card_name',
            labels['membership_header'] if is_membership else labels['stamp_header'],
            record.card_name,
            'center'
        ),
    )
    primary = (
        DisplayField(
            unit,
            'Sessions Used' if is_membership else 'Stamps Collected',
            f'{record.used}/{record.required}',
            'center'
        ),
    )
    secondary = (
        DisplayField('progress', labels['progress'], format_percent(progress), 'left'),
        DisplayField('remaining', labels['remaining'], remaining, 'right'),
    )

    auxiliary = [DisplayField('business', labels['business'], record.business.name, 'left')]
    if is_membership:
        if record.cost is not None:
            auxiliary.append(DisplayField(
                'cost', labels['value'],
                format_currency(record.cost, record.currency, locale), 'right'
            ))
    else:
        auxiliary.append(DisplayField('reward', labels['reward'], record.reward_description, 'right'))
    auxiliary.append(DisplayField('status', labels['status'], COPY['status'][state], 'right'))
    if record.expiry_date:
        auxiliary.append(DisplayField(
            'expires', labels['expires'], format_date(record.expiry_date, locale), 'right'
        ))

    if is_membership:
        about = f'Membership with {record.total_sessions} sessions.'
        if record.cost is not None:
            about += f' Value: {format_currency(record.cost, record.currency, locale)}.'
    else:
        about = f'Collect {record.stamps_required} stamps to earn: {record.reward_description}'

    back = [
        DisplayField('description', labels['about'], about),
        DisplayField(
            'business_info', record.business.name,
            record.business.description or (
                'Visit us to use your sessions!' if is_membership
                else 'Visit us to collect stamps and earn rewards!'
            )
        ),
        DisplayField('instructions', labels['how_to_use'], COPY['instructions']['membership' if is_membership else 'stamp']),
    ]
    if record.expiry_date:
        back.append(DisplayField('expiry_info', labels['expires_on'], format_date(record.expiry_date, locale)))
    contact = COPY['support']
    if record.business.contact_email or record.business.phone:
        contact = ' / '.join(filter(None, [record.business.contact_email, record.business.phone]))
    back.append(DisplayField('contact', labels['questions'], contact))

    return FieldGroups(
        header=header,
        primary=primary,
        secondary=secondary,
        auxiliary=tuple(auxiliary),
        back=tuple(back),
    )


def assemble_pass_descriptor(record: CardRecord, locale: Optional[str] = None,
                             now: Optional[datetime] = None) -> PassDescriptor:
    """
    Build the PassDescriptor for one card.

    Args:
        record: StampCardRecord or MembershipCardRecord
        locale: Display locale; falls back to the record's locale, then en-US
        now: Reference time for expiry checks (defaults to current UTC time)

    Returns:
        PassDescriptor

    Raises:
        ValidationError: if the card id is missing or the card capacity is
            missing, zero or negative
    """
    if not isinstance(record, (StampCardRecord, MembershipCardRecord)):
        raise ValidationError(f"Unsupported card record: {type(record).__name__}", fields=['type'])

    _validate_record(record)

    locale = resolve_locale(locale or record.locale)
    today = (now or datetime.now(timezone.utc)).date()
    used = max(0, record.used)
    required = record.required
    progress = compute_progress(used, required)
    remaining = max(0, required - used)
    state = derive_card_state(used, required, record.expiry_date, today)

    is_membership = isinstance(record, MembershipCardRecord)
    barcode_value = f'gym:{record.customer_card_id}' if is_membership else record.customer_card_id
    barcode = BarcodeSpec(
        value=barcode_value,
        format='QR',
        alt_text=f"{'Membership' if is_membership else 'Card'} ID: {record.customer_card_id[:8]}",
    )

    descriptor = PassDescriptor(
        serial_number=record.customer_card_id,
        card_type=record.card_type,
        card_id=record.card_id,
        card_name=record.card_name,
        business=record.business,
        description=f'{record.card_name} - {record.business.name}',
        fields=_build_fields(record, state, progress, remaining, locale),
        barcode=barcode,
        used=used,
        required=required,
        remaining_count=remaining,
        progress=progress,
        state=state,
        expiry_date=record.expiry_date,
        customer_name=record.customer_name,
        background_color=_background_color(record, state),
        locale=locale,
    )

    logger.debug(
        f"Assembled pass descriptor for card {record.customer_card_id} "
        f"({record.card_type.value}, {descriptor.primary_value}, {state.value})"
    )
    return descriptor
