# loyalty_wallet/wallet_pass/__init__.py

"""
Wallet Pass Module

Issues Apple Wallet and Google Wallet passes for loyalty stamp cards and
membership cards, including pass assembly, signing and configuration
health checks.
"""

from .assembler import assemble_pass_descriptor, derive_card_state
from .compliance import ComplianceIssue, ComplianceValidator
from .errors import (
    ConfigurationError, NetworkError, NotFoundError, SigningError,
    SizeLimitError, ValidationError, WalletError
)
from .models import (
    Business, CardState, CardType, MembershipCardRecord, PassBundle,
    PassDescriptor, StampCardRecord, card_record_from_dict
)
from .repository import CardRepository, InMemoryCardRepository
from .services import PassService

__all__ = [
    'assemble_pass_descriptor',
    'derive_card_state',
    'ComplianceIssue',
    'ComplianceValidator',
    'ConfigurationError',
    'NetworkError',
    'NotFoundError',
    'SigningError',
    'SizeLimitError',
    'ValidationError',
    'WalletError',
    'Business',
    'CardState',
    'CardType',
    'MembershipCardRecord',
    'PassBundle',
    'PassDescriptor',
    'StampCardRecord',
    'card_record_from_dict',
    'CardRepository',
    'InMemoryCardRepository',
    'PassService',
]
